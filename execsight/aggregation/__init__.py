"""
Cross-Role Aggregation — fan-out reads across domain sources.

Components:
- sources: DomainSource protocol and a callable adapter
- retry: transient/permanent classification and fixed-delay retry
- aggregator: CrossRoleAggregator, AggregatedView, DomainResult
- summary: executive KPI summary
"""
