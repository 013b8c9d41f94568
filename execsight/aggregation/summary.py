"""Executive KPI summary over an aggregated view."""

from dataclasses import dataclass
from typing import Optional

from execsight.aggregation.aggregator import AggregatedView
from execsight.analyzers.customer import CustomerAnalyzer
from execsight.schemas.domains import (
    CustomerMetrics,
    Domain,
    FinancialMetrics,
    MarketingMetrics,
    OperationsMetrics,
)


@dataclass(frozen=True)
class ExecutiveSummary:
    user_id: str
    revenue: Optional[float] = None
    operational_efficiency: Optional[float] = None
    marketing_roi: Optional[float] = None
    customers_at_risk: Optional[int] = None
    available_domains: tuple[str, ...] = ()
    failed_domains: tuple[str, ...] = ()
    notes: tuple[str, ...] = ()


def summarize(view: AggregatedView, churn_analyzer: Optional[CustomerAnalyzer] = None) -> ExecutiveSummary:
    """KPIs from whichever domains succeeded; missing domains leave None."""
    notes: list[str] = []

    revenue = None
    finance = view.data(Domain.FINANCE)
    if isinstance(finance, FinancialMetrics) and finance.revenue_series:
        revenue = sum(finance.revenue_series)

    efficiency = None
    operations = view.data(Domain.OPERATIONS)
    if isinstance(operations, OperationsMetrics) and operations.actual_output is not None and operations.max_output:
        efficiency = operations.actual_output / operations.max_output

    roi = None
    marketing = view.data(Domain.MARKETING)
    if isinstance(marketing, MarketingMetrics):
        spend = sum(c.spend for c in marketing.channels)
        if spend > 0:
            roi = sum(c.revenue for c in marketing.channels) / spend
        if revenue is None and marketing.revenue_series:
            revenue = sum(marketing.revenue_series)
            notes.append("revenue taken from marketing attribution")

    at_risk = None
    customers = view.data(Domain.CUSTOMER)
    if isinstance(customers, CustomerMetrics):
        analyzer = churn_analyzer or CustomerAnalyzer()
        at_risk = sum(s.customer_count for s in customers.segments if analyzer.at_risk(s))

    if view.partial_failure:
        notes.append(f"{len(view.failed_domains)} domain(s) unavailable")

    return ExecutiveSummary(
        user_id=view.user_id,
        revenue=revenue,
        operational_efficiency=efficiency,
        marketing_roi=roi,
        customers_at_risk=at_risk,
        available_domains=tuple(d.value for d in view.available_domains),
        failed_domains=tuple(d.value for d in view.failed_domains),
        notes=tuple(notes),
    )
