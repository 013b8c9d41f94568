"""
Customer Analyzer.

Churn score per segment blends retention and recency:
    churn = 0.5 × (1 - retention) + 0.5 × clamp((recency_ratio - 1) / 2)
where recency_ratio = days since last purchase / usual purchase interval.

Customer lifetime value:
    CLV = AOV × frequency × margin × r / (1 + d - r)
with retention r and discount rate d = 0.1.
"""

from dataclasses import dataclass
from typing import Optional

import structlog

from execsight.analyzers.base import BaseAnalyzer, EfficiencyScore
from execsight.engine.series import clamp
from execsight.schemas.domains import CustomerMetrics, CustomerSegment, Domain, field_completeness
from execsight.schemas.findings import Finding, FindingKind, ImpactKind, action_plan

logger = structlog.get_logger(__name__)

# ── Configuration ─────────────────────────────────────────────────────────

CHURN_RISK_THRESHOLD: float = 0.5
RECENCY_RATIO_LIMIT: float = 2.0      # Silent for twice the usual interval
PORTFOLIO_CHURN_LIMIT: float = 0.12
DISCOUNT_RATE: float = 0.1
RECOVERABLE_SHARE: float = 0.3        # Share of at-risk value a campaign wins back
UPSELL_RETENTION: float = 0.8
UPSELL_LIFT: float = 0.1
RETENTION_INCENTIVE: float = 50.0

_COMPLETENESS_FIELDS = ("name", "days_since_last_purchase", "avg_purchase_interval_days", "margin")


@dataclass(frozen=True)
class SegmentSummary:
    most_valuable: Optional[str]
    total_value: float
    value_at_risk: float
    at_risk_segments: tuple[str, ...]


def customer_lifetime_value(segment: CustomerSegment, discount_rate: float = DISCOUNT_RATE) -> float:
    annual = segment.avg_order_value * segment.purchase_frequency * segment.margin
    r = segment.retention_rate
    return annual * r / (1 + discount_rate - r)


class CustomerAnalyzer(BaseAnalyzer):
    """Churn, lifetime value and upsell."""

    domain = Domain.CUSTOMER
    metrics_type = CustomerMetrics

    def __init__(self, churn_threshold: float = CHURN_RISK_THRESHOLD, **kwargs):
        super().__init__(**kwargs)
        self.churn_threshold = churn_threshold

    # ── Public calculations ──────────────────────────────────────────────

    @staticmethod
    def recency_ratio(segment: CustomerSegment) -> float:
        return segment.days_since_last_purchase / segment.avg_purchase_interval_days

    def churn_score(self, segment: CustomerSegment) -> float:
        recency = clamp((self.recency_ratio(segment) - 1) / 2)
        return 0.5 * (1 - segment.retention_rate) + 0.5 * recency

    def at_risk(self, segment: CustomerSegment) -> bool:
        return (
            self.churn_score(segment) >= self.churn_threshold
            or self.recency_ratio(segment) > RECENCY_RATIO_LIMIT
        )

    def value_at_risk(self, segment: CustomerSegment) -> float:
        return segment.customer_count * customer_lifetime_value(segment) * self.churn_score(segment)

    def aggregate_segments(self, metrics: CustomerMetrics) -> SegmentSummary:
        if not metrics.segments:
            return SegmentSummary(most_valuable=None, total_value=0.0, value_at_risk=0.0, at_risk_segments=())

        values = {
            s.segment_id: s.customer_count * customer_lifetime_value(s) for s in metrics.segments
        }
        at_risk = [s for s in metrics.segments if self.at_risk(s)]
        return SegmentSummary(
            most_valuable=max(values, key=values.get),
            total_value=sum(values.values()),
            value_at_risk=sum(self.value_at_risk(s) for s in at_risk),
            at_risk_segments=tuple(s.segment_id for s in at_risk),
        )

    # ── Capabilities ─────────────────────────────────────────────────────

    def detect_risk(self, metrics: CustomerMetrics) -> list[Finding]:
        findings: list[Finding] = []

        for segment in metrics.segments:
            if not self.at_risk(segment):
                continue
            churn = self.churn_score(segment)
            recoverable = self.value_at_risk(segment) * RECOVERABLE_SHARE
            findings.append(Finding(
                domain=self.domain.value,
                category="customer.churn_risk",
                subject=segment.segment_id,
                title=f"Win back {segment.name or segment.segment_id} customers",
                kind=FindingKind.RISK,
                description=(
                    f"Churn score {churn:.2f}; last purchase {segment.days_since_last_purchase:.0f} days ago "
                    f"vs {segment.avg_purchase_interval_days:.0f}-day interval"
                ),
                severity=self.score(churn),
                urgency=self.score(self.recency_ratio(segment) / RECENCY_RATIO_LIMIT),
                impact_kind=ImpactKind.REVENUE,
                impact_estimate=round(recoverable, 2),
                sample_size=segment.customer_count,
                data_completeness=field_completeness(segment, _COMPLETENESS_FIELDS),
                actions=action_plan(
                    "Launch a retention campaign for the segment",
                    "Follow up by email and SMS",
                    owner_role="customer_success",
                    segment_id=segment.segment_id,
                    incentive_value=RETENTION_INCENTIVE,
                ),
                evidence={
                    "churn_score": round(churn, 4),
                    "retention_rate": segment.retention_rate,
                    "clv": round(customer_lifetime_value(segment), 2),
                    "customers": segment.customer_count,
                },
            ))

        if metrics.churn_rate is not None and metrics.churn_rate > PORTFOLIO_CHURN_LIMIT:
            summary = self.aggregate_segments(metrics)
            findings.append(Finding(
                domain=self.domain.value,
                category="customer.churn_rate",
                subject="portfolio",
                title="Launch a retention program",
                kind=FindingKind.RISK,
                description=f"Churn rate {metrics.churn_rate:.0%} above {PORTFOLIO_CHURN_LIMIT:.0%}",
                severity=self.score(metrics.churn_rate / (2 * PORTFOLIO_CHURN_LIMIT)),
                urgency=0.7,
                impact_kind=ImpactKind.REVENUE,
                impact_estimate=round(summary.value_at_risk * RECOVERABLE_SHARE, 2),
                impact_samples=list(metrics.active_customers_series),
                sample_size=sum(s.customer_count for s in metrics.segments) or 1,
                data_completeness=field_completeness(metrics, ("segments", "churn_rate", "active_customers_series")),
                actions=action_plan(
                    "Launch a retention campaign for at-risk segments",
                    owner_role="customer_success",
                    target_segments=list(summary.at_risk_segments),
                    incentive_value=RETENTION_INCENTIVE,
                ),
                evidence={
                    "churn_rate": metrics.churn_rate,
                    "at_risk_segments": list(summary.at_risk_segments),
                },
            ))

        return findings

    def compute_efficiency(self, metrics: CustomerMetrics) -> EfficiencyScore:
        """Customer-weighted retention."""
        customers = sum(s.customer_count for s in metrics.segments)
        if customers == 0:
            return EfficiencyScore(score=None)
        retained = sum(s.customer_count * s.retention_rate for s in metrics.segments)
        summary = self.aggregate_segments(metrics)
        return EfficiencyScore(
            score=retained / customers,
            components={
                "customers": customers,
                "most_valuable_segment": summary.most_valuable,
                "total_value": round(summary.total_value, 2),
                "value_at_risk": round(summary.value_at_risk, 2),
            },
        )

    def rank_opportunities(self, metrics: CustomerMetrics) -> list[Finding]:
        findings: list[Finding] = []
        for segment in metrics.segments:
            if segment.retention_rate < UPSELL_RETENTION or self.at_risk(segment):
                continue
            annual_revenue = segment.customer_count * segment.avg_order_value * segment.purchase_frequency
            findings.append(Finding(
                domain=self.domain.value,
                category="customer.upsell",
                subject=segment.segment_id,
                title=f"Upsell loyal {segment.name or segment.segment_id} customers",
                kind=FindingKind.OPPORTUNITY,
                description=f"Retention {segment.retention_rate:.0%} with low churn risk",
                severity=self.score(segment.retention_rate - self.churn_score(segment) - 0.3),
                urgency=0.3,
                impact_kind=ImpactKind.REVENUE,
                impact_estimate=round(annual_revenue * UPSELL_LIFT, 2),
                sample_size=segment.customer_count,
                data_completeness=field_completeness(segment, _COMPLETENESS_FIELDS),
                actions=action_plan(
                    "Offer premium bundles to the segment",
                    "Introduce a loyalty tier",
                    owner_role="customer_success",
                    segment_id=segment.segment_id,
                ),
                evidence={"clv": round(customer_lifetime_value(segment), 2)},
            ))
        return self.ranked(findings)
