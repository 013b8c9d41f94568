"""
Marketing Analyzer.

Detects:
1. Underperforming channels: ROI (revenue / spend) below minimum (< 1.5)
2. Budget reallocation: move spend from underperformers to top performers (> 3)
3. Spend → revenue lead/lag relationship via lagged Pearson correlation

Attribution spreads conversion-path value over touchpoints using
first-touch, last-touch or linear models.
"""

from collections import defaultdict
from enum import StrEnum
from typing import Optional

import structlog

from execsight.analyzers.base import BaseAnalyzer, EfficiencyScore
from execsight.engine.correlation import SIGNIFICANT_CORRELATION, lagged_correlation
from execsight.engine.series import MetricSeries, mean
from execsight.schemas.domains import (
    ChannelPerformance,
    ConversionPath,
    Domain,
    MarketingMetrics,
    field_completeness,
)
from execsight.schemas.findings import Finding, FindingKind, ImpactKind, action_plan

logger = structlog.get_logger(__name__)

# ── Configuration ─────────────────────────────────────────────────────────

ROI_MINIMUM: float = 1.5
ROI_TOP_PERFORMER: float = 3.0
MAX_LAG_PERIODS: int = 4
LAG_UPLIFT_SHARE: float = 0.05   # Revenue uplift assumed from lag-aware scheduling

_COMPLETENESS_FIELDS = ("channels", "conversion_paths", "spend_series", "revenue_series")


class AttributionModel(StrEnum):
    FIRST_TOUCH = "first_touch"
    LAST_TOUCH = "last_touch"
    LINEAR = "linear"


def attribute(paths: list[ConversionPath], model: AttributionModel) -> dict[str, float]:
    """Distribute conversion value over channels under `model`."""
    credited: dict[str, float] = defaultdict(float)
    for path in paths:
        if model == AttributionModel.FIRST_TOUCH:
            credited[path.touchpoints[0]] += path.value
        elif model == AttributionModel.LAST_TOUCH:
            credited[path.touchpoints[-1]] += path.value
        else:
            share = path.value / len(path.touchpoints)
            for channel in path.touchpoints:
                credited[channel] += share
    return dict(credited)


class MarketingAnalyzer(BaseAnalyzer):
    """Channel ROI, attribution and spend/revenue timing."""

    domain = Domain.MARKETING
    metrics_type = MarketingMetrics

    def __init__(
        self,
        roi_minimum: float = ROI_MINIMUM,
        roi_top_performer: float = ROI_TOP_PERFORMER,
        max_lag: int = MAX_LAG_PERIODS,
        significant_correlation: float = SIGNIFICANT_CORRELATION,
        **kwargs,
    ):
        super().__init__(**kwargs)
        self.roi_minimum = roi_minimum
        self.roi_top_performer = roi_top_performer
        self.max_lag = max_lag
        self.significant_correlation = significant_correlation

    # ── Public calculations ──────────────────────────────────────────────

    @staticmethod
    def channel_roi(channel: ChannelPerformance) -> Optional[float]:
        if channel.spend <= 0:
            return None
        return channel.revenue / channel.spend

    def attribution_report(self, metrics: MarketingMetrics) -> dict[str, dict[str, float]]:
        return {
            model.value: attribute(metrics.conversion_paths, model)
            for model in AttributionModel
        }

    @staticmethod
    def customer_acquisition_cost(metrics: MarketingMetrics) -> Optional[float]:
        new_customers = sum(c.new_customers for c in metrics.channels)
        if new_customers == 0:
            return None
        return sum(c.spend for c in metrics.channels) / new_customers

    def underperformers(self, metrics: MarketingMetrics) -> list[ChannelPerformance]:
        return [
            c for c in metrics.channels
            if (roi := self.channel_roi(c)) is not None and roi < self.roi_minimum
        ]

    def top_performers(self, metrics: MarketingMetrics) -> list[ChannelPerformance]:
        return [
            c for c in metrics.channels
            if (roi := self.channel_roi(c)) is not None and roi > self.roi_top_performer
        ]

    def reallocation_impact(self, metrics: MarketingMetrics) -> float:
        """Extra revenue from moving underperformer budgets to top performers."""
        top = self.top_performers(metrics)
        if not top:
            return 0.0
        moved = sum(c.spend for c in self.underperformers(metrics))
        avg_top_roi = mean([self.channel_roi(c) for c in top])
        return moved * (avg_top_roi - self.roi_minimum)

    # ── Capabilities ─────────────────────────────────────────────────────

    def detect_risk(self, metrics: MarketingMetrics) -> list[Finding]:
        findings: list[Finding] = []
        linear = attribute(metrics.conversion_paths, AttributionModel.LINEAR)
        completeness = field_completeness(metrics, _COMPLETENESS_FIELDS)

        for channel in self.underperformers(metrics):
            roi = self.channel_roi(channel)
            wasted = channel.spend * (1 - roi / self.roi_minimum)
            attributed = linear.get(channel.channel)
            findings.append(Finding(
                domain=self.domain.value,
                category="marketing.underperforming_channel",
                subject=channel.channel,
                title=f"Cut or rework {channel.channel} spend",
                kind=FindingKind.RISK,
                description=f"ROI {roi:.2f} below minimum {self.roi_minimum:.2f}",
                severity=self.score((self.roi_minimum - roi) / self.roi_minimum),
                urgency=0.6,
                impact_kind=ImpactKind.COST,
                impact_estimate=round(wasted, 2),
                sample_size=max(channel.conversions, 1),
                data_completeness=completeness,
                actions=action_plan(
                    f"Reduce {channel.channel} budget",
                    "Audit targeting and creative",
                    owner_role="marketing_manager",
                    channel=channel.channel,
                ),
                evidence={
                    "roi": round(roi, 4),
                    "spend": channel.spend,
                    "revenue": channel.revenue,
                    "linear_attributed_revenue": round(attributed, 2) if attributed is not None else None,
                },
            ))
        return findings

    def compute_efficiency(self, metrics: MarketingMetrics) -> EfficiencyScore:
        spend = sum(c.spend for c in metrics.channels)
        if spend <= 0:
            return EfficiencyScore(score=None)
        revenue = sum(c.revenue for c in metrics.channels)
        blended = revenue / spend
        return EfficiencyScore(
            score=min(blended / self.roi_top_performer, 1.0),
            components={
                "blended_roi": round(blended, 4),
                "total_spend": spend,
                "total_revenue": revenue,
                "cac": self.customer_acquisition_cost(metrics),
            },
        )

    def efficiency_findings(self, metrics: MarketingMetrics, efficiency: EfficiencyScore) -> list[Finding]:
        spend = efficiency.components["total_spend"]
        blended = efficiency.components["blended_roi"]
        target_revenue = spend * self.roi_top_performer * self.efficiency_floor
        gap = max(target_revenue - efficiency.components["total_revenue"], 0.0)
        return [Finding(
            domain=self.domain.value,
            category="marketing.blended_roi",
            subject="portfolio",
            title="Raise blended marketing ROI",
            kind=FindingKind.EFFICIENCY,
            description=f"Blended ROI {blended:.2f} across {len(metrics.channels)} channels",
            severity=self.score(1.0 - efficiency.score),
            urgency=0.5,
            impact_kind=ImpactKind.REVENUE,
            impact_estimate=round(gap, 2),
            sample_size=len(metrics.channels),
            data_completeness=field_completeness(metrics, _COMPLETENESS_FIELDS),
            actions=action_plan(
                "Rebalance the channel mix toward proven channels",
                "Set per-channel ROI guardrails",
                owner_role="marketing_manager",
            ),
            evidence=dict(efficiency.components),
        )]

    def rank_opportunities(self, metrics: MarketingMetrics) -> list[Finding]:
        findings: list[Finding] = []
        completeness = field_completeness(metrics, _COMPLETENESS_FIELDS)

        # ── Opportunity 1: Budget reallocation ───────────────────────
        under = self.underperformers(metrics)
        top = self.top_performers(metrics)
        if under and top:
            moved = sum(c.spend for c in under)
            total_spend = sum(c.spend for c in metrics.channels)
            findings.append(Finding(
                domain=self.domain.value,
                category="marketing.budget_reallocation",
                subject="portfolio",
                title="Reallocate marketing budget",
                kind=FindingKind.OPPORTUNITY,
                description=f"{len(under)} channels below ROI {self.roi_minimum}, {len(top)} above {self.roi_top_performer}",
                severity=self.score(moved / total_spend),
                urgency=0.6,
                impact_kind=ImpactKind.REVENUE,
                impact_estimate=round(self.reallocation_impact(metrics), 2),
                sample_size=len(metrics.channels),
                data_completeness=completeness,
                actions=action_plan(
                    "Move budget out of underperforming channels",
                    "Scale top-performing channels",
                    "Re-measure ROI after 14 days",
                    owner_role="marketing_manager",
                    source_channels=[c.channel for c in under],
                    target_channels=[c.channel for c in top],
                    amount=moved,
                ),
                evidence={"attribution": self.attribution_report(metrics)},
            ))

        # ── Opportunity 2: Spend leads revenue ───────────────────────
        lag = self._spend_revenue_lag(metrics)
        if lag is not None and lag.lag_offset and lag.coefficient >= self.significant_correlation:
            baseline = mean(metrics.revenue_series) or 0.0
            findings.append(Finding(
                domain=self.domain.value,
                category="marketing.spend_revenue_lag",
                subject="portfolio",
                title=f"Launch campaigns {lag.lag_offset} period(s) ahead of demand",
                kind=FindingKind.OPPORTUNITY,
                description=f"Spend correlates with revenue {lag.lag_offset} period(s) later (r={lag.coefficient:.2f})",
                severity=self.score(lag.coefficient * 0.6),
                urgency=0.3,
                impact_kind=ImpactKind.REVENUE,
                impact_estimate=round(baseline * LAG_UPLIFT_SHARE * lag.coefficient, 2),
                impact_samples=list(metrics.revenue_series),
                sample_size=lag.sample_size,
                data_completeness=completeness,
                actions=action_plan(
                    f"Shift campaign start dates {lag.lag_offset} period(s) earlier",
                    owner_role="marketing_manager",
                    lag_periods=lag.lag_offset,
                ),
                evidence={"lag_offset": lag.lag_offset, "coefficient": round(lag.coefficient, 4)},
            ))

        return self.ranked(findings)

    def _spend_revenue_lag(self, metrics: MarketingMetrics):
        if not metrics.spend_series or len(metrics.spend_series) != len(metrics.revenue_series):
            return None
        result = lagged_correlation(
            MetricSeries.of("marketing.spend", metrics.spend_series),
            MetricSeries.of("marketing.revenue", metrics.revenue_series),
            max_lag=self.max_lag,
        )
        return result if result.is_defined else None
