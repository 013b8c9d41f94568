"""
Operations Analyzer.

Detects:
1. Bottlenecks: processes running above 90% of capacity
2. Overall efficiency: actual output / max output below 0.7
3. Idle capacity: processes below 50% utilization
"""

from typing import Optional

import structlog

from execsight.analyzers.base import BaseAnalyzer, EfficiencyScore
from execsight.schemas.domains import Domain, OperationsMetrics, ProcessLoad, field_completeness
from execsight.schemas.findings import Finding, FindingKind, ImpactKind, action_plan

logger = structlog.get_logger(__name__)

# ── Configuration ─────────────────────────────────────────────────────────

BOTTLENECK_UTILIZATION: float = 0.9
IDLE_UTILIZATION: float = 0.5
DEFAULT_REVENUE_PER_UNIT: float = 100.0
TARGET_UTILIZATION: float = 0.8    # Where a rebalanced process should land

_COMPLETENESS_FIELDS = ("processes", "actual_output", "max_output", "revenue_per_unit", "throughput_series")


class OperationsAnalyzer(BaseAnalyzer):
    """Capacity utilization and throughput efficiency."""

    domain = Domain.OPERATIONS
    metrics_type = OperationsMetrics

    def __init__(
        self,
        bottleneck_utilization: float = BOTTLENECK_UTILIZATION,
        idle_utilization: float = IDLE_UTILIZATION,
        **kwargs,
    ):
        super().__init__(**kwargs)
        self.bottleneck_utilization = bottleneck_utilization
        self.idle_utilization = idle_utilization

    @staticmethod
    def revenue_per_unit(metrics: OperationsMetrics) -> float:
        if metrics.revenue_per_unit is None:
            return DEFAULT_REVENUE_PER_UNIT
        return metrics.revenue_per_unit

    def bottlenecks(self, metrics: OperationsMetrics) -> list[ProcessLoad]:
        return [p for p in metrics.processes if p.utilization > self.bottleneck_utilization]

    @staticmethod
    def overall_efficiency(metrics: OperationsMetrics) -> Optional[float]:
        if metrics.actual_output is None or metrics.max_output is None:
            return None
        return metrics.actual_output / metrics.max_output

    def detect_risk(self, metrics: OperationsMetrics) -> list[Finding]:
        findings: list[Finding] = []
        completeness = field_completeness(metrics, _COMPLETENESS_FIELDS)
        unit_revenue = self.revenue_per_unit(metrics)

        for process in self.bottlenecks(metrics):
            utilization = process.utilization
            # Throughput lost once the queue saturates past full capacity
            constrained = max(process.throughput - process.capacity * self.bottleneck_utilization, 0.0)
            findings.append(Finding(
                domain=self.domain.value,
                category="operations.bottleneck",
                subject=process.process_id,
                title=f"Relieve bottleneck at {process.name or process.process_id}",
                kind=FindingKind.RISK,
                description=f"Utilization {utilization:.0%} above {self.bottleneck_utilization:.0%}",
                severity=self.score(0.5 + (utilization - self.bottleneck_utilization) * 5),
                urgency=self.score(utilization),
                impact_kind=ImpactKind.REVENUE,
                impact_estimate=round(constrained * unit_revenue, 2),
                sample_size=len(metrics.throughput_series) or 1,
                data_completeness=completeness,
                actions=action_plan(
                    f"Add capacity or shifts to {process.name or process.process_id}",
                    "Re-route work to under-utilized processes",
                    owner_role="operations_manager",
                    process_id=process.process_id,
                    target_utilization=TARGET_UTILIZATION,
                ),
                evidence={
                    "utilization": round(utilization, 4),
                    "throughput": process.throughput,
                    "capacity": process.capacity,
                },
            ))
        return findings

    def compute_efficiency(self, metrics: OperationsMetrics) -> EfficiencyScore:
        efficiency = self.overall_efficiency(metrics)
        if efficiency is None:
            return EfficiencyScore(score=None)
        return EfficiencyScore(
            score=min(efficiency, 1.0),
            components={
                "actual_output": metrics.actual_output,
                "max_output": metrics.max_output,
                "bottlenecks": len(self.bottlenecks(metrics)),
            },
        )

    def efficiency_findings(self, metrics: OperationsMetrics, efficiency: EfficiencyScore) -> list[Finding]:
        gap_units = metrics.max_output * self.efficiency_floor - metrics.actual_output
        return [Finding(
            domain=self.domain.value,
            category="operations.efficiency",
            subject="portfolio",
            title="Close the operational efficiency gap",
            kind=FindingKind.EFFICIENCY,
            description=f"Output at {efficiency.score:.0%} of maximum (floor {self.efficiency_floor:.0%})",
            severity=self.score((self.efficiency_floor - efficiency.score) / self.efficiency_floor),
            urgency=0.6,
            impact_kind=ImpactKind.REVENUE,
            impact_estimate=round(max(gap_units, 0.0) * self.revenue_per_unit(metrics), 2),
            impact_samples=list(metrics.throughput_series),
            sample_size=len(metrics.throughput_series) or 1,
            data_completeness=field_completeness(metrics, _COMPLETENESS_FIELDS),
            actions=action_plan(
                "Map downtime and changeover losses",
                "Standardize the slowest workflows",
                owner_role="operations_manager",
            ),
            evidence=dict(efficiency.components),
        )]

    def rank_opportunities(self, metrics: OperationsMetrics) -> list[Finding]:
        findings: list[Finding] = []
        completeness = field_completeness(metrics, _COMPLETENESS_FIELDS)
        unit_revenue = self.revenue_per_unit(metrics)

        for process in metrics.processes:
            utilization = process.utilization
            if utilization >= self.idle_utilization:
                continue
            spare = process.capacity * TARGET_UTILIZATION - process.throughput
            findings.append(Finding(
                domain=self.domain.value,
                category="operations.idle_capacity",
                subject=process.process_id,
                title=f"Put idle capacity at {process.name or process.process_id} to work",
                kind=FindingKind.OPPORTUNITY,
                description=f"Utilization {utilization:.0%} below {self.idle_utilization:.0%}",
                severity=self.score((self.idle_utilization - utilization) / self.idle_utilization),
                urgency=0.3,
                impact_kind=ImpactKind.REVENUE,
                impact_estimate=round(max(spare, 0.0) * unit_revenue, 2),
                sample_size=len(metrics.throughput_series) or 1,
                data_completeness=completeness,
                actions=action_plan(
                    "Shift load from bottlenecked processes",
                    "Consolidate or repurpose idle resources",
                    owner_role="operations_manager",
                    process_id=process.process_id,
                ),
                evidence={"utilization": round(utilization, 4), "spare_units": round(max(spare, 0.0), 2)},
            ))
        return self.ranked(findings)
