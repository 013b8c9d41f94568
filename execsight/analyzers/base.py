"""
Base Analyzer — shared contract for the per-domain analyzers.

Every analyzer is a pure transformation DomainMetrics → list[Finding] built
from three capabilities:
- detect_risk: conditions that threaten revenue or raise cost
- compute_efficiency: a 0-1 efficiency score for the domain
- rank_opportunities: upside the business is leaving on the table

Analyzers report raw severity only. Priority is assigned centrally by the
recommendation engine.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import ClassVar, Optional

import structlog

from execsight.engine.series import clamp
from execsight.schemas.domains import Domain
from execsight.schemas.findings import Finding

logger = structlog.get_logger(__name__)

EFFICIENCY_FLOOR: float = 0.7


@dataclass(frozen=True)
class EfficiencyScore:
    """Domain efficiency in [0, 1]; score is None when it cannot be computed."""
    score: Optional[float]
    components: dict = field(default_factory=dict)

    @property
    def is_defined(self) -> bool:
        return self.score is not None


class BaseAnalyzer(ABC):
    domain: ClassVar[Domain]
    metrics_type: ClassVar[type]

    def __init__(self, efficiency_floor: float = EFFICIENCY_FLOOR):
        self.efficiency_floor = efficiency_floor

    def analyze(self, metrics) -> list[Finding]:
        """Run all three capabilities and return the combined findings."""
        if not isinstance(metrics, self.metrics_type):
            raise TypeError(
                f"{type(self).__name__} expects {self.metrics_type.__name__}, "
                f"got {type(metrics).__name__}"
            )

        findings = list(self.detect_risk(metrics))

        efficiency = self.compute_efficiency(metrics)
        if efficiency.is_defined and efficiency.score < self.efficiency_floor:
            findings.extend(self.efficiency_findings(metrics, efficiency))

        findings.extend(self.rank_opportunities(metrics))

        logger.info(
            "domain_analyzed",
            domain=self.domain.value,
            user_id=metrics.user_id,
            findings=len(findings),
            efficiency=round(efficiency.score, 4) if efficiency.is_defined else None,
        )
        return findings

    @abstractmethod
    def detect_risk(self, metrics) -> list[Finding]:
        ...

    @abstractmethod
    def compute_efficiency(self, metrics) -> EfficiencyScore:
        ...

    @abstractmethod
    def rank_opportunities(self, metrics) -> list[Finding]:
        """Opportunity findings, highest severity first."""
        ...

    def efficiency_findings(self, metrics, efficiency: EfficiencyScore) -> list[Finding]:
        """Findings to emit when efficiency falls below the floor."""
        return []

    # ── Helpers ──────────────────────────────────────────────────────────

    @staticmethod
    def ranked(findings: list[Finding]) -> list[Finding]:
        return sorted(findings, key=lambda f: (-f.severity, f.subject))

    @staticmethod
    def score(value: float) -> float:
        return round(clamp(value), 6)
