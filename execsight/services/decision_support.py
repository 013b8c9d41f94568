"""
Decision Support Service — one user's end-to-end analysis run.

Pipeline:
1. Aggregate domain metrics (concurrent, failure-isolated)
2. Run each available domain through its analyzer
3. Correlate the domains' key series across roles
4. Rank findings into a RecommendationBatch

An analyzer that raises for one domain is recorded and skipped; the other
domains still produce recommendations.
"""

from dataclasses import dataclass, field
from typing import Optional, Sequence

import structlog

from execsight.aggregation.aggregator import AggregatedView, CrossRoleAggregator
from execsight.aggregation.sources import DomainSource
from execsight.aggregation.summary import ExecutiveSummary, summarize
from execsight.analyzers.base import BaseAnalyzer
from execsight.analyzers.registry import build_analyzers
from execsight.config import Settings
from execsight.engine.correlation import CorrelationResult, correlation_matrix
from execsight.recommendations.confidence import ConfidenceWeights
from execsight.recommendations.engine import RecommendationEngine
from execsight.recommendations.schemas import FeedbackRecord, RecommendationBatch, RecommendationOptions
from execsight.schemas.domains import Domain, TimeWindow
from execsight.schemas.findings import Finding

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class DecisionSupportReport:
    view: AggregatedView
    batch: RecommendationBatch
    summary: ExecutiveSummary
    correlations: tuple[CorrelationResult, ...] = ()
    analyzer_failures: dict[str, str] = field(default_factory=dict)

    @property
    def significant_correlations(self) -> list[CorrelationResult]:
        return [c for c in self.correlations if c.is_significant]


class DecisionSupportService:
    def __init__(
        self,
        aggregator: Optional[CrossRoleAggregator] = None,
        analyzers: Optional[dict[Domain, BaseAnalyzer]] = None,
        engine: Optional[RecommendationEngine] = None,
        default_options: Optional[RecommendationOptions] = None,
    ):
        self.aggregator = aggregator or CrossRoleAggregator()
        self.analyzers = analyzers if analyzers is not None else build_analyzers()
        self.engine = engine or RecommendationEngine()
        self.default_options = default_options or RecommendationOptions()

    @classmethod
    def from_settings(cls, config: Settings) -> "DecisionSupportService":
        return cls(
            aggregator=CrossRoleAggregator(
                max_retries=config.retry_max_retries,
                retry_delay=config.retry_delay_seconds,
                fetch_timeout=config.fetch_timeout_seconds,
            ),
            analyzers=build_analyzers(config),
            engine=RecommendationEngine(
                weights=ConfidenceWeights(
                    completeness=config.weight_completeness,
                    sample_size=config.weight_sample_size,
                    history=config.weight_history,
                ),
                high_threshold=config.priority_high_threshold,
                medium_threshold=config.priority_medium_threshold,
                baseline_accuracy=config.baseline_accuracy,
                iterations=config.monte_carlo_iterations,
                confidence_level=config.confidence_level,
                floor_ratio=config.interval_floor_ratio,
                seed=config.monte_carlo_seed,
            ),
            default_options=RecommendationOptions(min_confidence=config.min_confidence),
        )

    async def run(
        self,
        user_id: str,
        sources: Sequence[DomainSource],
        window: TimeWindow,
        options: Optional[RecommendationOptions] = None,
    ) -> DecisionSupportReport:
        view = await self.aggregator.aggregate(user_id, sources, window)

        findings: list[Finding] = []
        failures: dict[str, str] = {}
        for domain in view.available_domains:
            analyzer = self.analyzers.get(domain)
            if analyzer is None:
                continue
            try:
                findings.extend(analyzer.analyze(view.data(domain)))
            except Exception as e:
                failures[domain.value] = f"{type(e).__name__}: {e}"
                logger.error("analyzer_failed", user_id=user_id, domain=domain.value, error=str(e), exc_info=True)

        correlations = self.cross_domain_correlations(view)
        batch = self.engine.generate(findings, options or self.default_options)

        logger.info(
            "decision_support_run",
            user_id=user_id,
            findings=len(findings),
            recommendations=len(batch),
            analyzer_failures=len(failures),
            partial_failure=view.partial_failure,
        )
        return DecisionSupportReport(
            view=view,
            batch=batch,
            summary=summarize(view, self.analyzers.get(Domain.CUSTOMER)),
            correlations=tuple(correlations),
            analyzer_failures=failures,
        )

    @staticmethod
    def cross_domain_correlations(view: AggregatedView) -> list[CorrelationResult]:
        """Pairwise correlation of key series that come from different domains."""
        series = []
        for domain in view.available_domains:
            series.extend(view.data(domain).key_series())
        return [
            result for result in correlation_matrix(series)
            if result.series_a_name.split(".", 1)[0] != result.series_b_name.split(".", 1)[0]
        ]

    def record_feedback(self, feedback: FeedbackRecord) -> bool:
        return self.engine.record_feedback(feedback)
