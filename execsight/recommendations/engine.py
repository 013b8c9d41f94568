"""
Recommendation Engine — Findings → prioritized, deduplicated recommendations.

Pipeline:
1. Validate each input finding (malformed → Diagnostic, never fatal)
2. Score confidence from completeness, sample size and category accuracy
3. Deduplicate on (category, subject), keeping the most confident variant
4. Filter by min_confidence / category, sort by priority then confidence
5. Truncate to max_results, assess impact, issue immutable recommendations

Priority is always derived here, from severity × confidence × urgency.
"""

import uuid
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Iterable, Optional

import structlog
from pydantic import ValidationError

from execsight.engine.intervals import DEFAULT_CONFIDENCE_LEVEL, INTERVAL_FLOOR_RATIO
from execsight.engine.simulation import DEFAULT_ITERATIONS, RandomSource, default_random_source
from execsight.recommendations.calibration import BASELINE_ACCURACY, CategoryAccuracy, FeedbackLedger
from execsight.recommendations.confidence import ConfidenceWeights, compute_confidence
from execsight.recommendations.impact import assess_impact
from execsight.recommendations.priority import (
    HIGH_THRESHOLD,
    MEDIUM_THRESHOLD,
    derive_priority,
    priority_score,
)
from execsight.recommendations.schemas import (
    Diagnostic,
    FeedbackRecord,
    Priority,
    Recommendation,
    RecommendationBatch,
    RecommendationOptions,
)
from execsight.schemas.findings import Finding

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class _Candidate:
    index: int
    finding: Finding
    confidence: float
    score: float
    priority: Priority


def new_recommendation_id() -> str:
    return f"rec_{uuid.uuid4().hex[:16]}"


def matches_category(category: str, allowed: frozenset[str]) -> bool:
    """Exact category or its domain prefix ("inventory" matches "inventory.stockout")."""
    return category in allowed or category.split(".", 1)[0] in allowed


class RecommendationEngine:
    """
    Turns analyzer findings into a ranked RecommendationBatch.

    Holds only calibration state. Recommendations already issued are never
    revisited; feedback affects later generate() calls.
    """

    def __init__(
        self,
        weights: ConfidenceWeights = ConfidenceWeights(),
        high_threshold: float = HIGH_THRESHOLD,
        medium_threshold: float = MEDIUM_THRESHOLD,
        baseline_accuracy: float = BASELINE_ACCURACY,
        iterations: int = DEFAULT_ITERATIONS,
        confidence_level: float = DEFAULT_CONFIDENCE_LEVEL,
        floor_ratio: float = INTERVAL_FLOOR_RATIO,
        seed: Optional[int] = None,
        rng: Optional[RandomSource] = None,
    ):
        if iterations <= 0:
            raise ValueError("iterations must be > 0")
        if medium_threshold > high_threshold:
            raise ValueError("medium threshold must not exceed high threshold")
        self.weights = weights
        self.high_threshold = high_threshold
        self.medium_threshold = medium_threshold
        self.iterations = iterations
        self.confidence_level = confidence_level
        self.floor_ratio = floor_ratio
        self.seed = seed
        self._rng = rng
        self.ledger = FeedbackLedger(baseline_accuracy=baseline_accuracy)

    # ── Generation ───────────────────────────────────────────────────────

    def generate(
        self,
        findings: Iterable,
        options: Optional[RecommendationOptions] = None,
    ) -> RecommendationBatch:
        options = options or RecommendationOptions()
        diagnostics: list[Diagnostic] = []

        candidates: dict[tuple[str, str], _Candidate] = {}
        for index, raw in enumerate(findings):
            finding = self._validate(index, raw, diagnostics)
            if finding is None:
                continue
            candidate = self._score(index, finding)
            key = (finding.category, finding.subject)
            kept = candidates.get(key)
            if kept is None or candidate.confidence > kept.confidence:
                candidates[key] = candidate

        selected = [
            c for c in candidates.values()
            if c.confidence >= options.min_confidence
            and (options.category_filter is None or matches_category(c.finding.category, options.category_filter))
        ]
        selected.sort(key=lambda c: (c.priority.rank, -c.confidence, c.index))
        if options.max_results is not None:
            selected = selected[:options.max_results]

        rng = self._rng if self._rng is not None else default_random_source(self.seed)
        recommendations = []
        for candidate in selected:
            recommendation = self._issue(candidate, rng, diagnostics)
            if recommendation is not None:
                recommendations.append(recommendation)

        logger.info(
            "recommendations_generated",
            candidates=len(candidates),
            issued=len(recommendations),
            skipped=len(diagnostics),
            high=sum(1 for r in recommendations if r.priority == Priority.HIGH),
        )
        return RecommendationBatch(
            recommendations=tuple(recommendations),
            diagnostics=tuple(sorted(diagnostics, key=lambda d: d.index)),
        )

    def _validate(self, index: int, raw, diagnostics: list[Diagnostic]) -> Optional[Finding]:
        if isinstance(raw, Finding):
            return raw
        if not isinstance(raw, Mapping):
            diagnostics.append(Diagnostic(
                index=index, reason="unsupported_type", detail=type(raw).__name__,
            ))
            logger.warning("finding_skipped", index=index, reason="unsupported_type")
            return None
        try:
            return Finding.model_validate(raw)
        except ValidationError as e:
            diagnostics.append(Diagnostic(
                index=index, reason="invalid_finding", detail=_summarize_errors(e),
            ))
            logger.warning("finding_skipped", index=index, reason="invalid_finding", errors=e.error_count())
            return None

    def _score(self, index: int, finding: Finding) -> _Candidate:
        confidence = compute_confidence(
            finding.data_completeness,
            finding.sample_size,
            self.ledger.accuracy(finding.category),
            self.weights,
        )
        score = priority_score(finding.severity, confidence, finding.urgency)
        return _Candidate(
            index=index,
            finding=finding,
            confidence=confidence,
            score=score,
            priority=derive_priority(score, self.high_threshold, self.medium_threshold),
        )

    def _issue(
        self,
        candidate: _Candidate,
        rng: RandomSource,
        diagnostics: list[Diagnostic],
    ) -> Optional[Recommendation]:
        finding = candidate.finding
        try:
            impact = assess_impact(
                finding,
                rng=rng,
                iterations=self.iterations,
                confidence_level=self.confidence_level,
                floor_ratio=self.floor_ratio,
            )
        except (ValueError, ArithmeticError) as e:
            diagnostics.append(Diagnostic(index=candidate.index, reason="impact_unavailable", detail=str(e)))
            logger.warning("finding_skipped", index=candidate.index, reason="impact_unavailable", error=str(e))
            return None

        recommendation = Recommendation(
            id=new_recommendation_id(),
            category=finding.category,
            domain=finding.domain,
            subject=finding.subject,
            title=finding.title,
            description=finding.description,
            confidence=candidate.confidence,
            priority=candidate.priority,
            priority_score=candidate.score,
            impact=impact,
            actions=tuple(sorted(finding.actions, key=lambda a: a.order)),
            evidence=dict(finding.evidence),
        )
        self.ledger.register(recommendation.id, recommendation.category)
        return recommendation

    # ── Calibration ──────────────────────────────────────────────────────

    def record_feedback(self, feedback: FeedbackRecord) -> bool:
        """Adjust category accuracy for future runs. Unknown ids are ignored."""
        return self.ledger.record(feedback.recommendation_id, feedback.was_accurate)

    def learning_metrics(self) -> dict[str, CategoryAccuracy]:
        return self.ledger.learning_metrics()


def _summarize_errors(error: ValidationError) -> str:
    return "; ".join(
        f"{'.'.join(str(p) for p in e['loc']) or '<root>'}: {e['msg']}" for e in error.errors()
    )
