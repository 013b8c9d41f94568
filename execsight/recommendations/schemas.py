"""
Recommendation Schemas.

Recommendations are immutable once issued. Feedback adjusts future
confidence only; it never rewrites a recommendation already handed out.
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from enum import StrEnum
from typing import Any, Iterator, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from execsight.schemas.findings import ActionStep, ImpactKind


class Priority(StrEnum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"

    @property
    def rank(self) -> int:
        """Sort key: high first."""
        return _PRIORITY_RANK[self]


_PRIORITY_RANK = {Priority.HIGH: 0, Priority.MEDIUM: 1, Priority.LOW: 2}


class ImpactAssessment(BaseModel):
    """
    Impact band of a recommendation.

    Revenue: worst ≤ likely ≤ best. Cost: best ≤ likely ≤ worst.
    """
    model_config = ConfigDict(frozen=True, allow_inf_nan=False)

    kind: ImpactKind
    best_case: float
    likely_case: float
    worst_case: float
    confidence_interval_low: float
    confidence_interval_high: float
    confidence_level: float = Field(gt=0, lt=1)

    @model_validator(mode="after")
    def _ordered(self) -> "ImpactAssessment":
        if self.kind == ImpactKind.REVENUE:
            ok = self.worst_case <= self.likely_case <= self.best_case
        else:
            ok = self.best_case <= self.likely_case <= self.worst_case
        if not ok:
            raise ValueError(f"impact cases out of order for {self.kind} impact")
        if self.confidence_interval_low > self.confidence_interval_high:
            raise ValueError("confidence interval low must not exceed high")
        return self

    @property
    def interval_width(self) -> float:
        return self.confidence_interval_high - self.confidence_interval_low


class Recommendation(BaseModel):
    """An issued, prioritized recommendation. Never mutated after creation."""
    model_config = ConfigDict(frozen=True, allow_inf_nan=False)

    id: str
    category: str
    domain: str
    subject: str
    title: str
    description: str = ""
    confidence: float = Field(ge=0, le=1)
    priority: Priority
    priority_score: float = Field(ge=0, le=1)
    impact: ImpactAssessment
    actions: tuple[ActionStep, ...] = ()
    evidence: dict[str, Any] = Field(default_factory=dict)
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class RecommendationOptions(BaseModel):
    """Post-generation filters."""
    model_config = ConfigDict(frozen=True)

    min_confidence: float = Field(default=0.0, ge=0, le=1)
    category_filter: Optional[frozenset[str]] = None
    max_results: Optional[int] = Field(default=None, ge=0)


class FeedbackRecord(BaseModel):
    model_config = ConfigDict(frozen=True)

    recommendation_id: str
    was_accurate: bool
    notes: Optional[str] = None


class Diagnostic(BaseModel):
    """Why an input finding was skipped."""
    model_config = ConfigDict(frozen=True)

    index: int
    reason: str
    detail: str = ""


@dataclass(frozen=True)
class RecommendationBatch:
    """Output of one generation run; iterates over the recommendations."""
    recommendations: tuple[Recommendation, ...] = ()
    diagnostics: tuple[Diagnostic, ...] = ()

    def __iter__(self) -> Iterator[Recommendation]:
        return iter(self.recommendations)

    def __len__(self) -> int:
        return len(self.recommendations)

    def __getitem__(self, index: int) -> Recommendation:
        return self.recommendations[index]

    def by_priority(self, priority: Priority) -> list[Recommendation]:
        return [r for r in self.recommendations if r.priority == priority]
