"""
Feedback Calibration — learn per-category accuracy from outcomes.

Each recommendation category carries a Beta prior centred on the baseline
accuracy. Feedback records are Beta-Binomial updates:
    prior: Beta(α, β) with α / (α + β) = baseline
    data:  k accurate out of n
    posterior mean: (α + k) / (α + β + n)

The posterior mean feeds the historical-accuracy term of confidence for
FUTURE generation runs only.
"""

from dataclasses import dataclass
from typing import Optional

import structlog

logger = structlog.get_logger(__name__)

# ── Configuration ─────────────────────────────────────────────────────────

BASELINE_ACCURACY: float = 0.75
PRIOR_STRENGTH: float = 4.0   # Pseudo-observations behind the baseline


@dataclass(frozen=True)
class CategoryAccuracy:
    category: str
    accurate: int
    inaccurate: int
    accuracy: float              # Posterior mean
    raw_accuracy: Optional[float]  # accurate / total, None without feedback

    @property
    def total(self) -> int:
        return self.accurate + self.inaccurate


class FeedbackLedger:
    """Tracks which category each issued recommendation belongs to and its outcomes."""

    def __init__(
        self,
        baseline_accuracy: float = BASELINE_ACCURACY,
        prior_strength: float = PRIOR_STRENGTH,
    ):
        if not 0 <= baseline_accuracy <= 1:
            raise ValueError("baseline_accuracy must be in [0, 1]")
        if prior_strength <= 0:
            raise ValueError("prior_strength must be > 0")
        self.baseline_accuracy = baseline_accuracy
        self.prior_alpha = baseline_accuracy * prior_strength
        self.prior_beta = (1 - baseline_accuracy) * prior_strength

        self._issued: dict[str, str] = {}
        self._counts: dict[str, list[int]] = {}   # category -> [accurate, inaccurate]

    def register(self, recommendation_id: str, category: str) -> None:
        self._issued[recommendation_id] = category

    def record(self, recommendation_id: str, was_accurate: bool) -> bool:
        """Apply one outcome. Returns False for ids this ledger never issued."""
        category = self._issued.get(recommendation_id)
        if category is None:
            logger.warning("feedback_unknown_recommendation", recommendation_id=recommendation_id)
            return False

        counts = self._counts.setdefault(category, [0, 0])
        counts[0 if was_accurate else 1] += 1
        logger.info(
            "feedback_recorded",
            recommendation_id=recommendation_id,
            category=category,
            was_accurate=was_accurate,
            accuracy=round(self.accuracy(category), 4),
        )
        return True

    def accuracy(self, category: str) -> float:
        accurate, inaccurate = self._counts.get(category, (0, 0))
        return (self.prior_alpha + accurate) / (
            self.prior_alpha + self.prior_beta + accurate + inaccurate
        )

    def category_accuracy(self, category: str) -> CategoryAccuracy:
        accurate, inaccurate = self._counts.get(category, (0, 0))
        total = accurate + inaccurate
        return CategoryAccuracy(
            category=category,
            accurate=accurate,
            inaccurate=inaccurate,
            accuracy=self.accuracy(category),
            raw_accuracy=accurate / total if total else None,
        )

    def learning_metrics(self) -> dict[str, CategoryAccuracy]:
        return {category: self.category_accuracy(category) for category in sorted(self._counts)}
