"""
Confidence Scoring.

    confidence = w_c × completeness + w_n × (1 - exp(-n / 30)) + w_h × accuracy

Weights default to 0.4 / 0.3 / 0.3. The result is saturated into [0, 1]
and never rounded, so ordering between close candidates is preserved.
"""

import math
from dataclasses import dataclass

from execsight.engine.series import clamp

# ── Configuration ─────────────────────────────────────────────────────────

WEIGHT_COMPLETENESS: float = 0.4
WEIGHT_SAMPLE_SIZE: float = 0.3
WEIGHT_HISTORY: float = 0.3
SAMPLE_SCALE: float = 30.0   # n at which the sample factor reaches 1 - 1/e


@dataclass(frozen=True)
class ConfidenceWeights:
    completeness: float = WEIGHT_COMPLETENESS
    sample_size: float = WEIGHT_SAMPLE_SIZE
    history: float = WEIGHT_HISTORY

    def __post_init__(self) -> None:
        if min(self.completeness, self.sample_size, self.history) < 0:
            raise ValueError("confidence weights must be non-negative")


def sample_size_factor(n: int) -> float:
    if n <= 0:
        return 0.0
    return 1.0 - math.exp(-n / SAMPLE_SCALE)


def compute_confidence(
    data_completeness: float,
    sample_size: int,
    historical_accuracy: float,
    weights: ConfidenceWeights = ConfidenceWeights(),
) -> float:
    raw = (
        weights.completeness * data_completeness
        + weights.sample_size * sample_size_factor(sample_size)
        + weights.history * historical_accuracy
    )
    return clamp(raw)
