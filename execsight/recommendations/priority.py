"""
Priority Derivation.

    score = impact_magnitude × confidence × urgency

score ≥ 0.75 → high, 0.4 ≤ score < 0.75 → medium, otherwise low.
Both boundaries are inclusive on the upper band.
"""

from execsight.engine.series import clamp
from execsight.recommendations.schemas import Priority

HIGH_THRESHOLD: float = 0.75
MEDIUM_THRESHOLD: float = 0.4


def priority_score(impact_magnitude: float, confidence: float, urgency: float) -> float:
    return clamp(impact_magnitude) * clamp(confidence) * clamp(urgency)


def derive_priority(
    score: float,
    high_threshold: float = HIGH_THRESHOLD,
    medium_threshold: float = MEDIUM_THRESHOLD,
) -> Priority:
    if medium_threshold > high_threshold:
        raise ValueError("medium threshold must not exceed high threshold")
    if score >= high_threshold:
        return Priority.HIGH
    if score >= medium_threshold:
        return Priority.MEDIUM
    return Priority.LOW
