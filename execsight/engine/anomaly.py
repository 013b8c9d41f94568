"""
Anomaly Detection.

Flags samples whose z-score magnitude exceeds a threshold, with location and
scale computed once over the WHOLE series (not a rolling window).

Two estimators:
- classical: sample mean / sample standard deviation
- robust (default): median / MAD, falling back to the mean absolute deviation
  when more than half the samples are identical

The robust estimator matters on short business series: with the classical
estimator a single spike in n points can never score above (n-1)/√n, so a
5-point series could never flag anything at a 2.5 threshold.
"""

import math
from dataclasses import dataclass
from typing import Literal

import structlog

from execsight.engine.series import MetricSeries, mean, median, sample_std

logger = structlog.get_logger(__name__)

# ── Configuration ─────────────────────────────────────────────────────────

DEFAULT_Z_THRESHOLD: float = 2.5
HIGH_SEVERITY_Z: float = 4.0
MAD_SCALE: float = 1.4826          # MAD → σ for normal data
MEAN_AD_SCALE: float = 1.253314    # mean absolute deviation → σ for normal data
MODIFIED_Z_CUTOFF: float = 3.5     # Iglewicz-Hoaglin outlier cutoff

AnomalyMethod = Literal["robust", "classical"]


@dataclass(frozen=True)
class Anomaly:
    """A sample that deviates beyond the threshold."""
    index: int
    value: float
    z_score: float
    deviation: float    # value - center (mean or median)

    @property
    def severity(self) -> str:
        return "high" if abs(self.z_score) > HIGH_SEVERITY_Z else "medium"


def _robust_location_scale(values: tuple[float, ...]) -> tuple[float, float]:
    center = median(values)
    abs_dev = [abs(v - center) for v in values]
    mad = median(abs_dev)
    if mad > 0:
        return center, MAD_SCALE * mad
    mean_ad = mean(abs_dev)
    return center, MEAN_AD_SCALE * mean_ad


def _classical_location_scale(values: tuple[float, ...]) -> tuple[float, float]:
    return mean(values), sample_std(values)


def detect_anomalies(
    series: MetricSeries,
    threshold: float = DEFAULT_Z_THRESHOLD,
    method: AnomalyMethod = "robust",
) -> list[Anomaly]:
    """
    Flag points whose |z| exceeds `threshold`.

    Empty and single-point series yield []. A series with no spread
    (scale 0) yields []: nothing can deviate from a constant.
    Deterministic; no randomness.
    """
    if threshold <= 0:
        raise ValueError("threshold must be positive")

    values = series.values
    if len(values) < 2:
        return []

    if method == "robust":
        center, scale = _robust_location_scale(values)
    elif method == "classical":
        center, scale = _classical_location_scale(values)
    else:
        raise ValueError(f"Unknown anomaly method: {method}")

    if not scale or not math.isfinite(scale):
        return []

    anomalies: list[Anomaly] = []
    for i, v in enumerate(values):
        deviation = v - center
        z = deviation / scale
        if abs(z) > threshold:
            anomalies.append(Anomaly(
                index=i,
                value=v,
                z_score=round(z, 6),
                deviation=round(deviation, 6),
            ))

    if anomalies:
        logger.debug(
            "anomalies_detected",
            series=series.name,
            method=method,
            n_samples=len(values),
            n_anomalies=len(anomalies),
        )
    return anomalies


def remove_outliers(values: list[float]) -> list[float]:
    """
    Drop outliers using the modified z-score (MAD based).

    Falls back to a classical |z| <= 3 filter when MAD is zero.
    """
    if len(values) < 2:
        return list(values)

    std = sample_std(values)
    if not std:
        return list(values)

    center = median(values)
    mad = median([abs(v - center) for v in values])

    if mad == 0:
        m = mean(values)
        return [v for v in values if abs((v - m) / std) <= 3.0]

    return [v for v in values if 0.6745 * abs(v - center) / mad <= MODIFIED_Z_CUTOFF]
