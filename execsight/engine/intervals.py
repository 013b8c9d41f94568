"""
Confidence Interval Estimation.

Normal approximation: mean ± z × s / √n, with s the sample standard deviation.

Small samples (n < 5) of near-identical values give spuriously tight
intervals, so the interval is widened to a stability floor: total width is
never below `floor_ratio` × |mean| (10% by default).
"""

import math
from dataclasses import dataclass
from statistics import NormalDist
from typing import Optional, Sequence

import structlog

from execsight.engine.series import StatStatus, mean, sample_std

logger = structlog.get_logger(__name__)

# ── Configuration ─────────────────────────────────────────────────────────

DEFAULT_CONFIDENCE_LEVEL: float = 0.95
INTERVAL_FLOOR_RATIO: float = 0.10
SMALL_SAMPLE_SIZE: int = 5

_Z_TABLE: dict[float, float] = {
    0.80: 1.282,
    0.90: 1.645,
    0.95: 1.96,
    0.99: 2.576,
}


def z_multiplier(confidence_level: float) -> float:
    """Two-sided normal critical value (1.96 for 95%)."""
    if not 0 < confidence_level < 1:
        raise ValueError("confidence_level must be in (0, 1)")
    tabled = _Z_TABLE.get(round(confidence_level, 4))
    if tabled is not None:
        return tabled
    return NormalDist().inv_cdf((1 + confidence_level) / 2)


@dataclass(frozen=True)
class IntervalEstimate:
    """A confidence interval; low/high are None when undefined."""
    low: Optional[float]
    high: Optional[float]
    mean: Optional[float]
    margin: Optional[float]
    n: int
    confidence_level: float
    status: StatStatus
    floor_applied: bool = False

    @property
    def is_defined(self) -> bool:
        return self.status == StatStatus.OK

    @property
    def width(self) -> Optional[float]:
        if self.low is None or self.high is None:
            return None
        return self.high - self.low

    @property
    def is_small_sample(self) -> bool:
        return self.n < SMALL_SAMPLE_SIZE


def apply_width_floor(
    low: float,
    high: float,
    center: float,
    floor_ratio: float = INTERVAL_FLOOR_RATIO,
) -> tuple[float, float, bool]:
    """Widen [low, high] symmetrically about its midpoint to the floor width."""
    min_width = floor_ratio * abs(center)
    if high - low >= min_width:
        return low, high, False
    mid = (low + high) / 2
    half = min_width / 2
    return mid - half, mid + half, True


def confidence_interval(
    samples: Sequence[float],
    confidence_level: float = DEFAULT_CONFIDENCE_LEVEL,
    floor_ratio: float = INTERVAL_FLOOR_RATIO,
) -> IntervalEstimate:
    """
    Confidence interval for the mean of `samples`.

    Returns an INSUFFICIENT_DATA estimate for n < 2 (no variance).
    """
    z = z_multiplier(confidence_level)
    n = len(samples)

    if n < 2:
        return IntervalEstimate(
            low=None, high=None, mean=mean(samples), margin=None,
            n=n, confidence_level=confidence_level,
            status=StatStatus.INSUFFICIENT_DATA,
        )

    if any(not math.isfinite(s) for s in samples):
        raise ValueError("samples must be finite")

    m = mean(samples)
    s = sample_std(samples)
    margin = z * s / math.sqrt(n) if m is not None and s is not None else math.inf
    if not (math.isfinite(margin) and math.isfinite(m - margin) and math.isfinite(m + margin)):
        logger.warning("interval_overflow", n=n)
        return IntervalEstimate(
            low=None, high=None, mean=m, margin=None,
            n=n, confidence_level=confidence_level,
            status=StatStatus.OVERFLOW,
        )

    low, high, floored = apply_width_floor(m - margin, m + margin, m, floor_ratio)
    if floored:
        logger.debug(
            "interval_floor_applied",
            n=n,
            mean=round(m, 4),
            raw_margin=round(margin, 6),
        )

    return IntervalEstimate(
        low=low,
        high=high,
        mean=m,
        margin=(high - low) / 2,
        n=n,
        confidence_level=confidence_level,
        status=StatStatus.OK,
        floor_applied=floored,
    )
