"""
Correlation Engine.

Pearson correlation between business metric series, aligned by index.

Problem: a constant series has no linear relationship to report. Returning 0
would read as "uncorrelated" and mislead downstream ranking, and the naive
formula divides by zero.

Solution:
1. Report an explicit "undefined" result (coefficient=None) with a status
2. Clamp valid coefficients into [-1, 1] against floating-point drift
3. Search lag offsets for lead/lag relationships (spend → revenue)
"""

import math
from dataclasses import dataclass
from typing import Optional, Sequence

import structlog

from execsight.engine.series import MetricSeries, StatStatus, finite_sum, mean

logger = structlog.get_logger(__name__)

# ── Configuration ─────────────────────────────────────────────────────────

SIGNIFICANT_CORRELATION: float = 0.7  # |r| at or above this is reported as significant
MIN_LAGGED_OVERLAP: int = 3           # Minimum paired samples for a lagged estimate


@dataclass(frozen=True)
class CorrelationResult:
    """Pearson correlation of two series. coefficient is None when undefined."""
    series_a_name: str
    series_b_name: str
    coefficient: Optional[float]
    sample_size: int
    status: StatStatus
    lag_offset: Optional[int] = None

    @property
    def is_defined(self) -> bool:
        return self.status == StatStatus.OK and self.coefficient is not None

    @property
    def is_significant(self) -> bool:
        return self.is_defined and abs(self.coefficient) >= SIGNIFICANT_CORRELATION


def _pearson(xs: Sequence[float], ys: Sequence[float]) -> tuple[Optional[float], StatStatus]:
    n = len(xs)
    if n < 2:
        return None, StatStatus.INSUFFICIENT_DATA

    mean_x = mean(xs)
    mean_y = mean(ys)
    if mean_x is None or mean_y is None:
        return None, StatStatus.OVERFLOW

    try:
        sxy = finite_sum((x - mean_x) * (y - mean_y) for x, y in zip(xs, ys))
        sxx = finite_sum((x - mean_x) ** 2 for x in xs)
        syy = finite_sum((y - mean_y) ** 2 for y in ys)
    except OverflowError:
        return None, StatStatus.OVERFLOW
    if sxy is None or sxx is None or syy is None:
        return None, StatStatus.OVERFLOW

    if sxx == 0.0 or syy == 0.0:
        return None, StatStatus.ZERO_VARIANCE

    r = sxy / (math.sqrt(sxx) * math.sqrt(syy))
    return max(-1.0, min(1.0, r)), StatStatus.OK


def pearson_correlation(a: MetricSeries, b: MetricSeries) -> CorrelationResult:
    """
    Pearson correlation coefficient of two equal-length series.

    Returns an explicit undefined result (coefficient=None) for:
    - length mismatch (no interpolation is attempted)
    - fewer than 2 samples
    - zero variance in either series
    - values whose squared deviations leave the float range
    """
    if len(a) != len(b):
        return CorrelationResult(
            series_a_name=a.name,
            series_b_name=b.name,
            coefficient=None,
            sample_size=min(len(a), len(b)),
            status=StatStatus.LENGTH_MISMATCH,
        )

    coefficient, status = _pearson(a.values, b.values)
    return CorrelationResult(
        series_a_name=a.name,
        series_b_name=b.name,
        coefficient=coefficient,
        sample_size=len(a),
        status=status,
    )


def lagged_correlation(
    leader: MetricSeries,
    follower: MetricSeries,
    max_lag: int = 4,
) -> CorrelationResult:
    """
    Find the lag at which `leader` best predicts `follower`.

    leader[t] is paired with follower[t + lag] for lag in 0..max_lag.
    The lag with the largest |r| wins; ties go to the shorter lag.
    """
    if max_lag < 0:
        raise ValueError("max_lag must be >= 0")

    if len(leader) != len(follower):
        return CorrelationResult(
            series_a_name=leader.name,
            series_b_name=follower.name,
            coefficient=None,
            sample_size=min(len(leader), len(follower)),
            status=StatStatus.LENGTH_MISMATCH,
        )

    best: Optional[CorrelationResult] = None
    last_status = StatStatus.INSUFFICIENT_DATA

    for lag in range(max_lag + 1):
        overlap = len(leader) - lag
        min_overlap = 2 if lag == 0 else MIN_LAGGED_OVERLAP
        if overlap < min_overlap:
            break
        xs = leader.values[:overlap]
        ys = follower.values[lag:]
        coefficient, status = _pearson(xs, ys)
        last_status = status
        if coefficient is None:
            continue
        if best is None or abs(coefficient) > abs(best.coefficient):
            best = CorrelationResult(
                series_a_name=leader.name,
                series_b_name=follower.name,
                coefficient=coefficient,
                sample_size=overlap,
                status=StatStatus.OK,
                lag_offset=lag,
            )

    if best is None:
        return CorrelationResult(
            series_a_name=leader.name,
            series_b_name=follower.name,
            coefficient=None,
            sample_size=len(leader),
            status=last_status,
        )

    logger.debug(
        "lagged_correlation_found",
        leader=leader.name,
        follower=follower.name,
        lag=best.lag_offset,
        coefficient=round(best.coefficient, 4),
    )
    return best


def correlation_matrix(series: Sequence[MetricSeries]) -> list[CorrelationResult]:
    """Pairwise correlations for every pair of equal-length series."""
    results: list[CorrelationResult] = []
    for i, a in enumerate(series):
        for b in series[i + 1:]:
            if len(a) != len(b):
                continue
            results.append(pearson_correlation(a, b))
    return results
