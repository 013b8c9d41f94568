"""
Trend, Seasonality & Forecast helpers.

Lightweight descriptive tools for short business series:
- half-over-half relative growth → direction + strength
- least-squares slope for cash-flow drift
- fixed-period seasonality check (quarterly by default)
- naive compound forecast
- volatility of period-over-period returns
"""

import math
from dataclasses import dataclass
from enum import StrEnum
from typing import Optional, Sequence

from execsight.engine.series import StatStatus, finite_sum, mean, sample_std

# ── Configuration ─────────────────────────────────────────────────────────

STABLE_BAND: float = 0.01          # |growth| below this is "stable"
SEASONAL_PERIOD: int = 4
SEASONAL_MIN_LENGTH: int = 8
SEASONAL_TOLERANCE: float = 0.2    # Relative diff to count a period as repeating
SEASONAL_SHARE: float = 0.6        # Share of repeating periods to call it seasonal


class TrendDirection(StrEnum):
    UPWARD = "upward"
    DOWNWARD = "downward"
    STABLE = "stable"


@dataclass(frozen=True)
class TrendAnalysis:
    direction: TrendDirection
    growth: Optional[float]    # Relative change, second half vs first half
    strength: float            # 0-1
    slope: Optional[float]     # Least-squares slope per period
    status: StatStatus


@dataclass(frozen=True)
class SeasonalityAnalysis:
    has_seasonality: bool
    period: Optional[int] = None


def relative_growth(values: Sequence[float]) -> Optional[float]:
    """(mean of second half - mean of first half) / |mean of first half|."""
    if len(values) < 2:
        return None
    half = len(values) // 2
    first = mean(values[:half])
    second = mean(values[half:])
    if first is None or second is None or first == 0:
        return None
    return (second - first) / abs(first)


def linear_slope(values: Sequence[float]) -> Optional[float]:
    n = len(values)
    if n < 2:
        return None
    xs = range(n)
    mean_x = (n - 1) / 2
    mean_y = mean(values)
    if mean_y is None:
        return None
    sxx = math.fsum((x - mean_x) ** 2 for x in xs)
    sxy = finite_sum((x - mean_x) * (y - mean_y) for x, y in zip(xs, values))
    return sxy / sxx if sxy is not None else None


def analyze_trend(values: Sequence[float]) -> TrendAnalysis:
    if len(values) < 2:
        return TrendAnalysis(
            direction=TrendDirection.STABLE, growth=None, strength=0.0,
            slope=None, status=StatStatus.INSUFFICIENT_DATA,
        )

    slope = linear_slope(values)
    growth = relative_growth(values)

    if slope is None:
        return TrendAnalysis(
            direction=TrendDirection.STABLE, growth=None, strength=0.0,
            slope=None, status=StatStatus.OVERFLOW,
        )

    if growth is None:
        # First half averages to zero: fall back to the sign of the slope
        if slope > 0:
            direction = TrendDirection.UPWARD
        elif slope < 0:
            direction = TrendDirection.DOWNWARD
        else:
            direction = TrendDirection.STABLE
        return TrendAnalysis(
            direction=direction, growth=None, strength=0.0,
            slope=slope, status=StatStatus.ZERO_VARIANCE,
        )

    if growth > STABLE_BAND:
        direction = TrendDirection.UPWARD
    elif growth < -STABLE_BAND:
        direction = TrendDirection.DOWNWARD
    else:
        direction = TrendDirection.STABLE

    return TrendAnalysis(
        direction=direction,
        growth=growth,
        strength=min(abs(growth) * 10, 1.0),
        slope=slope,
        status=StatStatus.OK,
    )


def detect_seasonality(
    values: Sequence[float],
    period: int = SEASONAL_PERIOD,
) -> SeasonalityAnalysis:
    if len(values) < max(SEASONAL_MIN_LENGTH, period * 2):
        return SeasonalityAnalysis(has_seasonality=False)

    repeating = 0
    compared = 0
    for i in range(period, len(values)):
        previous = values[i - period]
        if previous == 0:
            continue
        compared += 1
        if abs(values[i] - previous) / abs(previous) < SEASONAL_TOLERANCE:
            repeating += 1

    if compared == 0:
        return SeasonalityAnalysis(has_seasonality=False)

    seasonal = repeating / compared > SEASONAL_SHARE
    return SeasonalityAnalysis(has_seasonality=seasonal, period=period if seasonal else None)


def forecast_trend(values: Sequence[float], periods: int) -> list[float]:
    """Compound the half-over-half growth forward from the last value."""
    if not values or periods <= 0:
        return []
    growth = relative_growth(values) or 0.0
    last = values[-1]
    return [last * (1 + growth) ** i for i in range(1, periods + 1)]


def volatility(values: Sequence[float]) -> Optional[float]:
    """Sample std of period-over-period returns, skipping zero bases."""
    returns = [
        (values[i] - values[i - 1]) / abs(values[i - 1])
        for i in range(1, len(values))
        if values[i - 1] != 0
    ]
    return sample_std(returns)
