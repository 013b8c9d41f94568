"""
Metric series and descriptive statistics.

A MetricSeries is owned by the caller and read-only to the engine.
Helpers here return None for degenerate input so callers can map it to an
explicit StatStatus instead of leaking NaN.
"""

import math
from dataclasses import dataclass
from datetime import datetime
from enum import StrEnum
from typing import Iterable, Optional, Sequence


class StatStatus(StrEnum):
    OK = "ok"
    INSUFFICIENT_DATA = "insufficient_data"
    ZERO_VARIANCE = "zero_variance"
    LENGTH_MISMATCH = "length_mismatch"
    OVERFLOW = "overflow"


@dataclass(frozen=True)
class MetricSeries:
    """A named ordered sequence of numeric samples."""
    name: str
    values: tuple[float, ...]
    timestamps: Optional[tuple[datetime, ...]] = None

    def __post_init__(self) -> None:
        # Accept any iterable from callers, store an immutable tuple
        object.__setattr__(self, "values", tuple(float(v) for v in self.values))
        if self.timestamps is not None:
            object.__setattr__(self, "timestamps", tuple(self.timestamps))
            if len(self.timestamps) != len(self.values):
                raise ValueError(
                    f"Series '{self.name}' has {len(self.values)} values "
                    f"but {len(self.timestamps)} timestamps"
                )
        if any(not math.isfinite(v) for v in self.values):
            raise ValueError(f"Series '{self.name}' contains non-finite values")

    @classmethod
    def of(cls, name: str, values: Iterable[float]) -> "MetricSeries":
        return cls(name=name, values=tuple(values))

    def __len__(self) -> int:
        return len(self.values)

    @property
    def is_empty(self) -> bool:
        return not self.values


def finite_sum(terms: Iterable[float]) -> Optional[float]:
    """Exact sum, or None when any term or the total leaves the float range."""
    try:
        total = math.fsum(terms)
    except (OverflowError, ValueError):
        return None
    return total if math.isfinite(total) else None


def mean(values: Sequence[float]) -> Optional[float]:
    if not values:
        return None
    total = finite_sum(values)
    return total / len(values) if total is not None else None


def sample_variance(values: Sequence[float]) -> Optional[float]:
    """Unbiased (n-1) variance; None when n < 2 or the squares overflow."""
    n = len(values)
    if n < 2:
        return None
    m = mean(values)
    if m is None:
        return None
    try:
        total = finite_sum((v - m) ** 2 for v in values)
    except OverflowError:
        return None
    return total / (n - 1) if total is not None else None


def sample_std(values: Sequence[float]) -> Optional[float]:
    var = sample_variance(values)
    return math.sqrt(var) if var is not None else None


def median(values: Sequence[float]) -> Optional[float]:
    if not values:
        return None
    ordered = sorted(values)
    mid = len(ordered) // 2
    if len(ordered) % 2 == 0:
        return (ordered[mid - 1] + ordered[mid]) / 2
    return ordered[mid]


def clamp(value: float, lower: float = 0.0, upper: float = 1.0) -> float:
    return max(lower, min(upper, value))
