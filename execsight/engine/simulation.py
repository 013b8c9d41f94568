"""
Monte Carlo Risk Simulation.

Draws outcomes from a parameterized normal or a historically-derived
empirical distribution and reports percentile risk bands (p5 / p50 / p95).

The random source is ALWAYS injected. A numpy Generator satisfies the
RandomSource protocol, so tests pin output with np.random.default_rng(seed).
"""

import math
from dataclasses import dataclass, field
from typing import Optional, Protocol, Sequence, Union

import numpy as np
import structlog

from execsight.engine.series import StatStatus

logger = structlog.get_logger(__name__)

# ── Configuration ─────────────────────────────────────────────────────────

DEFAULT_ITERATIONS: int = 1000
PERCENTILES: tuple[float, float, float] = (5.0, 50.0, 95.0)


class RandomSource(Protocol):
    """Pluggable randomness. numpy.random.Generator implements this."""

    def normal(self, loc: float, scale: float, size: int): ...

    def choice(self, a, size: int): ...


def default_random_source(seed: Optional[int] = None) -> RandomSource:
    """Fresh, independently seeded generator (no shared global state)."""
    return np.random.default_rng(seed)


@dataclass(frozen=True)
class NormalDistribution:
    mean: float
    std: float

    def __post_init__(self) -> None:
        if not math.isfinite(self.mean) or not math.isfinite(self.std):
            raise ValueError("Normal distribution parameters must be finite")
        if self.std < 0:
            raise ValueError("Standard deviation must be >= 0")


@dataclass(frozen=True)
class EmpiricalDistribution:
    """Bootstrap resampling of historical observations."""
    samples: tuple[float, ...]

    def __post_init__(self) -> None:
        object.__setattr__(self, "samples", tuple(float(s) for s in self.samples))
        if any(not math.isfinite(s) for s in self.samples):
            raise ValueError("Empirical samples must be finite")


Distribution = Union[NormalDistribution, EmpiricalDistribution]


@dataclass(frozen=True)
class SimulationResult:
    """Percentile outcome bands of a simulation run."""
    p5: Optional[float]
    p50: Optional[float]
    p95: Optional[float]
    mean: Optional[float]
    std: Optional[float]
    iterations: int
    status: StatStatus
    outcomes: tuple[float, ...] = field(default=(), repr=False)

    @property
    def is_defined(self) -> bool:
        return self.status == StatStatus.OK


def _insufficient(iterations: int, status: StatStatus = StatStatus.INSUFFICIENT_DATA) -> SimulationResult:
    return SimulationResult(
        p5=None, p50=None, p95=None, mean=None, std=None,
        iterations=iterations, status=status,
    )


def monte_carlo_simulate(
    distribution: Distribution,
    iterations: int = DEFAULT_ITERATIONS,
    rng: Optional[RandomSource] = None,
) -> SimulationResult:
    """
    Simulate `iterations` outcomes and return p5 / p50 / p95.

    Args:
        distribution: NormalDistribution or EmpiricalDistribution
        iterations: Number of draws (> 0)
        rng: Injected random source; a fresh unseeded generator if omitted
    """
    if iterations <= 0:
        raise ValueError("iterations must be > 0")

    rng = rng if rng is not None else default_random_source()

    if isinstance(distribution, NormalDistribution):
        draws = np.asarray(
            rng.normal(distribution.mean, distribution.std, size=iterations),
            dtype=float,
        )
    elif isinstance(distribution, EmpiricalDistribution):
        if not distribution.samples:
            return _insufficient(iterations)
        draws = np.asarray(
            rng.choice(np.asarray(distribution.samples, dtype=float), size=iterations),
            dtype=float,
        )
    else:
        raise TypeError(f"Unsupported distribution: {type(distribution).__name__}")

    if not np.all(np.isfinite(draws)):
        logger.warning("simulation_non_finite_draws", iterations=iterations)
        return _insufficient(iterations)

    with np.errstate(over="ignore", invalid="ignore"):
        p5, p50, p95 = (float(p) for p in np.percentile(draws, PERCENTILES))
        mean = float(np.mean(draws))
        std = float(np.std(draws, ddof=1)) if iterations > 1 else 0.0

    if not all(math.isfinite(v) for v in (p5, p50, p95, mean, std)):
        logger.warning("simulation_overflow", iterations=iterations)
        return _insufficient(iterations, StatStatus.OVERFLOW)

    return SimulationResult(
        p5=p5,
        p50=p50,
        p95=p95,
        mean=mean,
        std=std,
        iterations=iterations,
        status=StatStatus.OK,
        outcomes=tuple(float(d) for d in draws),
    )


def value_at_risk(outcomes: Sequence[float], confidence_level: float = 0.95) -> Optional[float]:
    """
    Historical VaR: the outcome at the (1 - confidence_level) quantile.

    Returns None for an empty outcome set.
    """
    if not 0 < confidence_level < 1:
        raise ValueError("confidence_level must be in (0, 1)")
    if not outcomes:
        return None
    ordered = sorted(outcomes)
    index = min(len(ordered) - 1, math.floor((1 - confidence_level) * len(ordered)))
    return ordered[index]
