"""
Impact Assessment — Monte Carlo risk bands plus a confidence interval.

The analyzer's impact estimate is the likely case. Uncertainty comes from
either the finding's historical impact samples (bootstrapped and rescaled
to the estimate) or a normal band of relative width `impact_volatility`.

Band ordering depends on the impact kind:
- revenue (higher is better): worst = p5, best = p95
- cost (higher is worse):     best = p5, worst = p95

The confidence interval is never narrower than 10% of |likely case|.
"""

from typing import Optional

from execsight.engine.intervals import (
    DEFAULT_CONFIDENCE_LEVEL,
    INTERVAL_FLOOR_RATIO,
    apply_width_floor,
    confidence_interval,
)
from execsight.engine.series import mean
from execsight.engine.simulation import (
    DEFAULT_ITERATIONS,
    Distribution,
    EmpiricalDistribution,
    NormalDistribution,
    RandomSource,
    monte_carlo_simulate,
)
from execsight.recommendations.schemas import ImpactAssessment
from execsight.schemas.findings import Finding, ImpactKind


def impact_distribution(finding: Finding) -> Distribution:
    likely = finding.impact_estimate
    samples = finding.impact_samples
    sample_mean = mean(samples)
    if len(samples) >= 2 and sample_mean:
        scale = likely / sample_mean
        return EmpiricalDistribution(samples=tuple(s * scale for s in samples))
    return NormalDistribution(mean=likely, std=abs(likely) * finding.impact_volatility)


def assess_impact(
    finding: Finding,
    rng: Optional[RandomSource] = None,
    iterations: int = DEFAULT_ITERATIONS,
    confidence_level: float = DEFAULT_CONFIDENCE_LEVEL,
    floor_ratio: float = INTERVAL_FLOOR_RATIO,
) -> ImpactAssessment:
    likely = finding.impact_estimate
    simulation = monte_carlo_simulate(impact_distribution(finding), iterations=iterations, rng=rng)

    if simulation.is_defined:
        low_band, high_band = simulation.p5, simulation.p95
        interval = confidence_interval(simulation.outcomes, confidence_level, floor_ratio)
    else:
        spread = abs(likely) * finding.impact_volatility
        low_band, high_band = likely - spread, likely + spread
        interval = None

    low_band, high_band = min(low_band, likely), max(high_band, likely)

    if interval is not None and interval.is_defined:
        ci_low, ci_high = interval.low, interval.high
    else:
        ci_low, ci_high = likely, likely
    ci_low, ci_high, _ = apply_width_floor(ci_low, ci_high, likely, floor_ratio)

    if finding.impact_kind == ImpactKind.REVENUE:
        best, worst = high_band, low_band
    else:
        best, worst = low_band, high_band

    return ImpactAssessment(
        kind=finding.impact_kind,
        best_case=best,
        likely_case=likely,
        worst_case=worst,
        confidence_interval_low=ci_low,
        confidence_interval_high=ci_high,
        confidence_level=confidence_level,
    )
