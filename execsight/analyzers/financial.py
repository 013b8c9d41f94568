"""
Financial Analyzer.

Detects:
1. Cash-flow risk: declining trend, negative anomalies, short runway
2. Liquidity risk: current ratio below 1
3. Leverage risk: debt-to-equity above 2
4. Working-capital opportunity: 15% of (receivables + inventory - payables)
"""

from typing import Optional, Sequence

import structlog

from execsight.analyzers.base import BaseAnalyzer, EfficiencyScore
from execsight.engine.anomaly import DEFAULT_Z_THRESHOLD, detect_anomalies
from execsight.engine.series import MetricSeries, mean
from execsight.engine.trend import TrendDirection, analyze_trend, forecast_trend, volatility
from execsight.schemas.domains import Domain, FinancialMetrics, field_completeness
from execsight.schemas.findings import Finding, FindingKind, ImpactKind, action_plan

logger = structlog.get_logger(__name__)

# ── Configuration ─────────────────────────────────────────────────────────

MIN_CURRENT_RATIO: float = 1.0
MAX_DEBT_TO_EQUITY: float = 2.0
RUNWAY_WARNING_PERIODS: float = 6.0
WORKING_CAPITAL_IMPROVEMENT: float = 0.15
FORECAST_PERIODS: int = 3
RECEIVABLES_REVIEW_LEVEL: float = 40_000.0
INVENTORY_REVIEW_LEVEL: float = 35_000.0

_COMPLETENESS_FIELDS = (
    "cash_flow_series", "revenue_series", "cash_balance", "current_ratio",
    "debt_to_equity", "receivables", "payables", "inventory_value",
)


def net_present_value(cash_flows: Sequence[float], discount_rate: float) -> float:
    """Discount end-of-period cash flows; the first flow lands after one period."""
    return sum(cf / (1 + discount_rate) ** (i + 1) for i, cf in enumerate(cash_flows))


class FinancialAnalyzer(BaseAnalyzer):
    """Cash flow, liquidity, leverage and working capital."""

    domain = Domain.FINANCE
    metrics_type = FinancialMetrics

    def __init__(
        self,
        anomaly_threshold: float = DEFAULT_Z_THRESHOLD,
        anomaly_method: str = "robust",
        runway_warning_periods: float = RUNWAY_WARNING_PERIODS,
        **kwargs,
    ):
        super().__init__(**kwargs)
        self.anomaly_threshold = anomaly_threshold
        self.anomaly_method = anomaly_method
        self.runway_warning_periods = runway_warning_periods

    # ── Public calculations ──────────────────────────────────────────────

    @staticmethod
    def runway_periods(metrics: FinancialMetrics) -> Optional[float]:
        """Periods of cash left at the average burn; None when not burning."""
        avg = mean(metrics.cash_flow_series)
        if avg is None or avg >= 0 or metrics.cash_balance is None:
            return None
        return max(metrics.cash_balance, 0.0) / -avg

    @staticmethod
    def working_capital(metrics: FinancialMetrics) -> Optional[float]:
        parts = (metrics.receivables, metrics.inventory_value, metrics.payables)
        if all(p is None for p in parts):
            return None
        receivables, inventory, payables = (p or 0.0 for p in parts)
        return receivables + inventory - payables

    def analyze_cash_flow(self, metrics: FinancialMetrics) -> dict:
        values = metrics.cash_flow_series
        return {
            "trend": analyze_trend(values),
            "volatility": volatility(values),
            "forecast": forecast_trend(values, FORECAST_PERIODS),
        }

    # ── Capabilities ─────────────────────────────────────────────────────

    def detect_risk(self, metrics: FinancialMetrics) -> list[Finding]:
        findings: list[Finding] = []
        completeness = field_completeness(metrics, _COMPLETENESS_FIELDS)

        cash_flow = self._cash_flow_finding(metrics, completeness)
        if cash_flow is not None:
            findings.append(cash_flow)

        ratio = metrics.current_ratio
        if ratio is not None and ratio < MIN_CURRENT_RATIO:
            shortfall = (metrics.payables or 0.0) * (MIN_CURRENT_RATIO - ratio)
            findings.append(Finding(
                domain=self.domain.value,
                category="finance.liquidity",
                subject="balance_sheet",
                title="Restore short-term liquidity",
                kind=FindingKind.RISK,
                description=f"Current ratio {ratio:.2f} below {MIN_CURRENT_RATIO:.1f}",
                severity=self.score(0.6 + (MIN_CURRENT_RATIO - ratio) * 0.4),
                urgency=0.9,
                impact_kind=ImpactKind.COST,
                impact_estimate=round(shortfall, 2),
                sample_size=len(metrics.cash_flow_series) or 1,
                data_completeness=completeness,
                actions=action_plan(
                    *self._working_capital_steps(metrics),
                    owner_role="finance_manager",
                    current_ratio=ratio,
                ),
                evidence={"current_ratio": ratio, "payables": metrics.payables},
            ))

        leverage = metrics.debt_to_equity
        if leverage is not None and leverage > MAX_DEBT_TO_EQUITY:
            findings.append(Finding(
                domain=self.domain.value,
                category="finance.leverage",
                subject="balance_sheet",
                title="Reduce leverage",
                kind=FindingKind.RISK,
                description=f"Debt-to-equity {leverage:.2f} above {MAX_DEBT_TO_EQUITY:.1f}",
                severity=self.score(0.4 + (leverage - MAX_DEBT_TO_EQUITY) / 4),
                urgency=0.5,
                impact_kind=ImpactKind.COST,
                impact_estimate=0.0,
                sample_size=1,
                data_completeness=completeness,
                actions=action_plan(
                    "Prioritize repayment of the most expensive debt",
                    "Defer discretionary capital spending",
                    owner_role="finance_manager",
                    debt_to_equity=leverage,
                ),
                evidence={"debt_to_equity": leverage},
            ))

        return findings

    def compute_efficiency(self, metrics: FinancialMetrics) -> EfficiencyScore:
        """Share of periods with non-negative net cash flow."""
        values = metrics.cash_flow_series
        if not values:
            return EfficiencyScore(score=None)
        positive = sum(1 for v in values if v >= 0)
        return EfficiencyScore(
            score=positive / len(values),
            components={"positive_periods": positive, "periods": len(values)},
        )

    def rank_opportunities(self, metrics: FinancialMetrics) -> list[Finding]:
        capital = self.working_capital(metrics)
        if capital is None or capital <= 0:
            return []

        tied_up = (metrics.receivables or 0.0) + (metrics.inventory_value or 0.0)
        potential = capital * WORKING_CAPITAL_IMPROVEMENT
        return [Finding(
            domain=self.domain.value,
            category="finance.working_capital",
            subject="balance_sheet",
            title="Free cash from working capital",
            kind=FindingKind.OPPORTUNITY,
            description=f"Working capital {capital:,.0f}; {WORKING_CAPITAL_IMPROVEMENT:.0%} is recoverable",
            severity=self.score(tied_up / (tied_up + (metrics.payables or 0.0)) * 0.6),
            urgency=0.4,
            impact_kind=ImpactKind.REVENUE,
            impact_estimate=round(potential, 2),
            sample_size=1,
            data_completeness=field_completeness(metrics, _COMPLETENESS_FIELDS),
            actions=action_plan(
                *self._working_capital_steps(metrics),
                owner_role="finance_manager",
                potential_improvement=round(potential, 2),
            ),
            evidence={"working_capital": round(capital, 2)},
        )]

    # ── Finding builders ─────────────────────────────────────────────────

    def _cash_flow_finding(self, metrics: FinancialMetrics, completeness: float) -> Optional[Finding]:
        values = metrics.cash_flow_series
        if len(values) < 2:
            return None

        analysis = self.analyze_cash_flow(metrics)
        trend = analysis["trend"]
        drops = [
            a for a in detect_anomalies(
                MetricSeries.of("finance.cash_flow", values),
                threshold=self.anomaly_threshold,
                method=self.anomaly_method,
            )
            if a.deviation < 0
        ]
        runway = self.runway_periods(metrics)
        short_runway = runway is not None and runway < self.runway_warning_periods
        declining = trend.direction == TrendDirection.DOWNWARD

        if not (declining or drops or short_runway):
            return None

        signals = [0.0]
        if declining:
            signals.append(0.3 + 0.5 * trend.strength)
        if drops:
            signals.append(min(0.5 + 0.1 * len(drops), 0.9))
        if short_runway:
            signals.append(1.0 - runway / self.runway_warning_periods)

        last = values[-1]
        shortfall = sum(max(last - f, 0.0) for f in analysis["forecast"])
        shortfall += sum(-a.deviation for a in drops)
        vol = analysis["volatility"]

        return Finding(
            domain=self.domain.value,
            category="finance.cash_flow",
            subject="cash_flow",
            title="Stabilize cash flow",
            kind=FindingKind.RISK,
            description=self._cash_flow_description(declining, drops, runway if short_runway else None),
            severity=self.score(max(signals)),
            urgency=1.0 if short_runway else 0.7,
            impact_kind=ImpactKind.REVENUE,
            impact_estimate=round(shortfall, 2),
            impact_volatility=round(min(vol, 2.0), 4) if vol is not None else 0.25,
            sample_size=len(values),
            data_completeness=completeness,
            actions=action_plan(
                "Review the periods with the largest cash drops",
                "Tighten collections and defer non-critical payments",
                "Re-forecast cash for the next quarter",
                owner_role="finance_manager",
                anomaly_indices=[a.index for a in drops],
            ),
            evidence={
                "trend": trend.direction.value,
                "growth": round(trend.growth, 4) if trend.growth is not None else None,
                "anomalies": len(drops),
                "runway_periods": round(runway, 2) if runway is not None else None,
                "forecast": [round(f, 2) for f in analysis["forecast"]],
            },
        )

    @staticmethod
    def _cash_flow_description(declining: bool, drops: list, runway: Optional[float]) -> str:
        parts = []
        if declining:
            parts.append("cash flow trending down")
        if drops:
            parts.append(f"{len(drops)} abnormal cash drop(s)")
        if runway is not None:
            parts.append(f"{runway:.1f} periods of runway")
        return "; ".join(parts).capitalize()

    @staticmethod
    def _working_capital_steps(metrics: FinancialMetrics) -> list[str]:
        steps = []
        if (metrics.receivables or 0.0) > RECEIVABLES_REVIEW_LEVEL:
            steps.append("Reduce the receivables collection period")
        if (metrics.inventory_value or 0.0) > INVENTORY_REVIEW_LEVEL:
            steps.append("Optimize inventory levels")
        steps.append("Negotiate longer supplier payment terms")
        return steps
