"""
Inventory Analyzer.

Detects:
1. Stockout risk: P(lead-time demand > on-hand stock)
2. Overstock: months of supply above threshold (> 3)
3. Slow-moving stock: annual turnover below threshold (< 2)

Lead-time demand is modelled as Normal(μ, σ²) with
    μ = v × L
    σ² = L × σ_v² + v² × σ_L²
where v / σ_v are daily velocity mean / std and L / σ_L the lead time.
"""

import math
from statistics import NormalDist
from typing import Optional

import structlog

from execsight.analyzers.base import BaseAnalyzer, EfficiencyScore
from execsight.engine.intervals import z_multiplier
from execsight.engine.series import clamp, mean, sample_std
from execsight.schemas.domains import Domain, InventoryMetrics, ProductStock, field_completeness
from execsight.schemas.findings import Finding, FindingKind, ImpactKind, action_plan

logger = structlog.get_logger(__name__)

# ── Configuration ─────────────────────────────────────────────────────────

STOCKOUT_THRESHOLD: float = 0.3       # Report stockouts above this probability
OVERSTOCK_MONTHS: float = 3.0         # Months of supply considered overstocked
SLOW_MOVING_TURNOVER: float = 2.0     # Annual turns below this are slow-moving
SERVICE_LEVEL: float = 0.95           # Safety stock service level
HOLDING_COST_RATE: float = 0.25       # Annual holding cost as share of unit cost
DEFAULT_MARKUP: float = 2.0           # Price ≈ cost × markup when price is unknown
DAYS_PER_MONTH: float = 30.0

_COMPLETENESS_FIELDS = ("name", "velocity_history", "unit_cost", "unit_price")


class InventoryAnalyzer(BaseAnalyzer):
    """Stock health: stockouts, overstock and turnover."""

    domain = Domain.INVENTORY
    metrics_type = InventoryMetrics

    def __init__(
        self,
        stockout_threshold: float = STOCKOUT_THRESHOLD,
        overstock_months: float = OVERSTOCK_MONTHS,
        slow_moving_turnover: float = SLOW_MOVING_TURNOVER,
        **kwargs,
    ):
        super().__init__(**kwargs)
        self.stockout_threshold = stockout_threshold
        self.overstock_months = overstock_months
        self.slow_moving_turnover = slow_moving_turnover

    # ── Public calculations ──────────────────────────────────────────────

    @staticmethod
    def velocity(product: ProductStock) -> tuple[float, float]:
        """(mean, std) of daily velocity, from history when available."""
        history = product.velocity_history
        if history:
            return mean(history), sample_std(history) or 0.0
        return product.daily_velocity, 0.0

    def stockout_probability(self, product: ProductStock) -> float:
        v, sigma_v = self.velocity(product)
        lead = product.lead_time_days
        mu = v * lead
        sigma = math.sqrt(lead * sigma_v ** 2 + v ** 2 * product.lead_time_std_days ** 2)

        if mu <= 0:
            return 0.0
        if product.on_hand <= 0:
            return 1.0
        if sigma == 0:
            return 1.0 if product.on_hand < mu else 0.0
        return 1.0 - NormalDist(mu, sigma).cdf(product.on_hand)

    def safety_stock(self, product: ProductStock, service_level: float = SERVICE_LEVEL) -> float:
        """z × σ_v × √L, the buffer that covers demand noise during lead time."""
        _, sigma_v = self.velocity(product)
        return z_multiplier(service_level) * sigma_v * math.sqrt(product.lead_time_days)

    @staticmethod
    def months_of_supply(product: ProductStock) -> Optional[float]:
        if product.daily_velocity <= 0:
            return None
        return product.on_hand / (product.daily_velocity * DAYS_PER_MONTH)

    @staticmethod
    def turnover_ratio(product: ProductStock) -> Optional[float]:
        """Annual turns: yearly unit sales / units on hand."""
        if product.on_hand <= 0:
            return None
        return product.daily_velocity * 365 / product.on_hand

    # ── Capabilities ─────────────────────────────────────────────────────

    def detect_risk(self, metrics: InventoryMetrics) -> list[Finding]:
        findings: list[Finding] = []

        for product in metrics.products:
            # ── Pattern 1: Stockout ──────────────────────────────────
            probability = self.stockout_probability(product)
            if probability > self.stockout_threshold:
                findings.append(self._stockout_finding(product, probability))

            # ── Pattern 2: Overstock ─────────────────────────────────
            months = self.months_of_supply(product)
            dead_stock = months is None and product.on_hand > 0
            if dead_stock or (months is not None and months > self.overstock_months):
                findings.append(self._overstock_finding(product, months))

        return findings

    def compute_efficiency(self, metrics: InventoryMetrics) -> EfficiencyScore:
        turnovers = [
            t for t in (self.turnover_ratio(p) for p in metrics.products) if t is not None
        ]
        if not metrics.products:
            return EfficiencyScore(score=None)

        healthy = sum(
            1 for p in metrics.products
            if (self.turnover_ratio(p) or 0.0) >= self.slow_moving_turnover
            and self.stockout_probability(p) <= self.stockout_threshold
        )
        return EfficiencyScore(
            score=healthy / len(metrics.products),
            components={
                "healthy_skus": healthy,
                "total_skus": len(metrics.products),
                "avg_turnover": round(mean(turnovers), 4) if turnovers else None,
            },
        )

    def efficiency_findings(self, metrics: InventoryMetrics, efficiency: EfficiencyScore) -> list[Finding]:
        tied_up = sum(
            max(p.on_hand, 0) * (p.unit_cost or 0.0) for p in metrics.products
        )
        return [Finding(
            domain=self.domain.value,
            category="inventory.turnover_efficiency",
            subject="portfolio",
            title="Improve inventory turnover",
            kind=FindingKind.EFFICIENCY,
            description=(
                f"Only {efficiency.components['healthy_skus']} of "
                f"{efficiency.components['total_skus']} SKUs turn over in a healthy band"
            ),
            severity=self.score(1.0 - efficiency.score),
            urgency=0.5,
            impact_kind=ImpactKind.COST,
            impact_estimate=round(tied_up * HOLDING_COST_RATE, 2),
            sample_size=len(metrics.products),
            data_completeness=field_completeness(metrics, ("products", "stock_value_history")),
            actions=action_plan(
                "Review reorder points for slow and at-risk SKUs",
                "Shift purchasing budget toward fast movers",
                owner_role="inventory_manager",
            ),
            evidence=dict(efficiency.components),
        )]

    def rank_opportunities(self, metrics: InventoryMetrics) -> list[Finding]:
        findings: list[Finding] = []
        for product in metrics.products:
            turnover = self.turnover_ratio(product)
            if turnover is None or turnover >= self.slow_moving_turnover:
                continue
            unit_cost = product.unit_cost or 0.0
            # Clearing half the slow stock frees its holding cost
            freed = max(product.on_hand, 0) * 0.5 * unit_cost * HOLDING_COST_RATE
            findings.append(Finding(
                domain=self.domain.value,
                category="inventory.slow_moving",
                subject=product.sku,
                title=f"Clear slow-moving stock for {product.name or product.sku}",
                kind=FindingKind.OPPORTUNITY,
                description=f"Turnover {turnover:.1f}x/year below {self.slow_moving_turnover:.1f}x",
                severity=self.score(1.0 - turnover / self.slow_moving_turnover),
                urgency=0.3,
                impact_kind=ImpactKind.COST,
                impact_estimate=round(freed, 2),
                sample_size=len(product.velocity_history) or 1,
                data_completeness=field_completeness(product, _COMPLETENESS_FIELDS),
                actions=action_plan(
                    "Bundle or mark down slow-moving units",
                    "Lower the reorder quantity",
                    owner_role="inventory_manager",
                    sku=product.sku,
                    target_turnover=6,
                ),
                evidence={"turnover_ratio": round(turnover, 4), "on_hand": product.on_hand},
            ))
        return self.ranked(findings)

    # ── Finding builders ─────────────────────────────────────────────────

    def _stockout_finding(self, product: ProductStock, probability: float) -> Finding:
        v, sigma_v = self.velocity(product)
        lead = product.lead_time_days
        mu = v * lead
        sigma = math.sqrt(lead * sigma_v ** 2 + v ** 2 * product.lead_time_std_days ** 2)
        safety = self.safety_stock(product)
        reorder_qty = max(mu + safety - product.on_hand, 0.0)

        price = product.unit_price
        if price is None:
            price = (product.unit_cost or 0.0) * DEFAULT_MARKUP
        expected_shortfall = max(mu - product.on_hand, 0.0) + probability * sigma
        revenue_at_risk = expected_shortfall * price

        cover_days = product.on_hand / v if v > 0 else 0.0
        urgency = 1.0 if cover_days <= lead else clamp(lead / cover_days)

        return Finding(
            domain=self.domain.value,
            category="inventory.stockout",
            subject=product.sku,
            title=f"Replenish {product.name or product.sku} before stockout",
            kind=FindingKind.RISK,
            description=f"Stockout probability {probability:.0%} within lead time of {lead:.0f} days",
            severity=self.score(probability),
            urgency=self.score(urgency),
            impact_kind=ImpactKind.REVENUE,
            impact_estimate=round(revenue_at_risk, 2),
            impact_volatility=round(sigma / mu, 4) if mu > 0 and sigma > 0 else 0.25,
            sample_size=len(product.velocity_history) or 1,
            data_completeness=field_completeness(product, _COMPLETENESS_FIELDS),
            actions=action_plan(
                f"Place a replenishment order for {math.ceil(reorder_qty)} units",
                f"Raise safety stock to {math.ceil(safety)} units",
                "Confirm supplier lead time",
                owner_role="inventory_manager",
                sku=product.sku,
                quantity=math.ceil(reorder_qty),
            ),
            evidence={
                "stockout_probability": round(probability, 4),
                "lead_time_demand": round(mu, 2),
                "lead_time_demand_std": round(sigma, 2),
                "on_hand": product.on_hand,
                "cover_days": round(cover_days, 2),
                "safety_stock": round(safety, 2),
            },
        )

    def _overstock_finding(self, product: ProductStock, months: Optional[float]) -> Finding:
        unit_cost = product.unit_cost or 0.0
        target_units = product.daily_velocity * DAYS_PER_MONTH * self.overstock_months
        excess = max(product.on_hand - target_units, 0.0)
        holding_cost = excess * unit_cost * HOLDING_COST_RATE

        if months is None:
            severity = 1.0
            description = "No sales velocity against stock on hand"
        else:
            severity = (months - self.overstock_months) / (4 * self.overstock_months)
            description = f"{months:.1f} months of supply (threshold {self.overstock_months:.0f})"

        return Finding(
            domain=self.domain.value,
            category="inventory.overstock",
            subject=product.sku,
            title=f"Reduce overstock of {product.name or product.sku}",
            kind=FindingKind.RISK,
            description=description,
            severity=self.score(severity),
            urgency=0.4,
            impact_kind=ImpactKind.COST,
            impact_estimate=round(holding_cost, 2),
            sample_size=len(product.velocity_history) or 1,
            data_completeness=field_completeness(product, _COMPLETENESS_FIELDS),
            actions=action_plan(
                f"Pause replenishment until {math.floor(excess)} excess units sell through",
                "Run a targeted promotion",
                owner_role="inventory_manager",
                sku=product.sku,
                excess_units=math.floor(excess),
            ),
            evidence={
                "months_of_supply": round(months, 2) if months is not None else None,
                "excess_units": round(excess, 2),
            },
        )
