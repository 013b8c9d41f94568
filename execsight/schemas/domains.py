"""
Domain Metric Snapshots.

Each business domain hands the engine a validated snapshot. The snapshots
form a tagged union keyed by `domain`, so a payload is parsed into exactly
one shape and analyzers can dispatch exhaustively on it.

Every snapshot records the `user_id` it was fetched for; the aggregator
rejects snapshots scoped to anyone else.
"""

from datetime import datetime
from enum import StrEnum
from typing import Annotated, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, model_validator

from execsight.engine.series import MetricSeries


class Domain(StrEnum):
    INVENTORY = "inventory"
    MARKETING = "marketing"
    OPERATIONS = "operations"
    FINANCE = "finance"
    CUSTOMER = "customer"


class TimeWindow(BaseModel):
    """Inclusive analysis window."""
    model_config = ConfigDict(frozen=True)

    start: datetime
    end: datetime

    @model_validator(mode="after")
    def _ordered(self) -> "TimeWindow":
        if self.start > self.end:
            raise ValueError("window start must not be after end")
        return self


class _Snapshot(BaseModel):
    model_config = ConfigDict(frozen=True, allow_inf_nan=False)

    user_id: str = Field(min_length=1)
    captured_at: Optional[datetime] = None

    def key_series(self) -> list[MetricSeries]:
        """Series this domain contributes to cross-domain correlation."""
        return []

    def _series(self, name: str, values: list[float]) -> list[MetricSeries]:
        if not values:
            return []
        return [MetricSeries.of(f"{self.domain}.{name}", values)]


# ── Inventory ──────────────────────────────────────────────────────────


class ProductStock(BaseModel):
    model_config = ConfigDict(frozen=True, allow_inf_nan=False)

    sku: str
    name: Optional[str] = None
    on_hand: float                       # Negative means backordered
    daily_velocity: float = Field(ge=0)  # Units sold per day
    velocity_history: list[float] = Field(default_factory=list)
    lead_time_days: float = Field(gt=0)
    lead_time_std_days: float = Field(default=0.0, ge=0)
    unit_cost: Optional[float] = Field(default=None, ge=0)
    unit_price: Optional[float] = Field(default=None, ge=0)


class InventoryMetrics(_Snapshot):
    domain: Literal["inventory"] = "inventory"
    products: list[ProductStock] = Field(default_factory=list)
    stock_value_history: list[float] = Field(default_factory=list)

    def key_series(self) -> list[MetricSeries]:
        return self._series("stock_value", self.stock_value_history)


# ── Marketing ──────────────────────────────────────────────────────────


class ChannelPerformance(BaseModel):
    model_config = ConfigDict(frozen=True, allow_inf_nan=False)

    channel: str
    spend: float = Field(ge=0)
    revenue: float = Field(ge=0)
    conversions: int = Field(default=0, ge=0)
    new_customers: int = Field(default=0, ge=0)


class ConversionPath(BaseModel):
    """Ordered channel touchpoints that led to one conversion."""
    model_config = ConfigDict(frozen=True, allow_inf_nan=False)

    touchpoints: list[str] = Field(min_length=1)
    value: float = Field(ge=0)


class MarketingMetrics(_Snapshot):
    domain: Literal["marketing"] = "marketing"
    channels: list[ChannelPerformance] = Field(default_factory=list)
    conversion_paths: list[ConversionPath] = Field(default_factory=list)
    spend_series: list[float] = Field(default_factory=list)
    revenue_series: list[float] = Field(default_factory=list)

    def key_series(self) -> list[MetricSeries]:
        return self._series("spend", self.spend_series) + self._series("revenue", self.revenue_series)


# ── Operations ─────────────────────────────────────────────────────────


class ProcessLoad(BaseModel):
    model_config = ConfigDict(frozen=True, allow_inf_nan=False)

    process_id: str
    name: Optional[str] = None
    throughput: float = Field(ge=0)
    capacity: float = Field(gt=0)

    @property
    def utilization(self) -> float:
        return self.throughput / self.capacity


class OperationsMetrics(_Snapshot):
    domain: Literal["operations"] = "operations"
    processes: list[ProcessLoad] = Field(default_factory=list)
    actual_output: Optional[float] = Field(default=None, ge=0)
    max_output: Optional[float] = Field(default=None, gt=0)
    revenue_per_unit: Optional[float] = Field(default=None, ge=0)
    throughput_series: list[float] = Field(default_factory=list)

    def key_series(self) -> list[MetricSeries]:
        return self._series("throughput", self.throughput_series)


# ── Finance ────────────────────────────────────────────────────────────


class FinancialMetrics(_Snapshot):
    domain: Literal["finance"] = "finance"
    cash_flow_series: list[float] = Field(default_factory=list)   # Net cash flow per period
    revenue_series: list[float] = Field(default_factory=list)
    cash_balance: Optional[float] = None
    current_ratio: Optional[float] = Field(default=None, ge=0)
    debt_to_equity: Optional[float] = Field(default=None, ge=0)
    receivables: Optional[float] = Field(default=None, ge=0)
    payables: Optional[float] = Field(default=None, ge=0)
    inventory_value: Optional[float] = Field(default=None, ge=0)

    def key_series(self) -> list[MetricSeries]:
        return self._series("cash_flow", self.cash_flow_series) + self._series("revenue", self.revenue_series)


# ── Customer ───────────────────────────────────────────────────────────


class CustomerSegment(BaseModel):
    model_config = ConfigDict(frozen=True, allow_inf_nan=False)

    segment_id: str
    name: Optional[str] = None
    customer_count: int = Field(ge=0)
    avg_order_value: float = Field(ge=0)
    purchase_frequency: float = Field(ge=0)       # Purchases per year
    retention_rate: float = Field(ge=0, le=1)
    margin: float = Field(default=0.3, ge=0, le=1)
    days_since_last_purchase: float = Field(default=0.0, ge=0)
    avg_purchase_interval_days: float = Field(default=30.0, gt=0)


class CustomerMetrics(_Snapshot):
    domain: Literal["customer"] = "customer"
    segments: list[CustomerSegment] = Field(default_factory=list)
    churn_rate: Optional[float] = Field(default=None, ge=0, le=1)
    active_customers_series: list[float] = Field(default_factory=list)

    def key_series(self) -> list[MetricSeries]:
        return self._series("active_customers", self.active_customers_series)


DomainMetrics = Annotated[
    Union[InventoryMetrics, MarketingMetrics, OperationsMetrics, FinancialMetrics, CustomerMetrics],
    Field(discriminator="domain"),
]

DOMAIN_METRICS_ADAPTER: TypeAdapter = TypeAdapter(DomainMetrics)


def parse_domain_metrics(payload) -> "DomainMetrics":
    """Validate a raw payload (or pass through an already-built snapshot)."""
    if isinstance(payload, _Snapshot):
        return payload
    return DOMAIN_METRICS_ADAPTER.validate_python(payload)


def field_completeness(model: BaseModel, fields: tuple[str, ...]) -> float:
    """Fraction of `fields` that are populated (not None, not empty)."""
    if not fields:
        return 1.0
    present = 0
    for name in fields:
        value = getattr(model, name, None)
        if value is None:
            continue
        if isinstance(value, (list, tuple, dict, str)) and not value:
            continue
        present += 1
    return present / len(fields)
