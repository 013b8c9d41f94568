"""
Pytest Configuration and Fixtures.

Provides reusable fixtures and sample snapshots for ExecSight components.
"""

from datetime import datetime, timezone

import numpy as np
import pytest

from execsight.schemas.domains import (
    ChannelPerformance,
    ConversionPath,
    CustomerMetrics,
    CustomerSegment,
    FinancialMetrics,
    InventoryMetrics,
    MarketingMetrics,
    OperationsMetrics,
    ProcessLoad,
    ProductStock,
    TimeWindow,
)
from execsight.schemas.findings import Finding, ImpactKind


USER_ID = "user-1"


@pytest.fixture
def window() -> TimeWindow:
    return TimeWindow(
        start=datetime(2025, 1, 1, tzinfo=timezone.utc),
        end=datetime(2025, 3, 31, tzinfo=timezone.utc),
    )


@pytest.fixture
def rng():
    return np.random.default_rng(42)


# ============================================================================
# DOMAIN SNAPSHOTS
# ============================================================================


def make_inventory(user_id: str = USER_ID) -> InventoryMetrics:
    return InventoryMetrics(
        user_id=user_id,
        products=[
            ProductStock(sku="SKU-LOW", name="Tomatoes", on_hand=10, daily_velocity=5, lead_time_days=7,
                         unit_cost=2.0, unit_price=4.0),
            ProductStock(sku="SKU-OVER", name="Jars", on_hand=1000, daily_velocity=2, lead_time_days=7,
                         unit_cost=1.0),
            ProductStock(sku="SKU-DEAD", name="Baskets", on_hand=50, daily_velocity=0, lead_time_days=14,
                         unit_cost=10.0),
        ],
        stock_value_history=[1200, 1180, 1150, 1100, 1090, 1050],
    )


def make_marketing(user_id: str = USER_ID) -> MarketingMetrics:
    return MarketingMetrics(
        user_id=user_id,
        channels=[
            ChannelPerformance(channel="search", spend=1000, revenue=5000, conversions=50, new_customers=10),
            ChannelPerformance(channel="social", spend=1000, revenue=1000, conversions=20, new_customers=10),
            ChannelPerformance(channel="email", spend=500, revenue=1000, conversions=15, new_customers=5),
        ],
        conversion_paths=[
            ConversionPath(touchpoints=["social", "search"], value=100),
            ConversionPath(touchpoints=["email"], value=50),
        ],
        spend_series=[1, 5, 2, 8, 3, 9, 4],
        revenue_series=[0, 10, 50, 20, 80, 30, 90],
    )


def make_operations(user_id: str = USER_ID) -> OperationsMetrics:
    return OperationsMetrics(
        user_id=user_id,
        processes=[
            ProcessLoad(process_id="packing", name="Packing", throughput=95, capacity=100),
            ProcessLoad(process_id="delivery", name="Delivery", throughput=30, capacity=100),
            ProcessLoad(process_id="intake", name="Intake", throughput=70, capacity=100),
        ],
        actual_output=600,
        max_output=1000,
        throughput_series=[580, 600, 610, 590, 620, 600],
    )


def make_finance(user_id: str = USER_ID) -> FinancialMetrics:
    return FinancialMetrics(
        user_id=user_id,
        cash_flow_series=[100, 90, 80, 70, 60, 50],
        revenue_series=[1000, 1100, 1050, 1200, 1150, 1250],
        cash_balance=5000,
        current_ratio=0.8,
        debt_to_equity=3.0,
        receivables=50_000,
        payables=10_000,
        inventory_value=40_000,
    )


def make_customer(user_id: str = USER_ID) -> CustomerMetrics:
    return CustomerMetrics(
        user_id=user_id,
        segments=[
            CustomerSegment(segment_id="loyal", name="Loyal", customer_count=100, avg_order_value=100,
                            purchase_frequency=12, retention_rate=0.9, days_since_last_purchase=10),
            CustomerSegment(segment_id="lapsed", name="Lapsed", customer_count=200, avg_order_value=50,
                            purchase_frequency=4, retention_rate=0.4, days_since_last_purchase=90),
        ],
        churn_rate=0.2,
        active_customers_series=[300, 295, 290, 280, 276, 270],
    )


@pytest.fixture
def inventory_metrics() -> InventoryMetrics:
    return make_inventory()


@pytest.fixture
def marketing_metrics() -> MarketingMetrics:
    return make_marketing()


@pytest.fixture
def operations_metrics() -> OperationsMetrics:
    return make_operations()


@pytest.fixture
def finance_metrics() -> FinancialMetrics:
    return make_finance()


@pytest.fixture
def customer_metrics() -> CustomerMetrics:
    return make_customer()


# ============================================================================
# FINDINGS
# ============================================================================


def make_finding(**overrides) -> Finding:
    fields = dict(
        domain="inventory",
        category="inventory.stockout",
        subject="SKU-1",
        title="Replenish SKU-1",
        severity=0.8,
        urgency=1.0,
        impact_kind=ImpactKind.REVENUE,
        impact_estimate=1000.0,
        sample_size=30,
        data_completeness=1.0,
    )
    fields.update(overrides)
    return Finding(**fields)
