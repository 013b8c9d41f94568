"""Domain → analyzer registry."""

from typing import Optional

from execsight.analyzers.base import BaseAnalyzer
from execsight.analyzers.customer import CustomerAnalyzer
from execsight.analyzers.financial import FinancialAnalyzer
from execsight.analyzers.inventory import InventoryAnalyzer
from execsight.analyzers.marketing import MarketingAnalyzer
from execsight.analyzers.operations import OperationsAnalyzer
from execsight.config import Settings
from execsight.schemas.domains import Domain

ANALYZERS: dict[Domain, type[BaseAnalyzer]] = {
    Domain.INVENTORY: InventoryAnalyzer,
    Domain.MARKETING: MarketingAnalyzer,
    Domain.OPERATIONS: OperationsAnalyzer,
    Domain.FINANCE: FinancialAnalyzer,
    Domain.CUSTOMER: CustomerAnalyzer,
}


def build_analyzers(config: Optional[Settings] = None) -> dict[Domain, BaseAnalyzer]:
    """One configured analyzer per domain; module defaults when config is None."""
    if config is None:
        return {domain: cls() for domain, cls in ANALYZERS.items()}

    floor = config.efficiency_floor
    return {
        Domain.INVENTORY: InventoryAnalyzer(
            stockout_threshold=config.stockout_probability_threshold,
            overstock_months=config.overstock_months_threshold,
            slow_moving_turnover=config.slow_moving_turnover_threshold,
            efficiency_floor=floor,
        ),
        Domain.MARKETING: MarketingAnalyzer(
            roi_minimum=config.roi_minimum,
            roi_top_performer=config.roi_top_performer,
            max_lag=config.max_lag_periods,
            significant_correlation=config.correlation_significant,
            efficiency_floor=floor,
        ),
        Domain.OPERATIONS: OperationsAnalyzer(
            bottleneck_utilization=config.bottleneck_utilization,
            efficiency_floor=floor,
        ),
        Domain.FINANCE: FinancialAnalyzer(
            anomaly_threshold=config.anomaly_z_threshold,
            anomaly_method=config.anomaly_method,
            efficiency_floor=floor,
        ),
        Domain.CUSTOMER: CustomerAnalyzer(
            churn_threshold=config.churn_risk_threshold,
            efficiency_floor=floor,
        ),
    }
