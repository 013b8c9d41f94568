"""
Domain Analyzers — one per business domain, DomainMetrics → list[Finding].

Analyzers report severity, urgency and impact estimates. Priority and
confidence are assigned by the recommendation engine.
"""

from execsight.analyzers.base import BaseAnalyzer, EfficiencyScore
from execsight.analyzers.customer import CustomerAnalyzer
from execsight.analyzers.financial import FinancialAnalyzer
from execsight.analyzers.inventory import InventoryAnalyzer
from execsight.analyzers.marketing import MarketingAnalyzer
from execsight.analyzers.operations import OperationsAnalyzer
from execsight.analyzers.registry import ANALYZERS, build_analyzers

__all__ = [
    "ANALYZERS",
    "BaseAnalyzer",
    "CustomerAnalyzer",
    "EfficiencyScore",
    "FinancialAnalyzer",
    "InventoryAnalyzer",
    "MarketingAnalyzer",
    "OperationsAnalyzer",
    "build_analyzers",
]
