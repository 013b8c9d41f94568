"""
Finding Schemas — raw analyzer output, before ranking.

A Finding describes a detected condition (risk, opportunity, inefficiency)
with a raw severity in [0, 1]. It carries no priority: ranking policy is
owned by the recommendation engine.
"""

from enum import StrEnum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field


class ImpactKind(StrEnum):
    REVENUE = "revenue"   # Higher is better
    COST = "cost"         # Higher is worse


class FindingKind(StrEnum):
    RISK = "risk"
    EFFICIENCY = "efficiency"
    OPPORTUNITY = "opportunity"


class ActionStep(BaseModel):
    """One ordered step of a recommended action plan."""
    model_config = ConfigDict(frozen=True)

    order: int = Field(ge=1)
    description: str
    owner_role: Optional[str] = None
    parameters: dict[str, Any] = Field(default_factory=dict)


class Finding(BaseModel):
    """
    A domain analyzer's raw output.

    Required: domain, category, subject, title, severity, impact_kind,
    impact_estimate, sample_size. Everything else has a safe default.
    """
    model_config = ConfigDict(frozen=True, allow_inf_nan=False)

    domain: str
    category: str                          # e.g. "inventory.stockout"
    subject: str                           # Entity the finding is about (sku, channel, segment)
    title: str
    kind: FindingKind = FindingKind.RISK
    description: str = ""
    severity: float = Field(ge=0, le=1)
    urgency: float = Field(default=1.0, ge=0, le=1)
    impact_kind: ImpactKind
    impact_estimate: float                 # Expected impact in currency units
    impact_volatility: float = Field(default=0.25, ge=0)   # Relative std of the estimate
    impact_samples: list[float] = Field(default_factory=list)
    sample_size: int = Field(ge=0)
    data_completeness: float = Field(default=1.0, ge=0, le=1)
    actions: list[ActionStep] = Field(default_factory=list)
    evidence: dict[str, Any] = Field(default_factory=dict)


def action_plan(*steps: str, owner_role: Optional[str] = None, **parameters: Any) -> list[ActionStep]:
    """Build an ordered action plan; parameters attach to the first step."""
    return [
        ActionStep(
            order=i,
            description=step,
            owner_role=owner_role,
            parameters=parameters if i == 1 else {},
        )
        for i, step in enumerate(steps, start=1)
    ]
