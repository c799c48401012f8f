from __future__ import annotations

from .entities import (
    AllocationHistoryEntry,
    AllocationRecord,
    Asset,
    Goal,
    GoalStatus,
    PaymentFrequency,
    Transaction,
)
from .flex import FlexAdjustmentResult, FlexStrategy, GoalImpact
from .planning import MonthlyRequirement, RequirementStatus, RiskLevel
from .valuation import AssetContribution, GoalValuation

__all__ = [
    "AllocationHistoryEntry",
    "AllocationRecord",
    "Asset",
    "AssetContribution",
    "FlexAdjustmentResult",
    "FlexStrategy",
    "Goal",
    "GoalImpact",
    "GoalStatus",
    "GoalValuation",
    "MonthlyRequirement",
    "PaymentFrequency",
    "RequirementStatus",
    "RiskLevel",
    "Transaction",
]
