from .allocations import AllocationService, DjangoAllocationStore, InMemoryAllocationStore
from .balances import BalanceService, BalanceSnapshot
from .engine import PlanningEngine, build_default_engine
from .goal_calculation import GoalCalculationService
from .planning import (
    FlexAdjustmentService,
    FlexAdjustmentSession,
    MonthlyPlanningService,
    PlanningPolicy,
)
from .rates import CurrencyConverter

__all__ = [
    "AllocationService",
    "BalanceService",
    "BalanceSnapshot",
    "CurrencyConverter",
    "DjangoAllocationStore",
    "FlexAdjustmentService",
    "FlexAdjustmentSession",
    "GoalCalculationService",
    "InMemoryAllocationStore",
    "MonthlyPlanningService",
    "PlanningEngine",
    "PlanningPolicy",
    "build_default_engine",
]
