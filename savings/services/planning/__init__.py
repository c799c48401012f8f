"""Monthly requirements and flex adjustments.

Usage:
    from savings.services.planning import FlexAdjustmentService, MonthlyPlanningService

    planning = MonthlyPlanningService(goal_calculation)
    requirements = planning.requirements(goals)
    result = FlexAdjustmentService().calculate_flex_scenarios(requirements, Decimal("80"))
"""

from savings.services.planning.flex import STRATEGIES, FlexAdjustmentService, estimated_delay
from savings.services.planning.monthly import MonthlyPlanningService
from savings.services.planning.policy import PlanningPolicy
from savings.services.planning.session import FlexAdjustmentSession

__all__ = [
    "STRATEGIES",
    "FlexAdjustmentService",
    "FlexAdjustmentSession",
    "MonthlyPlanningService",
    "PlanningPolicy",
    "estimated_delay",
]
