from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from enum import StrEnum
from uuid import UUID

from savings.domain.planning import MonthlyRequirement, RiskLevel


class FlexStrategy(StrEnum):
    """How an adjusted contribution budget is distributed across goals."""

    BALANCED = "balanced"
    URGENT = "urgent"
    LARGEST = "largest"
    RISK_MINIMIZING = "risk_minimizing"

    @property
    def display_name(self) -> str:
        return {
            FlexStrategy.BALANCED: "Balanced Distribution",
            FlexStrategy.URGENT: "Prioritize Urgent Goals",
            FlexStrategy.LARGEST: "Prioritize Largest Goals",
            FlexStrategy.RISK_MINIMIZING: "Minimize Risk",
        }[self]


@dataclass(frozen=True)
class GoalImpact:
    """Schedule impact of an adjustment on one goal.

    Attributes:
        goal_id: Goal affected
        original_amount: Required monthly contribution before adjustment
        adjusted_amount: Contribution after adjustment
        change_amount: adjusted - original
        change_percentage: change as a percentage of original (0 when original is 0)
        estimated_delay: Extra months to reach target at the adjusted rate, or None
            when the adjusted rate is zero and the goal would never complete
        risk_level: Coarse risk classification of the adjustment
        is_protected: Goal was shielded from reduction
        is_skipped: Goal was paused for this period
    """

    goal_id: UUID
    original_amount: Decimal
    adjusted_amount: Decimal
    change_amount: Decimal
    change_percentage: Decimal
    estimated_delay: int | None
    risk_level: RiskLevel
    is_protected: bool = False
    is_skipped: bool = False

    @property
    def at_risk(self) -> bool:
        return self.estimated_delay is None or self.estimated_delay > 0


@dataclass(frozen=True)
class FlexAdjustmentResult:
    """Outcome of redistributing contributions under a flex percentage.

    Totals are expressed in ``currency`` (the display currency when one was
    requested, otherwise the requirements' shared currency).

    ``unallocated`` is budget that could not be assigned because every
    receiving goal was protected; ``protected_overflow`` is how far protected
    goals exceed the budget. Both are zero in the ordinary case, where
    ``sum(adjusted) == adjusted_total``.
    """

    strategy: FlexStrategy
    flex_percentage: Decimal
    original_total: Decimal
    adjusted_total: Decimal
    adjusted_requirements: list[MonthlyRequirement]
    impact_analysis: dict[UUID, GoalImpact]
    currency: str | None = None
    unallocated: Decimal = Decimal("0")
    protected_overflow: Decimal = Decimal("0")
    generated_at: datetime = field(default_factory=datetime.now)

    @property
    def at_risk_goal_ids(self) -> list[UUID]:
        return [goal_id for goal_id, impact in self.impact_analysis.items() if impact.at_risk]

    @property
    def total_reduction(self) -> Decimal:
        return sum(
            (max(Decimal("0"), -i.change_amount) for i in self.impact_analysis.values()),
            Decimal("0"),
        )

    @property
    def adjustment_ratio(self) -> Decimal:
        if self.original_total == 0:
            return Decimal("0")
        return self.adjusted_total / self.original_total

    def requirement_for(self, goal_id: UUID) -> MonthlyRequirement | None:
        for requirement in self.adjusted_requirements:
            if requirement.goal_id == goal_id:
                return requirement
        return None
