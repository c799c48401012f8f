from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import date
from decimal import Decimal
from enum import IntEnum, StrEnum
from uuid import UUID

from savings.domain.entities import PaymentFrequency


class RequirementStatus(StrEnum):
    """Coarse status of a goal's monthly requirement."""

    COMPLETED = "completed"
    ON_TRACK = "on_track"
    ATTENTION = "attention"
    CRITICAL = "critical"

    @property
    def display_name(self) -> str:
        return {
            RequirementStatus.COMPLETED: "Completed",
            RequirementStatus.ON_TRACK: "On Track",
            RequirementStatus.ATTENTION: "Needs Attention",
            RequirementStatus.CRITICAL: "Critical",
        }[self]


class RiskLevel(IntEnum):
    """How likely a goal is to miss its deadline. Ordered so higher means riskier."""

    LOW = 1
    MEDIUM = 2
    HIGH = 3
    CRITICAL = 4

    @property
    def label(self) -> str:
        return self.name.lower()


@dataclass(frozen=True)
class MonthlyRequirement:
    """Derived, non-persisted contribution requirement for one goal.

    ``required_monthly`` is what the goal needs; ``adjusted_monthly`` is what a
    flex adjustment currently assigns (equal to ``required_monthly`` until one
    is applied). ``progress`` is unclamped; use ``display_progress`` for UI.
    """

    goal_id: UUID
    goal_name: str
    currency: str
    target_amount: Decimal
    current_total: Decimal
    remaining_amount: Decimal
    months_remaining: int
    required_monthly: Decimal
    progress: Decimal
    deadline: date
    status: RequirementStatus
    risk_level: RiskLevel
    payment_frequency: PaymentFrequency = PaymentFrequency.MONTHLY
    periods_remaining: int = 1
    required_per_period: Decimal = Decimal("0")
    adjusted_monthly: Decimal | None = None

    def __post_init__(self) -> None:
        if self.months_remaining < 1:
            raise ValueError(f"months_remaining must be at least 1, got {self.months_remaining}")
        if self.adjusted_monthly is None:
            object.__setattr__(self, "adjusted_monthly", self.required_monthly)

    @property
    def display_progress(self) -> Decimal:
        return min(max(self.progress, Decimal("0")), Decimal("1"))

    @property
    def is_adjusted(self) -> bool:
        return self.adjusted_monthly != self.required_monthly

    @property
    def time_remaining_description(self) -> str:
        if self.months_remaining == 1:
            return "1 month left"
        return f"{self.months_remaining} months left"

    def with_adjustment(self, adjusted_monthly: Decimal) -> MonthlyRequirement:
        return replace(self, adjusted_monthly=adjusted_monthly)
