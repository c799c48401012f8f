"""Monthly contribution requirements per goal."""

from __future__ import annotations

import math
from collections.abc import Callable, Iterable, Sequence
from datetime import date
from decimal import Decimal
from typing import TYPE_CHECKING

import structlog

from savings.domain import Goal, MonthlyRequirement, PaymentFrequency, RequirementStatus, RiskLevel
from savings.exceptions import RateUnavailable
from savings.services.planning.policy import PlanningPolicy

if TYPE_CHECKING:
    from savings.services.goal_calculation import GoalCalculationService
    from savings.services.rates import CurrencyConverter

logger = structlog.get_logger(__name__)

ZERO = Decimal("0")


class MonthlyPlanningService:
    """
    Derives what each goal needs per month to hit its deadline.

    Pure with respect to goal state and the current date; ``clock`` supplies
    "today" when a call does not pass one.
    """

    def __init__(
        self,
        goal_calculation: GoalCalculationService,
        policy: PlanningPolicy | None = None,
        clock: Callable[[], date] = date.today,
    ) -> None:
        self.goal_calculation = goal_calculation
        self.policy = policy or PlanningPolicy()
        self._clock = clock

    def months_remaining(self, deadline: date, today: date | None = None) -> int:
        """Whole months until ``deadline``, never below 1 (past deadlines included)."""

        return self._periods(deadline, self.policy.days_per_month, today)

    def periods_remaining(
        self, deadline: date, frequency: PaymentFrequency, today: date | None = None
    ) -> int:
        return self._periods(deadline, frequency.period_days, today)

    def _periods(self, deadline: date, period_days: int, today: date | None) -> int:
        days = (deadline - (today or self._clock())).days
        return max(1, math.ceil(days / period_days))

    def requirement(self, goal: Goal, today: date | None = None) -> MonthlyRequirement:
        today = today or self._clock()
        valuation = self.goal_calculation.valuation(goal)

        months = self.months_remaining(goal.deadline, today)
        periods = self.periods_remaining(goal.deadline, goal.payment_frequency, today)
        remaining = max(ZERO, goal.target_amount - valuation.total)
        required_monthly = remaining / months
        progress = valuation.progress

        status = self.classify(remaining, required_monthly, progress, months)
        return MonthlyRequirement(
            goal_id=goal.id,
            goal_name=goal.name,
            currency=goal.currency,
            target_amount=goal.target_amount,
            current_total=valuation.total,
            remaining_amount=remaining,
            months_remaining=months,
            required_monthly=required_monthly,
            progress=progress,
            deadline=goal.deadline,
            status=status,
            risk_level=self.risk_level(status, months),
            payment_frequency=goal.payment_frequency,
            periods_remaining=periods,
            required_per_period=remaining / periods,
        )

    def requirements(
        self, goals: Iterable[Goal], today: date | None = None
    ) -> list[MonthlyRequirement]:
        """Requirements for ``goals``, sorted by goal name."""

        today = today or self._clock()
        results = [self.requirement(goal, today) for goal in goals]
        results.sort(key=lambda r: r.goal_name.lower())
        logger.debug("requirements_calculated", goal_count=len(results))
        return results

    def classify(
        self,
        remaining: Decimal,
        required_monthly: Decimal,
        progress: Decimal,
        months_remaining: int,
    ) -> RequirementStatus:
        policy = self.policy
        if remaining <= 0:
            return RequirementStatus.COMPLETED
        if required_monthly > policy.critical_monthly_amount or (
            progress < policy.critical_progress and months_remaining <= policy.critical_months
        ):
            return RequirementStatus.CRITICAL
        if (
            required_monthly > policy.attention_monthly_amount
            or months_remaining <= policy.attention_months
        ):
            return RequirementStatus.ATTENTION
        return RequirementStatus.ON_TRACK

    def risk_level(self, status: RequirementStatus, months_remaining: int) -> RiskLevel:
        if status == RequirementStatus.CRITICAL:
            return RiskLevel.CRITICAL
        if status == RequirementStatus.ATTENTION:
            if months_remaining <= self.policy.high_risk_months:
                return RiskLevel.HIGH
            return RiskLevel.MEDIUM
        return RiskLevel.LOW

    def total_required(
        self,
        requirements: Sequence[MonthlyRequirement],
        display_currency: str,
        converter: CurrencyConverter | None = None,
    ) -> Decimal:
        """
        Sum of ``required_monthly`` across requirements in ``display_currency``.

        A requirement whose rate cannot be resolved is counted 1:1 and logged.
        """
        converter = converter or self.goal_calculation.converter
        total = ZERO

        for req in requirements:
            if req.currency.upper() == display_currency.upper():
                total += req.required_monthly
                continue
            try:
                if converter is None:
                    raise RateUnavailable(f"No converter configured for {req.currency}")
                total += converter.convert(req.required_monthly, req.currency, display_currency)
            except RateUnavailable as e:
                logger.warning(
                    "requirement_conversion_failed",
                    goal_id=str(req.goal_id),
                    from_currency=req.currency,
                    to_currency=display_currency,
                    error=str(e),
                )
                total += req.required_monthly

        return total
