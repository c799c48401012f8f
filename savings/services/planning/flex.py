"""
Flex adjustment: redistribute a scaled monthly budget across goals.

The budget is ``original_total * flex_percentage / 100`` regardless of
strategy. Protected goals are funded at their original requirement first;
strategies only decide how the rest is distributed among flexible goals.
Skipped goals are paused for the period and excluded from the original total.
"""

from __future__ import annotations

import math
from collections.abc import Callable, Collection, Sequence
from decimal import Decimal
from itertools import groupby
from typing import TypeAlias
from uuid import UUID

import structlog

from savings.domain import (
    FlexAdjustmentResult,
    FlexStrategy,
    GoalImpact,
    MonthlyRequirement,
    RiskLevel,
)
from savings.exceptions import CalculationError, RateUnavailable
from savings.services.planning.policy import PlanningPolicy
from savings.services.rates import CurrencyConverter

logger = structlog.get_logger(__name__)

ZERO = Decimal("0")
HUNDRED = Decimal("100")

Amounts: TypeAlias = dict[UUID, Decimal]
StrategyFn: TypeAlias = Callable[[Sequence[MonthlyRequirement], Amounts, Amounts, Decimal], Amounts]


def _spread_proportionally(
    requirements: Sequence[MonthlyRequirement], weights: Amounts, amount: Decimal
) -> Amounts:
    """Split ``amount`` across requirements in proportion to ``weights``."""

    total = sum((weights[r.goal_id] for r in requirements), ZERO)
    if total <= 0:
        return {r.goal_id: ZERO for r in requirements}
    return {r.goal_id: amount * weights[r.goal_id] / total for r in requirements}


def _fill_by_priority(
    requirements: Sequence[MonthlyRequirement],
    original: Amounts,
    budget: Decimal,
    priority: Callable[[MonthlyRequirement], tuple],
) -> Amounts:
    """
    Fund goals rank by rank up to their original requirement.

    Goals sharing a rank are funded together. The first rank the budget
    cannot cover in full splits what is left with every lower-ranked goal,
    in proportion to their originals. A surplus (flex above 100%) is spread
    over all goals the same way.
    """
    ordered = sorted(requirements, key=priority)
    allocated: Amounts = {}
    left = budget
    position = 0
    for _, rank in groupby(ordered, key=priority):
        group = list(rank)
        needed = sum((original[r.goal_id] for r in group), ZERO)
        if needed > left:
            allocated.update(_spread_proportionally(ordered[position:], original, left))
            return allocated
        for req in group:
            allocated[req.goal_id] = original[req.goal_id]
        left -= needed
        position += len(group)

    return _add_surplus(ordered, original, allocated, left)


def _fill_greedily(
    ordered: Sequence[MonthlyRequirement], original: Amounts, budget: Decimal
) -> Amounts:
    """Fund goals strictly in order; the first goal that does not fit takes what is left."""

    allocated: Amounts = {}
    left = budget
    for req in ordered:
        share = min(original[req.goal_id], left)
        allocated[req.goal_id] = share
        left -= share

    return _add_surplus(ordered, original, allocated, left)


def _add_surplus(
    requirements: Sequence[MonthlyRequirement], original: Amounts, allocated: Amounts, left: Decimal
) -> Amounts:
    if left <= 0:
        return allocated
    surplus = _spread_proportionally(requirements, original, left)
    return {goal_id: amount + surplus[goal_id] for goal_id, amount in allocated.items()}


def balanced(
    requirements: Sequence[MonthlyRequirement], original: Amounts, remaining: Amounts, budget: Decimal
) -> Amounts:
    """Scale every flexible goal by the same factor."""

    return _spread_proportionally(requirements, original, budget)


def urgent(
    requirements: Sequence[MonthlyRequirement], original: Amounts, remaining: Amounts, budget: Decimal
) -> Amounts:
    """Fund the goals with the fewest months left first (lower progress breaks ties)."""

    return _fill_by_priority(
        requirements, original, budget, lambda r: (r.months_remaining, r.progress)
    )


def largest(
    requirements: Sequence[MonthlyRequirement], original: Amounts, remaining: Amounts, budget: Decimal
) -> Amounts:
    """Fund the goals with the largest original requirement first."""

    return _fill_by_priority(requirements, original, budget, lambda r: (-original[r.goal_id],))


def risk_minimizing(
    requirements: Sequence[MonthlyRequirement], original: Amounts, remaining: Amounts, budget: Decimal
) -> Amounts:
    """
    Fund the goals closest to their target first.

    Fully funding the cheapest-to-finish goals keeps the number of goals
    slipping past their deadline as low as the budget allows.
    """
    ordered = sorted(requirements, key=lambda r: (remaining[r.goal_id], original[r.goal_id]))
    return _fill_greedily(ordered, original, budget)


STRATEGIES: dict[FlexStrategy, StrategyFn] = {
    FlexStrategy.BALANCED: balanced,
    FlexStrategy.URGENT: urgent,
    FlexStrategy.LARGEST: largest,
    FlexStrategy.RISK_MINIMIZING: risk_minimizing,
}


def estimated_delay(
    remaining_amount: Decimal, original_monthly: Decimal, adjusted_monthly: Decimal
) -> int | None:
    """
    Extra months needed to reach the target at the adjusted rate.

    Returns 0 when the adjusted rate is not lower or the goal is already
    funded, and None when the adjusted rate is zero (the goal never completes).
    """
    if remaining_amount <= 0 or adjusted_monthly >= original_monthly:
        return 0
    if adjusted_monthly <= 0:
        return None
    return math.ceil(remaining_amount / adjusted_monthly) - math.ceil(
        remaining_amount / original_monthly
    )


class FlexAdjustmentService:
    """
    Computes flex scenarios for a set of monthly requirements.

    When ``converter`` and ``display_currency`` are given, ranking and
    budgeting happen in the display currency and each goal's adjusted amount
    is converted back to its own currency. Without them, amounts are compared
    as-is, which is only meaningful when every requirement shares a currency.
    """

    def __init__(
        self,
        policy: PlanningPolicy | None = None,
        converter: CurrencyConverter | None = None,
        display_currency: str | None = None,
    ) -> None:
        self.policy = policy or PlanningPolicy()
        self.converter = converter
        self.display_currency = display_currency

    def calculate_flex_scenarios(
        self,
        requirements: Sequence[MonthlyRequirement],
        flex_percentage: Decimal,
        strategy: FlexStrategy | str = FlexStrategy.BALANCED,
        protected_goal_ids: Collection[UUID] = (),
        skipped_goal_ids: Collection[UUID] = (),
    ) -> FlexAdjustmentResult:
        """
        Redistribute contributions under ``flex_percentage``.

        Args:
            requirements: Current monthly requirements
            flex_percentage: 0 pauses everything, 100 leaves totals unchanged, 200 doubles
            strategy: Distribution strategy for flexible goals
            protected_goal_ids: Goals always funded at their original requirement
            skipped_goal_ids: Goals paused for this period (adjusted to zero)

        Returns:
            FlexAdjustmentResult with adjusted requirements and per-goal impact

        Raises:
            CalculationError: Negative flex percentage or unknown strategy
        """
        flex_percentage = Decimal(flex_percentage)
        if flex_percentage < 0:
            raise CalculationError(f"Flex percentage cannot be negative ({flex_percentage})")
        try:
            strategy = FlexStrategy(strategy)
        except ValueError as e:
            raise CalculationError(f"Unknown flex strategy: {strategy}") from e

        protected_ids = set(protected_goal_ids)
        skipped_ids = set(skipped_goal_ids)
        rates = self._display_rates(requirements)

        active = [r for r in requirements if r.goal_id not in skipped_ids]
        original = {r.goal_id: r.required_monthly * rates[r.goal_id] for r in active}
        remaining = {r.goal_id: max(ZERO, r.remaining_amount) * rates[r.goal_id] for r in active}
        original_total = sum(original.values(), ZERO)
        budget = original_total * flex_percentage / HUNDRED

        protected = [r for r in active if r.goal_id in protected_ids]
        flexible = [r for r in active if r.goal_id not in protected_ids]

        adjusted: Amounts = {r.goal_id: original[r.goal_id] for r in protected}
        left = budget - sum(adjusted.values(), ZERO)
        protected_overflow = max(ZERO, -left)
        left = max(ZERO, left)

        adjusted.update(STRATEGIES[strategy](flexible, original, remaining, left))
        unallocated = max(ZERO, left - sum((adjusted[r.goal_id] for r in flexible), ZERO))

        adjusted_requirements: list[MonthlyRequirement] = []
        impact_analysis: dict[UUID, GoalImpact] = {}
        for req in requirements:
            if req.goal_id in skipped_ids:
                amount = ZERO
            else:
                amount = adjusted[req.goal_id] / rates[req.goal_id]
            adjusted_requirements.append(req.with_adjustment(amount))
            impact_analysis[req.goal_id] = self.impact(
                req,
                amount,
                is_protected=req.goal_id in protected_ids,
                is_skipped=req.goal_id in skipped_ids,
            )

        result = FlexAdjustmentResult(
            strategy=strategy,
            flex_percentage=flex_percentage,
            original_total=original_total,
            adjusted_total=budget,
            adjusted_requirements=adjusted_requirements,
            impact_analysis=impact_analysis,
            currency=self._result_currency(requirements),
            unallocated=unallocated,
            protected_overflow=protected_overflow,
        )

        logger.info(
            "flex_scenario_calculated",
            strategy=strategy.value,
            flex_percentage=str(flex_percentage),
            goal_count=len(requirements),
            protected_count=len(protected),
            skipped_count=len(requirements) - len(active),
            at_risk_count=len(result.at_risk_goal_ids),
        )
        if protected_overflow > 0:
            logger.warning("flex_protected_exceeds_budget", overflow=str(protected_overflow))
        return result

    def calculate_for_budget(
        self,
        requirements: Sequence[MonthlyRequirement],
        monthly_budget: Decimal,
        strategy: FlexStrategy | str = FlexStrategy.BALANCED,
        protected_goal_ids: Collection[UUID] = (),
        skipped_goal_ids: Collection[UUID] = (),
    ) -> FlexAdjustmentResult:
        """Scenario whose adjusted total equals ``monthly_budget``."""

        skipped_ids = set(skipped_goal_ids)
        rates = self._display_rates(requirements)
        original_total = sum(
            (r.required_monthly * rates[r.goal_id] for r in requirements if r.goal_id not in skipped_ids),
            ZERO,
        )
        if original_total == 0:
            raise CalculationError("Cannot fit a budget to goals that require nothing")

        flex_percentage = Decimal(monthly_budget) / original_total * HUNDRED
        return self.calculate_flex_scenarios(
            requirements, flex_percentage, strategy, protected_goal_ids, skipped_ids
        )

    def compare_strategies(
        self,
        requirements: Sequence[MonthlyRequirement],
        flex_percentage: Decimal,
        protected_goal_ids: Collection[UUID] = (),
        skipped_goal_ids: Collection[UUID] = (),
    ) -> dict[FlexStrategy, FlexAdjustmentResult]:
        return {
            strategy: self.calculate_flex_scenarios(
                requirements, flex_percentage, strategy, protected_goal_ids, skipped_goal_ids
            )
            for strategy in FlexStrategy
        }

    def impact(
        self,
        requirement: MonthlyRequirement,
        adjusted_amount: Decimal,
        is_protected: bool = False,
        is_skipped: bool = False,
    ) -> GoalImpact:
        original = requirement.required_monthly
        change = adjusted_amount - original
        change_pct = change / original * HUNDRED if original > 0 else ZERO

        return GoalImpact(
            goal_id=requirement.goal_id,
            original_amount=original,
            adjusted_amount=adjusted_amount,
            change_amount=change,
            change_percentage=change_pct,
            estimated_delay=estimated_delay(requirement.remaining_amount, original, adjusted_amount),
            risk_level=self.impact_risk(original, adjusted_amount, change_pct),
            is_protected=is_protected,
            is_skipped=is_skipped,
        )

    def impact_risk(self, original: Decimal, adjusted: Decimal, change_pct: Decimal) -> RiskLevel:
        if original > 0 and adjusted <= 0:
            return RiskLevel.CRITICAL
        reduction = -change_pct
        if reduction > self.policy.flex_high_risk_reduction_pct:
            return RiskLevel.HIGH
        if reduction > self.policy.flex_medium_risk_reduction_pct:
            return RiskLevel.MEDIUM
        return RiskLevel.LOW

    def _display_rates(self, requirements: Sequence[MonthlyRequirement]) -> Amounts:
        """Goal currency -> display currency rate per goal (1 without a display currency)."""

        if self.converter is None or self.display_currency is None:
            return {r.goal_id: Decimal("1") for r in requirements}

        rates: Amounts = {}
        for req in requirements:
            try:
                rates[req.goal_id] = self.converter.rate(req.currency, self.display_currency)
            except RateUnavailable as e:
                logger.warning(
                    "flex_rate_unavailable",
                    goal_id=str(req.goal_id),
                    from_currency=req.currency,
                    to_currency=self.display_currency,
                    error=str(e),
                )
                rates[req.goal_id] = Decimal("1")
            if rates[req.goal_id] <= 0:
                raise CalculationError(f"Invalid rate {req.currency} -> {self.display_currency}")
        return rates

    def _result_currency(self, requirements: Sequence[MonthlyRequirement]) -> str | None:
        if self.converter is not None and self.display_currency is not None:
            return self.display_currency
        currencies = {r.currency for r in requirements}
        return currencies.pop() if len(currencies) == 1 else None
