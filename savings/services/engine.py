"""
Planning API: one object wiring the store, collaborators and services.

Usage:
    from savings.services import build_default_engine

    engine = build_default_engine()
    engine.allocations.update_allocations(asset, [(goal, Decimal("600"))])
    requirements = engine.requirements(goals)
    result = engine.flex(requirements, Decimal("80"), FlexStrategy.URGENT)
"""

from __future__ import annotations

from collections.abc import Collection, Iterable, Sequence
from datetime import date
from decimal import Decimal
from uuid import UUID

import structlog

from savings.domain import (
    FlexAdjustmentResult,
    FlexStrategy,
    Goal,
    GoalValuation,
    MonthlyRequirement,
)
from savings.services.allocations import (
    AllocationChange,
    AllocationService,
    DjangoAllocationStore,
    PersistenceStore,
)
from savings.services.balances import BalanceProvider, BalanceService
from savings.services.goal_calculation import GoalCalculationService
from savings.services.planning import (
    FlexAdjustmentService,
    FlexAdjustmentSession,
    MonthlyPlanningService,
    PlanningPolicy,
)
from savings.services.rates import CurrencyConverter, RateProvider

logger = structlog.get_logger(__name__)


class PlanningEngine:
    """Composes the four services over one store and one set of collaborators."""

    def __init__(
        self,
        store: PersistenceStore,
        rate_provider: RateProvider | None = None,
        balance_provider: BalanceProvider | None = None,
        policy: PlanningPolicy | None = None,
        display_currency: str | None = None,
    ) -> None:
        self.store = store
        self.policy = policy or PlanningPolicy()
        self.display_currency = display_currency

        self.balances = BalanceService(balance_provider)
        self.converter = CurrencyConverter(rate_provider) if rate_provider is not None else None

        self.allocations = AllocationService(store, self.balances, self.policy)
        self.goal_calculation = GoalCalculationService(store, self.allocations, self.converter)
        self.planning = MonthlyPlanningService(self.goal_calculation, self.policy)
        self.flex_service = FlexAdjustmentService(self.policy, self.converter, display_currency)
        self.flex_session = FlexAdjustmentSession(self.flex_service)

        self.allocations.subscribe(self._log_change)

    def _log_change(self, change: AllocationChange) -> None:
        logger.debug(
            "allocation_change_observed",
            asset_id=str(change.asset_id),
            goal_count=len(change.goal_ids),
        )

    def valuation(self, goal: Goal) -> GoalValuation:
        return self.goal_calculation.valuation(goal)

    def current_total(self, goal: Goal) -> Decimal:
        return self.goal_calculation.current_total(goal)

    def progress(self, goal: Goal) -> Decimal:
        return self.goal_calculation.progress(goal)

    def requirement(self, goal: Goal, today: date | None = None) -> MonthlyRequirement:
        return self.planning.requirement(goal, today)

    def requirements(
        self, goals: Iterable[Goal], today: date | None = None
    ) -> list[MonthlyRequirement]:
        return self.planning.requirements(goals, today)

    def total_required(
        self, requirements: Sequence[MonthlyRequirement], display_currency: str | None = None
    ) -> Decimal:
        currency = display_currency or self.display_currency
        if currency is None:
            raise ValueError("A display currency is required to total mixed-currency requirements")
        return self.planning.total_required(requirements, currency, self.converter)

    def flex(
        self,
        requirements: Sequence[MonthlyRequirement],
        flex_percentage: Decimal,
        strategy: FlexStrategy | str = FlexStrategy.BALANCED,
        protected_goal_ids: Collection[UUID] = (),
        skipped_goal_ids: Collection[UUID] = (),
    ) -> FlexAdjustmentResult | None:
        """Calculate and publish a flex scenario through the session (None on failure)."""

        return self.flex_session.apply(
            requirements, flex_percentage, strategy, protected_goal_ids, skipped_goal_ids
        )


def build_default_engine(display_currency: str | None = None) -> PlanningEngine:
    """
    Engine backed by the Django models and Yahoo Finance rates.

    No live balance provider is wired, so balances come from the manual ledger.
    """
    from django.conf import settings

    from savings.services.market_data import YFinanceRateProvider

    return PlanningEngine(
        store=DjangoAllocationStore(),
        rate_provider=YFinanceRateProvider(),
        policy=PlanningPolicy.from_settings(),
        display_currency=display_currency or getattr(settings, "SAVINGS_DISPLAY_CURRENCY", None),
    )
