"""UI-facing holder for the currently published flex adjustment."""

from __future__ import annotations

from collections.abc import Callable, Collection, Sequence
from decimal import Decimal
from uuid import UUID

import structlog

from savings.domain import FlexAdjustmentResult, FlexStrategy, MonthlyRequirement
from savings.exceptions import SavingsError
from savings.services.planning.flex import FlexAdjustmentService

logger = structlog.get_logger(__name__)


class FlexAdjustmentSession:
    """
    Publishes flex results to listeners, all-or-nothing.

    A failed calculation is logged and leaves the previously published result
    in place; listeners are only called with complete results.
    """

    def __init__(self, service: FlexAdjustmentService) -> None:
        self.service = service
        self.result: FlexAdjustmentResult | None = None
        self.last_error: Exception | None = None
        self._listeners: list[Callable[[FlexAdjustmentResult], None]] = []

    def subscribe(self, listener: Callable[[FlexAdjustmentResult], None]) -> None:
        self._listeners.append(listener)

    def apply(
        self,
        requirements: Sequence[MonthlyRequirement],
        flex_percentage: Decimal,
        strategy: FlexStrategy | str = FlexStrategy.BALANCED,
        protected_goal_ids: Collection[UUID] = (),
        skipped_goal_ids: Collection[UUID] = (),
    ) -> FlexAdjustmentResult | None:
        """Calculate and publish a scenario; returns None if it could not be calculated."""

        try:
            result = self.service.calculate_flex_scenarios(
                requirements, flex_percentage, strategy, protected_goal_ids, skipped_goal_ids
            )
        except (SavingsError, ArithmeticError) as e:
            self.last_error = e
            logger.warning(
                "flex_adjustment_failed",
                strategy=str(strategy),
                flex_percentage=str(flex_percentage),
                error=str(e),
                error_type=type(e).__name__,
            )
            return None

        self.last_error = None
        self.result = result
        for listener in self._listeners:
            listener(result)
        return result

    def reset(self) -> None:
        self.result = None
        self.last_error = None
