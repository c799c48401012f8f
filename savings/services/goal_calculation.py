"""
Goal totals: the currency-converted sum of every asset's share of a goal.

Aggregation is best-effort. A conversion failure for one asset never aborts
the sum; that asset contributes the last value it converted to, or zero,
and the valuation is flagged stale. A live balance that could not be
refreshed marks its contribution stale the same way.
"""

from __future__ import annotations

from decimal import Decimal
from typing import TYPE_CHECKING
from uuid import UUID

import structlog

from savings.domain import AssetContribution, Goal, GoalValuation
from savings.exceptions import RateUnavailable

if TYPE_CHECKING:
    from savings.domain import Asset
    from savings.services.allocations import AllocationService, PersistenceStore
    from savings.services.balances import BalanceSnapshot
    from savings.services.rates import CurrencyConverter

logger = structlog.get_logger(__name__)

ZERO = Decimal("0")


class GoalCalculationService:
    """Computes current totals and progress for goals."""

    def __init__(
        self,
        store: PersistenceStore,
        allocations: AllocationService,
        converter: CurrencyConverter | None = None,
    ) -> None:
        self.store = store
        self.allocations = allocations
        self.converter = converter
        # Last successfully converted contribution per (asset_id, goal_id)
        self._last_good: dict[tuple[UUID, UUID], Decimal] = {}

    def valuation(self, goal: Goal) -> GoalValuation:
        """Total, progress and per-asset breakdown of ``goal`` in its own currency."""

        return self._valuate(goal, manual_only=False)

    def current_total(self, goal: Goal) -> Decimal:
        return self.valuation(goal).total

    def progress(self, goal: Goal) -> Decimal:
        """Unclamped current_total / target_amount; 0 when the target is 0."""

        return self.valuation(goal).progress

    def manual_total(self, goal: Goal) -> Decimal:
        """
        Total counting only the manual ledger of each contributing asset.

        Skips the live balance provider entirely; rates still go through the
        converter and its cache.
        """
        return self._valuate(goal, manual_only=True).total

    def _valuate(self, goal: Goal, manual_only: bool) -> GoalValuation:
        contributions: list[AssetContribution] = []

        for record in self.store.load_allocations(goal_id=goal.id):
            asset = self.store.load_asset(record.asset_id)
            if asset is None:
                logger.debug("allocation_asset_missing", asset_id=str(record.asset_id))
                continue

            if manual_only:
                snapshot = None
                allocated = self.allocations.allocated_amount(asset, goal, asset.manual_balance)
            else:
                snapshot = self.allocations.balances.current_balance(asset)
                self.allocations.migrate_legacy_percentages(asset, snapshot.amount)
                allocated = self.allocations.allocated_amount(asset, goal, snapshot.amount)
            contributions.append(self._contribution(asset, goal, allocated, snapshot))

        contributions.sort(key=lambda c: c.converted_amount, reverse=True)
        total = sum((c.converted_amount for c in contributions), ZERO)

        return GoalValuation(
            goal_id=goal.id,
            currency=goal.currency,
            target_amount=goal.target_amount,
            total=total,
            contributions=contributions,
        )

    def _contribution(
        self,
        asset: Asset,
        goal: Goal,
        allocated: Decimal,
        snapshot: BalanceSnapshot | None = None,
    ) -> AssetContribution:
        key = (asset.id, goal.id)
        balance_stale = snapshot is not None and snapshot.is_stale
        balance_updated = snapshot.last_updated if snapshot is not None else None

        if asset.currency.upper() == goal.currency.upper():
            converted = allocated
        else:
            try:
                if self.converter is None:
                    raise RateUnavailable(
                        f"No converter configured for {asset.currency} -> {goal.currency}"
                    )
                converted = self.converter.convert(allocated, asset.currency, goal.currency)
            except RateUnavailable as e:
                fallback = self._last_good.get(key, ZERO)
                logger.warning(
                    "contribution_conversion_failed",
                    asset_id=str(asset.id),
                    goal_id=str(goal.id),
                    from_currency=asset.currency,
                    to_currency=goal.currency,
                    fallback=str(fallback),
                    error=str(e),
                )
                return AssetContribution(
                    asset_id=asset.id,
                    asset_currency=asset.currency,
                    allocated_amount=allocated,
                    converted_amount=fallback,
                    is_stale=True,
                    balance_updated=balance_updated,
                )

        self._last_good[key] = converted
        return AssetContribution(
            asset_id=asset.id,
            asset_currency=asset.currency,
            allocated_amount=allocated,
            converted_amount=converted,
            is_stale=balance_stale,
            balance_updated=balance_updated,
        )
