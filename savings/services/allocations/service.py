"""Allocation of shared asset balances across goals."""

from __future__ import annotations

from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass
from decimal import Decimal
from typing import TypeAlias
from uuid import UUID

import structlog

from savings.domain import AllocationHistoryEntry, AllocationRecord, Asset, Goal
from savings.exceptions import PersistenceError, ValidationError
from savings.services.balances import BalanceService
from savings.services.planning.policy import PlanningPolicy

logger = structlog.get_logger(__name__)

ZERO = Decimal("0")

AllocationRequest: TypeAlias = tuple[Goal | None, Decimal]


@dataclass(frozen=True)
class AllocationChange:
    """Notification payload sent after an asset's allocations are saved."""

    asset_id: UUID
    goal_ids: frozenset[UUID]


def sole_allocation_owns_balance(records: Sequence[AllocationRecord]) -> bool:
    """
    Fallback rule: an asset with exactly one allocation that carries neither
    an amount nor a percentage belongs entirely to that goal.

    With several such allocations the owner is ambiguous and each gets zero;
    the balance is never split evenly.
    """
    return len(records) == 1 and records[0].amount is None and records[0].percentage is None


class AllocationService:
    """
    Maintains the asset -> goal allocation graph.

    Every save replaces the asset's entire allocation set through the store,
    after validating the requested amounts against the asset's best-known
    balance.
    """

    def __init__(
        self,
        store,
        balances: BalanceService | None = None,
        policy: PlanningPolicy | None = None,
        on_change: Callable[[AllocationChange], None] | None = None,
    ) -> None:
        self.store = store
        self.balances = balances or BalanceService()
        self.policy = policy or PlanningPolicy()
        self._listeners: list[Callable[[AllocationChange], None]] = []
        if on_change is not None:
            self._listeners.append(on_change)

    # ------------------------------------------------------------------
    # Change notification
    # ------------------------------------------------------------------

    def subscribe(self, listener: Callable[[AllocationChange], None]) -> None:
        self._listeners.append(listener)

    def _notify(self, change: AllocationChange) -> None:
        for listener in self._listeners:
            try:
                listener(change)
            except Exception:
                # A saved allocation stays saved; listener bugs are only reported.
                logger.exception("allocation_listener_failed", asset_id=str(change.asset_id))

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def update_allocations(
        self, asset: Asset, new_allocations: Iterable[AllocationRequest]
    ) -> list[AllocationRecord]:
        """
        Replace all allocations of ``asset`` with ``new_allocations``.

        Entries with amount <= 0 are dropped (clearing that goal's share).

        Args:
            asset: Asset being allocated
            new_allocations: (goal, amount) pairs, amounts in the asset's currency

        Returns:
            The records that were stored

        Raises:
            ValidationError: Missing goal, duplicate goal, negative amount, or total
                exceeding the asset balance (nothing is written)
            PersistenceError: The store failed (nothing is written)
        """
        requests = [(goal, Decimal(amount)) for goal, amount in new_allocations]
        balance = self.current_balance(asset)
        self.validate_allocations(requests, balance)

        records = [
            AllocationRecord(asset_id=asset.id, goal_id=goal.id, amount=amount)
            for goal, amount in requests
            if goal is not None and amount > 0
        ]
        self._replace(asset, records)
        return records

    def update_allocation_percentages(
        self, asset: Asset, new_allocations: Iterable[AllocationRequest]
    ) -> list[AllocationRecord]:
        """
        Replace allocations given as 0-1 shares of the current balance.

        Shares are validated against a 1.0 ceiling and stored as amounts.

        Raises:
            ValidationError: As for ``update_allocations``, or a non-zero share
                of an asset with no balance (nothing is written)
        """
        requests = [(goal, Decimal(share)) for goal, share in new_allocations]
        self.validate_allocations(requests, Decimal("1"))

        balance = max(self.current_balance(asset), ZERO)
        if balance == 0 and any(share > 0 for _, share in requests):
            logger.info("allocation_rejected", reason="zero_balance", asset_id=str(asset.id))
            raise ValidationError("Cannot allocate shares of an asset with no balance")
        amounts = [(goal, share * balance) for goal, share in requests]
        total = sum((a for _, a in amounts), ZERO)
        if total > balance > 0:
            # Shares within epsilon of 1.0 may overshoot the balance by a hair.
            amounts = [(goal, a * balance / total) for goal, a in amounts]

        records = [
            AllocationRecord(asset_id=asset.id, goal_id=goal.id, amount=amount)
            for goal, amount in amounts
            if goal is not None and amount > 0
        ]
        self._replace(asset, records)
        return records

    def set_allocation(self, asset: Asset, goal: Goal, amount: Decimal) -> list[AllocationRecord]:
        """Add or change one goal's share, keeping the asset's other allocations."""

        current = self.allocated_amounts(asset)
        current[goal.id] = Decimal(amount)
        goals = {gid: _GoalRef(gid) for gid in current}
        return self.update_allocations(asset, [(goals[gid], amt) for gid, amt in current.items()])

    def remove_allocation(self, asset: Asset, goal: Goal) -> None:
        remaining = [r for r in self.migrate_legacy_percentages(asset) if r.goal_id != goal.id]
        self._replace(asset, remaining)

    def remove_all_for_asset(self, asset: Asset) -> None:
        self._replace(asset, [])

    def remove_all_for_goal(self, goal: Goal) -> None:
        """Clear every asset's allocation to ``goal`` (e.g. before deleting the goal)."""

        asset_ids = {r.asset_id for r in self.store.load_allocations(goal_id=goal.id)}
        for asset_id in asset_ids:
            asset = self.store.load_asset(asset_id)
            if asset is None:
                continue
            self.remove_allocation(asset, goal)

    def migrate_legacy_percentages(
        self, asset: Asset, balance: Decimal | None = None
    ) -> list[AllocationRecord]:
        """
        Convert percentage-only rows of ``asset`` to canonical amounts once.

        Returns the asset's records after conversion. If persisting the
        conversion fails, the converted records are still returned and the
        legacy rows stay in place for the next load.
        """
        records = self.store.load_allocations(asset_id=asset.id)
        if not any(r.is_legacy for r in records):
            return records

        if balance is None:
            balance = self.current_balance(asset)
        amounts = self._derive_amounts(records, balance)
        converted = [
            AllocationRecord(asset_id=r.asset_id, goal_id=r.goal_id, amount=amounts[r.goal_id])
            if r.is_legacy
            else r
            for r in records
        ]
        try:
            self.store.replace_allocations(asset.id, converted)
        except PersistenceError:
            logger.warning("legacy_allocation_migration_failed", asset_id=str(asset.id))
            return converted

        logger.info(
            "legacy_allocations_migrated",
            asset_id=str(asset.id),
            count=sum(1 for r in records if r.is_legacy),
        )
        return converted

    def _replace(self, asset: Asset, records: list[AllocationRecord]) -> None:
        previous = {r.goal_id for r in self.store.load_allocations(asset_id=asset.id)}
        self.store.replace_allocations(asset.id, records)

        logger.info(
            "allocations_updated",
            asset_id=str(asset.id),
            allocation_count=len(records),
            total=str(sum((r.amount or ZERO for r in records), ZERO)),
        )
        self._notify(
            AllocationChange(
                asset_id=asset.id,
                goal_ids=frozenset(previous | {r.goal_id for r in records}),
            )
        )

    # ------------------------------------------------------------------
    # Validation
    # ------------------------------------------------------------------

    def validate_allocations(self, requests: Sequence[AllocationRequest], ceiling: Decimal) -> None:
        """
        Check a requested allocation set against ``ceiling``.

        ``ceiling`` is the asset balance for amounts, or 1 for percentage shares.
        Totals exactly equal to the ceiling are accepted; anything above it by
        more than the policy epsilon is rejected.
        """
        seen: set[UUID] = set()
        for goal, amount in requests:
            if goal is None:
                raise ValidationError("Goal not found")
            if amount < 0:
                raise ValidationError(f"Amount cannot be negative ({amount:.4f})")
            if goal.id in seen:
                raise ValidationError(f"Goal {goal.id} appears more than once")
            seen.add(goal.id)

        total = sum((amount for _, amount in requests), ZERO)
        if total > ceiling + self.policy.allocation_epsilon:
            logger.info("allocation_rejected", total=str(total), available=str(ceiling))
            raise ValidationError(
                f"Total allocation ({total:.4f}) exceeds available balance ({ceiling:.4f})"
            )

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def current_balance(self, asset: Asset) -> Decimal:
        return self.balances.current_balance(asset).amount

    def allocated_amount(
        self, asset: Asset, goal: Goal, balance: Decimal | None = None
    ) -> Decimal:
        """Amount of ``asset`` (in its currency) that belongs to ``goal``."""

        return self.allocated_amounts(asset, balance).get(goal.id, ZERO)

    def allocated_amounts(
        self, asset: Asset, balance: Decimal | None = None
    ) -> dict[UUID, Decimal]:
        """
        Allocated amount per goal id for every allocation of ``asset``.

        ``balance`` overrides the best-known balance (e.g. the manual ledger
        alone); by default it is resolved through the balance service and
        legacy percentage rows are migrated on the way.
        """
        if balance is None:
            balance = self.current_balance(asset)
            records = self.migrate_legacy_percentages(asset, balance)
        else:
            records = self.store.load_allocations(asset_id=asset.id)
        return self._derive_amounts(records, balance)

    def unallocated_amount(self, asset: Asset) -> Decimal:
        balance = self.current_balance(asset)
        allocated = sum(self.allocated_amounts(asset, balance).values(), ZERO)
        return max(ZERO, balance - allocated)

    def can_allocate(self, asset: Asset, amount: Decimal, excluding_goal: Goal | None = None) -> bool:
        amounts = self.allocated_amounts(asset)
        if excluding_goal is not None:
            amounts.pop(excluding_goal.id, None)
        total = sum(amounts.values(), ZERO) + amount
        return total <= self.current_balance(asset) + self.policy.allocation_epsilon

    def allocations_for_asset(self, asset: Asset) -> list[tuple[UUID, Decimal]]:
        """(goal_id, amount) pairs for ``asset``, largest first."""

        return sorted(self.allocated_amounts(asset).items(), key=lambda item: item[1], reverse=True)

    def allocations_for_goal(self, goal: Goal) -> list[AllocationRecord]:
        """Raw allocation records pointing at ``goal``, largest stored amount first."""

        records = self.store.load_allocations(goal_id=goal.id)
        return sorted(records, key=lambda r: r.amount or ZERO, reverse=True)

    def history(self, asset: Asset) -> list[AllocationHistoryEntry]:
        return self.store.load_history(asset.id)

    def _derive_amounts(
        self, records: Sequence[AllocationRecord], balance: Decimal
    ) -> dict[UUID, Decimal]:
        """
        Resolve each record to an amount.

        Order of precedence: stored amount, legacy percentage x balance, the
        sole-allocation fallback, then zero. If the balance has dropped below
        the stored total, every amount is scaled down proportionally so the
        allocations never claim more than the asset holds.
        """
        available = max(balance, ZERO)
        sole_owner = sole_allocation_owns_balance(records)

        amounts: dict[UUID, Decimal] = {}
        for record in records:
            if record.amount is not None:
                amounts[record.goal_id] = record.amount
            elif record.percentage is not None:
                amounts[record.goal_id] = record.percentage * available
            elif sole_owner:
                amounts[record.goal_id] = available
            else:
                amounts[record.goal_id] = ZERO

        total = sum(amounts.values(), ZERO)
        if total > available + self.policy.allocation_epsilon:
            logger.debug(
                "allocations_scaled_to_balance",
                total=str(total),
                available=str(available),
            )
            if available == 0:
                return {goal_id: ZERO for goal_id in amounts}
            return {goal_id: amount * available / total for goal_id, amount in amounts.items()}
        return amounts


@dataclass(frozen=True)
class _GoalRef:
    """Stand-in carrying only a goal id, for re-submitting existing allocations."""

    id: UUID
