"""
Persistence for the asset <-> goal allocation graph.

The graph is a flat join table keyed by (asset_id, goal_id) with lookups by
either key. Saving always replaces an asset's whole allocation set; readers
never observe a half-replaced set.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable
from datetime import datetime
from decimal import Decimal
from typing import Protocol, TypeAlias
from uuid import UUID

from django.db import DatabaseError, transaction
from django.utils import timezone

import structlog

from savings.domain import AllocationHistoryEntry, AllocationRecord, Asset
from savings.exceptions import PersistenceError

logger = structlog.get_logger(__name__)

AllocationKey: TypeAlias = tuple[UUID, UUID]  # (asset_id, goal_id)


class PersistenceStore(Protocol):
    """Storage contract used by the allocation and goal calculation services."""

    def replace_allocations(self, asset_id: UUID, records: list[AllocationRecord]) -> None:
        """Atomically replace every allocation of ``asset_id``; raise ``PersistenceError``."""
        ...

    def load_allocations(
        self, asset_id: UUID | None = None, goal_id: UUID | None = None
    ) -> list[AllocationRecord]:
        """Allocations filtered by asset and/or goal."""
        ...

    def load_asset(self, asset_id: UUID) -> Asset | None:
        """Asset snapshot, or None if it no longer exists."""
        ...

    def load_history(self, asset_id: UUID) -> list[AllocationHistoryEntry]:
        """Allocation amount changes for ``asset_id``, oldest first."""
        ...


def history_entries(
    asset_id: UUID,
    old: Iterable[AllocationRecord],
    new: Iterable[AllocationRecord],
    recorded_at: datetime,
) -> list[AllocationHistoryEntry]:
    """
    History rows for goals whose amount changed between two allocation sets.

    Removed goals are recorded with amount 0. Legacy percentage-only rows
    count as amount 0 since their amount is undefined.
    """
    old_amounts = {r.goal_id: r.amount or Decimal("0") for r in old}
    new_amounts = {r.goal_id: r.amount or Decimal("0") for r in new}

    return [
        AllocationHistoryEntry(
            asset_id=asset_id,
            goal_id=goal_id,
            amount=new_amounts.get(goal_id, Decimal("0")),
            recorded_at=recorded_at,
        )
        for goal_id in sorted(old_amounts.keys() | new_amounts.keys(), key=str)
        if old_amounts.get(goal_id, Decimal("0")) != new_amounts.get(goal_id, Decimal("0"))
    ]


class InMemoryAllocationStore:
    """
    Process-local store backed by a flat (asset_id, goal_id) index.

    Replacement builds a new index and swaps it in with a single assignment,
    so concurrent readers see either the old set or the new one.
    """

    def __init__(self, clock: Callable[[], datetime] = timezone.now) -> None:
        self._index: dict[AllocationKey, AllocationRecord] = {}
        self._assets: dict[UUID, Asset] = {}
        self._history: list[AllocationHistoryEntry] = []
        self._clock = clock

    def add_asset(self, asset: Asset) -> None:
        self._assets[asset.id] = asset

    def remove_asset(self, asset_id: UUID) -> None:
        """Delete an asset and cascade to its allocations."""

        self._assets.pop(asset_id, None)
        self._index = {k: v for k, v in self._index.items() if k[0] != asset_id}

    def remove_goal(self, goal_id: UUID) -> None:
        """Cascade a goal deletion to its allocations."""

        self._index = {k: v for k, v in self._index.items() if k[1] != goal_id}

    def replace_allocations(self, asset_id: UUID, records: list[AllocationRecord]) -> None:
        for record in records:
            if record.asset_id != asset_id:
                raise PersistenceError(
                    f"Record for asset {record.asset_id} passed to replace for {asset_id}"
                )

        old = [r for k, r in self._index.items() if k[0] == asset_id]
        index = {k: v for k, v in self._index.items() if k[0] != asset_id}
        index.update({r.key: r for r in records})

        self._history = self._history + history_entries(asset_id, old, records, self._clock())
        self._index = index

    def load_allocations(
        self, asset_id: UUID | None = None, goal_id: UUID | None = None
    ) -> list[AllocationRecord]:
        index = self._index
        return [
            record
            for (a_id, g_id), record in index.items()
            if (asset_id is None or a_id == asset_id) and (goal_id is None or g_id == goal_id)
        ]

    def load_asset(self, asset_id: UUID) -> Asset | None:
        return self._assets.get(asset_id)

    def load_history(self, asset_id: UUID) -> list[AllocationHistoryEntry]:
        return [e for e in self._history if e.asset_id == asset_id]


class DjangoAllocationStore:
    """Store backed by the ``savings`` Django models."""

    def replace_allocations(self, asset_id: UUID, records: list[AllocationRecord]) -> None:
        from savings.models import Allocation, AllocationHistory

        try:
            with transaction.atomic():
                existing = Allocation.objects.select_for_update().for_asset(asset_id)
                old = [a.to_record() for a in existing]
                existing.delete()

                Allocation.objects.bulk_create(
                    [
                        Allocation(
                            asset_id=asset_id,
                            goal_id=r.goal_id,
                            amount=r.amount,
                            percentage=r.percentage,
                        )
                        for r in records
                    ]
                )
                AllocationHistory.objects.bulk_create(
                    [
                        AllocationHistory(
                            asset_id=e.asset_id,
                            goal_id=e.goal_id,
                            amount=e.amount,
                            recorded_at=e.recorded_at,
                        )
                        for e in history_entries(asset_id, old, records, timezone.now())
                    ]
                )
        except DatabaseError as e:
            logger.error("allocation_replace_failed", asset_id=str(asset_id), error=str(e))
            raise PersistenceError(f"Could not save allocations for asset {asset_id}") from e

        logger.info("allocations_replaced", asset_id=str(asset_id), count=len(records))

    def load_allocations(
        self, asset_id: UUID | None = None, goal_id: UUID | None = None
    ) -> list[AllocationRecord]:
        from savings.models import Allocation

        queryset = Allocation.objects.all()
        if asset_id is not None:
            queryset = queryset.for_asset(asset_id)
        if goal_id is not None:
            queryset = queryset.for_goal(goal_id)

        try:
            return [a.to_record() for a in queryset]
        except DatabaseError as e:
            raise PersistenceError("Could not load allocations") from e

    def load_asset(self, asset_id: UUID) -> Asset | None:
        from savings.models import Asset as AssetModel

        try:
            asset = AssetModel.objects.prefetch_related("transactions").get(pk=asset_id)
        except AssetModel.DoesNotExist:
            return None
        except DatabaseError as e:
            raise PersistenceError(f"Could not load asset {asset_id}") from e
        return asset.to_domain()

    def load_history(self, asset_id: UUID) -> list[AllocationHistoryEntry]:
        from savings.models import AllocationHistory

        return [h.to_entry() for h in AllocationHistory.objects.filter(asset_id=asset_id)]
