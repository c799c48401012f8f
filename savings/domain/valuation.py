from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from uuid import UUID


@dataclass(frozen=True)
class AssetContribution:
    """One asset's allocated value toward a goal.

    Attributes:
        asset_id: Contributing asset
        asset_currency: Currency of ``allocated_amount``
        allocated_amount: Allocated share in the asset's currency
        converted_amount: The same share in the goal's currency
        is_stale: True when the live balance fetch or the conversion failed and
            a cached/zero fallback was used
        balance_updated: When the asset's live balance was fetched (None for
            manual-only assets)
    """

    asset_id: UUID
    asset_currency: str
    allocated_amount: Decimal
    converted_amount: Decimal
    is_stale: bool = False
    balance_updated: datetime | None = None


@dataclass(frozen=True)
class GoalValuation:
    """Best-effort current total of a goal in its own currency."""

    goal_id: UUID
    currency: str
    target_amount: Decimal
    total: Decimal
    contributions: list[AssetContribution] = field(default_factory=list)

    @property
    def progress(self) -> Decimal:
        """Unclamped total / target. Zero target means zero progress."""

        if self.target_amount == 0:
            return Decimal("0")
        return self.total / self.target_amount

    @property
    def is_stale(self) -> bool:
        return any(c.is_stale for c in self.contributions)

    @property
    def last_updated(self) -> datetime | None:
        """Oldest live-balance fetch among the contributions."""

        fetched = [c.balance_updated for c in self.contributions if c.balance_updated is not None]
        return min(fetched) if fetched else None
