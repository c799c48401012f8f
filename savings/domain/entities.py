from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from enum import StrEnum
from uuid import UUID, uuid4


class PaymentFrequency(StrEnum):
    """How often the saver contributes toward a goal."""

    DAILY = "daily"
    WEEKLY = "weekly"
    BIWEEKLY = "biweekly"
    MONTHLY = "monthly"

    @property
    def period_days(self) -> int:
        return _PERIOD_DAYS[self]


_PERIOD_DAYS = {
    PaymentFrequency.DAILY: 1,
    PaymentFrequency.WEEKLY: 7,
    PaymentFrequency.BIWEEKLY: 14,
    PaymentFrequency.MONTHLY: 30,
}


class GoalStatus(StrEnum):
    ACTIVE = "active"
    ARCHIVED = "archived"


@dataclass(frozen=True)
class Transaction:
    """A signed manual ledger entry against one asset."""

    amount: Decimal
    date: datetime
    comment: str | None = None


@dataclass(frozen=True)
class Asset:
    """A holding that funds goals: a manual ledger plus an optional on-chain source.

    Attributes:
        id: Asset identity
        currency: Currency/symbol the balance is denominated in (e.g. "BTC", "USDC")
        address: Optional chain address; together with chain_id implies a live balance
        chain_id: Optional chain slug (e.g. "ETH")
        transactions: Manual ledger entries
    """

    currency: str
    id: UUID = field(default_factory=uuid4)
    address: str | None = None
    chain_id: str | None = None
    transactions: tuple[Transaction, ...] = ()

    @property
    def has_live_source(self) -> bool:
        return bool(self.address) and bool(self.chain_id)

    @property
    def manual_balance(self) -> Decimal:
        """Sum of signed ledger amounts."""

        return sum((t.amount for t in self.transactions), Decimal("0"))

    def balance_history(self) -> list[tuple[datetime, Decimal]]:
        """Running manual balance after each transaction, oldest first."""

        running = Decimal("0")
        history: list[tuple[datetime, Decimal]] = []
        for txn in sorted(self.transactions, key=lambda t: t.date):
            running += txn.amount
            history.append((txn.date, running))
        return history


@dataclass(frozen=True)
class Goal:
    """A savings target with a deadline. Relates to assets only through allocations."""

    name: str
    target_amount: Decimal
    currency: str
    deadline: date
    id: UUID = field(default_factory=uuid4)
    start_date: date = field(default_factory=date.today)
    payment_frequency: PaymentFrequency = PaymentFrequency.MONTHLY
    status: GoalStatus = GoalStatus.ACTIVE

    @property
    def is_archived(self) -> bool:
        return self.status == GoalStatus.ARCHIVED


@dataclass(frozen=True)
class AllocationRecord:
    """Join row between one asset and one goal.

    ``amount`` (asset currency) is the canonical representation. ``percentage``
    is a legacy 0-1 share of the asset balance kept for rows written before
    amounts existed. When both are present, amount wins.
    """

    asset_id: UUID
    goal_id: UUID
    amount: Decimal | None = None
    percentage: Decimal | None = None

    def __post_init__(self) -> None:
        if self.amount is not None and self.amount < 0:
            raise ValueError(f"Allocation amount must be non-negative, got {self.amount}")
        if self.percentage is not None and not (0 <= self.percentage <= 1):
            raise ValueError(f"Allocation percentage must be within 0-1, got {self.percentage}")

    @property
    def key(self) -> tuple[UUID, UUID]:
        return (self.asset_id, self.goal_id)

    @property
    def is_legacy(self) -> bool:
        return self.amount is None and self.percentage is not None


@dataclass(frozen=True)
class AllocationHistoryEntry:
    """Amount assigned to a goal from an asset at a point in time (0 when removed)."""

    asset_id: UUID
    goal_id: UUID
    amount: Decimal
    recorded_at: datetime
