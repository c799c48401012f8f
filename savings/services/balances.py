"""
Asset balances: manual ledger plus an optional live (on-chain) balance.

Live balances are cached by (chain_id, address, symbol). Nothing in the
cache expires; callers see staleness through ``BalanceSnapshot.last_updated``
and ``is_stale`` instead.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Protocol
from uuid import UUID

from django.utils import timezone

import structlog

from savings.domain import Asset
from savings.exceptions import BalanceUnavailable

logger = structlog.get_logger(__name__)


class BalanceProvider(Protocol):
    """External live-balance source (e.g. a blockchain indexer API)."""

    def fetch_balance(
        self, chain_id: str, address: str, symbol: str, force_refresh: bool = False
    ) -> Decimal:
        """Return the on-chain balance; raise ``BalanceUnavailable`` on failure."""
        ...


@dataclass(frozen=True)
class BalanceSnapshot:
    """Best-known balance of an asset.

    Attributes:
        asset_id: Asset the balance belongs to
        manual_amount: Sum of the manual ledger
        live_amount: On-chain balance (zero when the asset has no live source)
        last_updated: When the live amount was fetched (None for manual-only assets)
        is_stale: True when the live fetch failed and a cached/zero value was used
    """

    asset_id: UUID
    manual_amount: Decimal
    live_amount: Decimal = Decimal("0")
    last_updated: datetime | None = None
    is_stale: bool = False

    @property
    def amount(self) -> Decimal:
        return self.manual_amount + self.live_amount


class BalanceService:
    """Resolves asset balances, caching live lookups."""

    def __init__(
        self,
        provider: BalanceProvider | None = None,
        clock: Callable[[], datetime] = timezone.now,
    ) -> None:
        self._provider = provider
        self._clock = clock
        self._cache: dict[tuple[str, str, str], tuple[Decimal, datetime]] = {}

    def current_balance(self, asset: Asset, force_refresh: bool = False) -> BalanceSnapshot:
        manual = asset.manual_balance
        if self._provider is None or not asset.chain_id or not asset.address:
            return BalanceSnapshot(asset_id=asset.id, manual_amount=manual)

        key = (asset.chain_id, asset.address, asset.currency.upper())
        cached = self._cache.get(key)

        if cached is not None and not force_refresh:
            return BalanceSnapshot(
                asset_id=asset.id,
                manual_amount=manual,
                live_amount=cached[0],
                last_updated=cached[1],
            )

        try:
            live = self._provider.fetch_balance(*key, force_refresh=force_refresh)
        except BalanceUnavailable as e:
            logger.warning(
                "balance_unavailable",
                asset_id=str(asset.id),
                chain_id=asset.chain_id,
                has_cached=cached is not None,
                error=str(e),
            )
            if cached is None:
                return BalanceSnapshot(asset_id=asset.id, manual_amount=manual, is_stale=True)
            return BalanceSnapshot(
                asset_id=asset.id,
                manual_amount=manual,
                live_amount=cached[0],
                last_updated=cached[1],
                is_stale=True,
            )

        fetched_at = self._clock()
        self._cache[key] = (live, fetched_at)
        logger.debug("balance_cached", asset_id=str(asset.id), chain_id=asset.chain_id)
        return BalanceSnapshot(
            asset_id=asset.id,
            manual_amount=manual,
            live_amount=live,
            last_updated=fetched_at,
        )

    def clear_cache(self) -> None:
        self._cache.clear()
