"""
Currency conversion with a per-day rate cache.

Rates are cached by (from, to, day). A failed fetch falls back to the most
recent cached rate for the pair; with nothing cached it raises
``RateUnavailable`` unless both currencies are the same (always 1:1).
Cache entries are only written after a fetch completes, so an interrupted
fetch never leaves a partial entry behind.
"""

from __future__ import annotations

from collections.abc import Callable
from datetime import date, datetime
from decimal import Decimal
from typing import Protocol

from django.utils import timezone

import structlog

from savings.exceptions import RateUnavailable

logger = structlog.get_logger(__name__)


class RateProvider(Protocol):
    """External exchange-rate source."""

    def convert(
        self, amount: Decimal, from_currency: str, to_currency: str, as_of: date
    ) -> Decimal:
        """Convert ``amount``; raise ``RateUnavailable`` on failure."""
        ...


class CurrencyConverter:
    """Caching front for a ``RateProvider``."""

    def __init__(
        self,
        provider: RateProvider,
        clock: Callable[[], datetime] = timezone.now,
    ) -> None:
        self._provider = provider
        self._clock = clock
        self._rates: dict[tuple[str, str, date], Decimal] = {}
        self._latest: dict[tuple[str, str], tuple[Decimal, datetime]] = {}

    def rate(
        self,
        from_currency: str,
        to_currency: str,
        as_of: date | None = None,
        force_refresh: bool = False,
    ) -> Decimal:
        """
        Return the rate from ``from_currency`` to ``to_currency``.

        Args:
            from_currency: Source currency code
            to_currency: Target currency code
            as_of: Rate date (defaults to today)
            force_refresh: Bypass the cache for this day

        Raises:
            RateUnavailable: If the fetch fails and no rate for the pair was ever cached
        """
        source, target = from_currency.upper(), to_currency.upper()
        if source == target:
            return Decimal("1")

        day = as_of or self._clock().date()
        key = (source, target, day)

        if not force_refresh and key in self._rates:
            return self._rates[key]

        try:
            rate = self._provider.convert(Decimal("1"), source, target, day)
        except RateUnavailable as e:
            cached = self._latest.get((source, target))
            if cached is None:
                logger.warning("rate_unavailable", from_currency=source, to_currency=target, error=str(e))
                raise
            logger.warning(
                "rate_fallback_to_cache",
                from_currency=source,
                to_currency=target,
                cached_at=cached[1].isoformat(),
                error=str(e),
            )
            return cached[0]

        self._rates[key] = rate
        self._latest[(source, target)] = (rate, self._clock())
        logger.debug("rate_cached", from_currency=source, to_currency=target, day=day.isoformat())
        return rate

    def convert(
        self,
        amount: Decimal,
        from_currency: str,
        to_currency: str,
        as_of: date | None = None,
        force_refresh: bool = False,
    ) -> Decimal:
        if from_currency.upper() == to_currency.upper():
            return amount
        return amount * self.rate(from_currency, to_currency, as_of, force_refresh)

    def last_updated(self, from_currency: str, to_currency: str) -> datetime | None:
        """When the pair was last fetched successfully (None if never)."""

        cached = self._latest.get((from_currency.upper(), to_currency.upper()))
        return cached[1] if cached else None

    def clear_cache(self) -> None:
        self._rates.clear()
        self._latest.clear()
