"""
Mock fixtures for external collaborators.

Provides consistent mocking for:
- Exchange rates (RateProvider / CurrencyConverter)
- Live balances (BalanceProvider)
- Yahoo Finance downloads
"""

from collections.abc import Callable, Generator
from decimal import Decimal
from typing import Any
from unittest.mock import MagicMock, patch

import pytest

from savings.exceptions import BalanceUnavailable, RateUnavailable
from savings.services.rates import CurrencyConverter

# ============================================================================
# RATE MOCKS
# ============================================================================

STANDARD_RATES = {
    ("EUR", "USD"): Decimal("1.10"),
    ("USD", "EUR"): Decimal("0.90"),
    ("BTC", "USD"): Decimal("50000"),
    ("BTC", "EUR"): Decimal("45000"),
}
"""Rates used by ``rate_provider`` unless a test overrides them."""


def rate_table_provider(rates: dict[tuple[str, str], Decimal]) -> MagicMock:
    """MagicMock RateProvider that looks pairs up in ``rates`` and raises for unknown pairs."""

    provider = MagicMock()

    def _convert(amount: Decimal, from_currency: str, to_currency: str, as_of: Any) -> Decimal:
        key = (from_currency.upper(), to_currency.upper())
        if key not in rates:
            raise RateUnavailable(f"No rate for {key}")
        return amount * rates[key]

    provider.convert.side_effect = _convert
    return provider


@pytest.fixture
def rate_provider() -> MagicMock:
    return rate_table_provider(STANDARD_RATES)


@pytest.fixture
def make_rate_provider() -> Callable[[dict[tuple[str, str], Decimal]], MagicMock]:
    """
    Fixture factory for rate providers with custom rates.

    Usage:
        def test_something(make_rate_provider):
            provider = make_rate_provider({("GBP", "USD"): Decimal("1.25")})
    """
    return rate_table_provider


@pytest.fixture
def failing_rate_provider() -> MagicMock:
    provider = MagicMock()
    provider.convert.side_effect = RateUnavailable("rate service down")
    return provider


@pytest.fixture
def converter(rate_provider: MagicMock, fixed_now) -> CurrencyConverter:
    return CurrencyConverter(rate_provider, clock=lambda: fixed_now)


# ============================================================================
# BALANCE MOCKS
# ============================================================================


@pytest.fixture
def balance_provider() -> MagicMock:
    """Live balance provider returning 2.5 for every address."""

    provider = MagicMock()
    provider.fetch_balance.return_value = Decimal("2.5")
    return provider


@pytest.fixture
def failing_balance_provider() -> MagicMock:
    provider = MagicMock()
    provider.fetch_balance.side_effect = BalanceUnavailable("indexer unreachable")
    return provider


# ============================================================================
# MARKET DATA MOCKS
# ============================================================================


@pytest.fixture
def mock_yf_download() -> Generator[MagicMock]:
    """
    Patch ``yf.download`` inside the market data module.

    Usage:
        def test_something(mock_yf_download):
            mock_yf_download.return_value = pd.DataFrame({"Close": [1.1, 1.2]})
    """
    with patch("savings.services.market_data.yf.download") as mock:
        yield mock
