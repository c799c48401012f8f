import logging
from datetime import date, timedelta
from decimal import Decimal

import pandas as pd
import yfinance as yf

from savings.exceptions import RateUnavailable

logger = logging.getLogger(__name__)

FIAT_CURRENCIES = frozenset(
    {"USD", "EUR", "GBP", "JPY", "CHF", "CAD", "AUD", "NZD", "SEK", "NOK", "DKK", "PLN", "CZK",
     "HUF", "CNY", "HKD", "SGD", "INR", "KRW", "BRL", "MXN", "ZAR", "TRY", "ILS", "RUB", "UAH"}
)
"""Codes priced as Yahoo FX pairs (``EURUSD=X``); everything else is treated as crypto."""

STABLECOINS = {"USDT": "USD", "USDC": "USD", "DAI": "USD", "BUSD": "USD", "EURC": "EUR"}
"""Tokens pegged 1:1 to a fiat currency."""


class YFinanceRateProvider:
    """Exchange rates from Yahoo Finance.

    Fiat pairs use FX tickers (``EURUSD=X``), crypto uses ``BTC-USD`` style
    tickers. Crypto-to-crypto and fiat-to-crypto conversions go through USD.
    """

    def convert(self, amount: Decimal, from_currency: str, to_currency: str, as_of: date) -> Decimal:
        return amount * self.get_rate(from_currency, to_currency, as_of)

    def get_rate(self, from_currency: str, to_currency: str, as_of: date) -> Decimal:
        """
        Return how many ``to_currency`` units one ``from_currency`` unit buys on ``as_of``.

        Raises:
            RateUnavailable: If Yahoo returns no usable close for the pair
        """
        source = STABLECOINS.get(from_currency.upper(), from_currency.upper())
        target = STABLECOINS.get(to_currency.upper(), to_currency.upper())

        if source == target:
            return Decimal("1")

        source_fiat = source in FIAT_CURRENCIES
        target_fiat = target in FIAT_CURRENCIES

        if source_fiat and target_fiat:
            return self._fetch_close(f"{source}{target}=X", as_of)
        if not source_fiat and target_fiat:
            return self._crypto_to_fiat(source, target, as_of)
        if source_fiat and not target_fiat:
            return Decimal("1") / self._crypto_to_fiat(target, source, as_of)
        # crypto -> crypto via USD
        return self._fetch_close(f"{source}-USD", as_of) / self._fetch_close(f"{target}-USD", as_of)

    def _crypto_to_fiat(self, crypto: str, fiat: str, as_of: date) -> Decimal:
        try:
            return self._fetch_close(f"{crypto}-{fiat}", as_of)
        except RateUnavailable:
            if fiat == "USD":
                raise
            # Not every crypto is quoted in every fiat; bridge through USD.
            usd = self._fetch_close(f"{crypto}-USD", as_of)
            return usd * self._fetch_close(f"USD{fiat}=X", as_of)

    @staticmethod
    def _fetch_close(ticker: str, as_of: date) -> Decimal:
        """
        Fetch the last close at or before ``as_of`` for a single ticker.

        A 7-day window is requested so weekends and market holidays still
        resolve to the most recent close.
        """
        try:
            data = yf.download(
                ticker,
                start=as_of - timedelta(days=7),
                end=as_of + timedelta(days=1),
                progress=False,
                auto_adjust=True,
            )["Close"]
        except Exception as e:
            logger.warning(f"Error fetching rate for {ticker}: {e}")
            raise RateUnavailable(f"Could not fetch {ticker}") from e

        if isinstance(data, pd.DataFrame):
            data = data.iloc[:, 0] if not data.empty else pd.Series(dtype=float)
        data = data.dropna()

        if data.empty:
            logger.warning(f"No close returned for {ticker} on or before {as_of}")
            raise RateUnavailable(f"No rate for {ticker} on {as_of}")

        price_value = data.iloc[-1]
        val = price_value.item() if hasattr(price_value, "item") else price_value
        if val != val or val <= 0:  # NaN check
            raise RateUnavailable(f"Invalid rate for {ticker}: {val}")
        return Decimal(str(val))
