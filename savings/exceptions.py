class SavingsError(Exception):
    """Base exception for all savings engine errors."""

    pass


class ValidationError(SavingsError):
    """Raised when an allocation request is rejected (exceeds balance, negative amount,
    missing goal). Always raised before anything is written."""

    pass


class BalanceUnavailable(SavingsError):
    """Raised by a balance provider when an address/chain is invalid or the fetch fails."""

    pass


class RateUnavailable(SavingsError):
    """Raised when an exchange rate cannot be fetched and nothing is cached."""

    pass


class PersistenceError(SavingsError):
    """Raised when the allocation store fails to read or write. No partial state is committed."""

    pass


class CalculationError(SavingsError):
    """Raised when a planning calculation cannot be completed (e.g. invalid flex input)."""

    pass
