"""
Startup validation for production.

Fails fast with a clear message when required environment variables are
missing or a planning override cannot be parsed.
"""

import os
from decimal import Decimal, InvalidOperation

from django.core.exceptions import ImproperlyConfigured

REQUIRED_VARS = [
    "SECRET_KEY",
    "DB_NAME",
    "DB_USER",
    "DB_PASSWORD",
]

INTEGER_OVERRIDES = [
    "SAVINGS_DAYS_PER_MONTH",
]

NUMERIC_OVERRIDES = [
    "SAVINGS_DAYS_PER_MONTH",
    "SAVINGS_ALLOCATION_EPSILON",
    "SAVINGS_CRITICAL_MONTHLY_AMOUNT",
    "SAVINGS_ATTENTION_MONTHLY_AMOUNT",
    "SAVINGS_CRITICAL_PROGRESS",
]


def validate_production_config() -> None:
    """
    Validate the environment for a production deployment.

    Raises:
        ImproperlyConfigured: If a required variable is missing or a
            ``SAVINGS_*`` policy override is not a number.
    """
    missing = [var for var in REQUIRED_VARS if not os.getenv(var)]
    if missing:
        raise ImproperlyConfigured(
            f"Missing required environment variables for production: {', '.join(missing)}\n"
            f"Please set these in your environment or .env file."
        )

    for var in NUMERIC_OVERRIDES:
        raw = os.getenv(var)
        if raw is None:
            continue
        try:
            value = Decimal(raw)
        except InvalidOperation as e:
            raise ImproperlyConfigured(f"{var} must be a number, got {raw!r}") from e
        if value < 0:
            raise ImproperlyConfigured(f"{var} cannot be negative, got {raw!r}")

    for var in INTEGER_OVERRIDES:
        raw = os.getenv(var)
        if raw is not None and (not raw.strip().isdigit() or int(raw) == 0):
            raise ImproperlyConfigured(f"{var} must be a positive whole number, got {raw!r}")
