"""
Django settings for the savings planner.

Base settings shared by all environments.
"""

import os
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()

BASE_DIR = Path(__file__).resolve().parent.parent.parent

# SECURITY WARNING: keep the secret key used in production secret!
SECRET_KEY = os.getenv("SECRET_KEY") or "django-insecure-placeholder-key-for-tests-and-local-dev"

DEBUG = os.getenv("DEBUG", "False") == "True"

# Configure logging early (before Django uses it)
from config.logging import configure_structlog, get_logging_config  # noqa: E402

configure_structlog(debug=DEBUG)


# Application definition

INSTALLED_APPS = [
    "django.contrib.contenttypes",
    "savings",
]


# ============================================================================
# DATABASE CONFIGURATION
# ============================================================================

DATABASES = {
    "default": {
        "ENGINE": "django.db.backends.sqlite3",
        "NAME": os.getenv("SAVINGS_DB_PATH", BASE_DIR / "db.sqlite3"),
    }
}

DEFAULT_AUTO_FIELD = "django.db.models.BigAutoField"


# Internationalization

LANGUAGE_CODE = "en-us"

TIME_ZONE = "UTC"

USE_I18N = True

USE_TZ = True


# ============================================================================
# PLANNING POLICY
# ============================================================================
# Read by savings.services.planning.PlanningPolicy.from_settings(). Any key
# left out falls back to the constant of the same name in
# savings/services/planning/policy.py.

SAVINGS_PLANNING = {
    "DAYS_PER_MONTH": os.getenv("SAVINGS_DAYS_PER_MONTH", "30"),
    "ALLOCATION_EPSILON": os.getenv("SAVINGS_ALLOCATION_EPSILON", "0.0000001"),
    "CRITICAL_MONTHLY_AMOUNT": os.getenv("SAVINGS_CRITICAL_MONTHLY_AMOUNT", "10000"),
    "ATTENTION_MONTHLY_AMOUNT": os.getenv("SAVINGS_ATTENTION_MONTHLY_AMOUNT", "5000"),
    "CRITICAL_PROGRESS": os.getenv("SAVINGS_CRITICAL_PROGRESS", "0.10"),
    "CRITICAL_MONTHS": 1,
    "ATTENTION_MONTHS": 1,
    "HIGH_RISK_MONTHS": 2,
    "FLEX_HIGH_RISK_REDUCTION_PCT": "50",
    "FLEX_MEDIUM_RISK_REDUCTION_PCT": "25",
}

# Display currency used by build_default_engine() when the caller passes none
SAVINGS_DISPLAY_CURRENCY = os.getenv("SAVINGS_DISPLAY_CURRENCY", "USD")

# Logging Configuration
LOGGING = get_logging_config(debug=DEBUG)
