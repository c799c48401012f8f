from .base import *  # noqa: F403

DEBUG = False

# Use in-memory SQLite for speed
DATABASES = {
    "default": {
        "ENGINE": "django.db.backends.sqlite3",
        "NAME": ":memory:",
    }
}

# Policy pinned to the defaults so tests do not depend on the environment
SAVINGS_PLANNING = {}

SAVINGS_DISPLAY_CURRENCY = "USD"

# Disable logging during tests to keep output clean(er)
LOGGING = {
    "version": 1,
    "disable_existing_loggers": True,
    "handlers": {
        "console": {
            "class": "logging.StreamHandler",
        },
    },
    "loggers": {
        "savings": {
            "handlers": ["console"],
            "level": "CRITICAL",
        },
    },
}
