from .base import *  # noqa: F403

DEBUG = True

from config.logging import configure_structlog, get_logging_config  # noqa: E402

configure_structlog(debug=True)

LOGGING = get_logging_config(debug=True)
LOGGING["loggers"]["savings"]["level"] = "DEBUG"
