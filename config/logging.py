"""
Logging configuration for the savings engine.

Structured JSON logs in production and readable console output in
development, both through structlog. Service modules log events as
snake_case keys with key-value context:

    logger = structlog.get_logger(__name__)
    logger.info("allocations_replaced", asset_id=str(asset_id), count=2)

Usage:
    from config.logging import configure_structlog, get_logging_config

    configure_structlog(debug=DEBUG)
    LOGGING = get_logging_config(debug=DEBUG)
"""

import sys
from typing import Any

import structlog


def configure_structlog(debug: bool = False) -> None:
    """
    Configure structlog processors and the stdlib logger bridge.

    Call once, early in settings, before any module logs.

    Args:
        debug: Console renderer with colors when True, JSON otherwise
    """
    shared_processors = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
    ]

    if debug:
        processors = shared_processors + [structlog.dev.ConsoleRenderer(colors=True)]
    else:
        processors = shared_processors + [
            structlog.processors.format_exc_info,
            structlog.processors.dict_tracebacks,
            structlog.processors.JSONRenderer(),
        ]

    structlog.configure(
        processors=processors,  # type: ignore
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logging_config(debug: bool = False) -> dict[str, Any]:
    """
    Return the Django ``LOGGING`` dict.

    ``savings.services`` gets its own logger so collaborator fallbacks
    (stale balances, cached rates) can be tuned separately from model code.
    """
    formatter = "console" if debug else "json"
    foreign_pre_chain = [
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
    ]

    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "json": {
                "()": structlog.stdlib.ProcessorFormatter,
                "processor": structlog.processors.JSONRenderer(),
                "foreign_pre_chain": foreign_pre_chain,
            },
            "console": {
                "()": structlog.stdlib.ProcessorFormatter,
                "processor": structlog.dev.ConsoleRenderer(colors=True),
                "foreign_pre_chain": foreign_pre_chain,
            },
        },
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "formatter": formatter,
                "stream": sys.stdout,
            },
        },
        "root": {
            "handlers": ["console"],
            "level": "INFO",
        },
        "loggers": {
            "savings": {
                "handlers": ["console"],
                "level": "DEBUG" if debug else "INFO",
                "propagate": False,
            },
            "savings.services": {
                "handlers": ["console"],
                "level": "DEBUG" if debug else "INFO",
                "propagate": False,
            },
            "yfinance": {
                "handlers": ["console"],
                "level": "WARNING",
                "propagate": False,
            },
            "django": {
                "handlers": ["console"],
                "level": "INFO",
                "propagate": False,
            },
            "django.db.backends": {
                "handlers": ["console"],
                "level": "WARNING",
                "propagate": False,
            },
        },
    }
