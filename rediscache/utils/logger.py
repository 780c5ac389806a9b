"""
Structured logging configuration using structlog.

Provides JSON-formatted logging for production and a coloured console
renderer for development. Connection strings passed as log fields are
stripped of credentials before rendering.
"""
import logging
import os
import sys
from typing import Any

import structlog

from rediscache.config import redact_url

# Event fields that may carry a Redis connection string
URL_FIELDS = ("redis_url", "node_url", "url")


def redact_credentials(
    logger: Any, method_name: str, event_dict: structlog.types.EventDict
) -> structlog.types.EventDict:
    """
    Remove user:password from connection strings in an event.

    Example:
        >>> redact_credentials(None, "info", {"redis_url": "redis://u:p@host:6379/0"})
        {'redis_url': 'redis://host:6379/0'}
    """
    for field in URL_FIELDS:
        value = event_dict.get(field)
        if isinstance(value, str) and "@" in value:
            event_dict[field] = redact_url(value)
    return event_dict


def setup_logging(level: str = "INFO") -> None:
    """
    Configure structured logging with structlog.

    Args:
        level: Log level string (DEBUG, INFO, WARNING, ERROR, CRITICAL)

    Sets up:
        - JSON output format for production
        - Console output with colors when ENVIRONMENT=development
        - Credential redaction for connection string fields
        - Integration with standard library logging (redis-py logs there)
    """
    log_level = getattr(logging, level.upper(), logging.INFO)

    # redis-py and asyncio log through the standard library
    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=log_level,
    )

    is_dev = os.getenv("ENVIRONMENT", "production") == "development"

    processors = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        redact_credentials,
        structlog.processors.StackInfoRenderer(),
        structlog.dev.set_exc_info,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
    ]

    if is_dev:
        processors.append(structlog.dev.ConsoleRenderer())
    else:
        processors.append(structlog.processors.JSONRenderer())

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str = __name__, **context: Any) -> structlog.BoundLogger:
    """
    Get a structured logger instance with optional bound context.

    Args:
        name: Logger name (typically __name__ of calling module)
        **context: Fields added to every event from this logger

    Example:
        >>> logger = get_logger(__name__, component="cache_manager")
        >>> logger.info("cache_cleared", removed=42)
    """
    return structlog.get_logger(name, **context)
