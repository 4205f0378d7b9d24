"""
Logging configuration for MediaHub.

structlog is configured once at process start (``setup_logging()``) and every
module asks for a logger with ``get_logger(__name__)``:

    logger = get_logger(__name__)
    logger.info("notification_sent", notification_id=str(notification.id))

Event names are snake_case; context goes in keyword arguments, never in the
event string. Output is JSON unless LOG_FORMAT=text.
"""

import logging
import sys
from typing import Any

import structlog

from mediahub.core.config import settings

# Keys whose values never reach a log line
SECRET_KEYS = (
    "pin",
    "password",
    "password_hash",
    "secret",
    "token",
    "fcm_token",
    "database_url",
)


def redact_secrets(_, __, event_dict: dict[str, Any]) -> dict[str, Any]:
    """Redact sensitive values from log events."""
    for key in list(event_dict.keys()):
        if any(secret in key.lower() for secret in SECRET_KEYS):
            event_dict[key] = "***REDACTED***"
    return event_dict


def setup_logging() -> None:
    """Configure stdlib logging and structlog for the whole process."""
    level = getattr(logging, settings.LOG_LEVEL)

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=level,
    )

    renderer: Any
    if settings.LOG_FORMAT == "text":
        renderer = structlog.dev.ConsoleRenderer()
    else:
        renderer = structlog.processors.JSONRenderer()

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            redact_secrets,
            renderer,
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Get a logger bound with the application context."""
    return structlog.get_logger(name).bind(
        service=settings.APP_NAME,
        env=settings.APP_ENV,
    )
