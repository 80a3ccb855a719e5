"""Structured logging configuration."""

import logging
import sys
from collections.abc import Mapping
from typing import Any, cast

import structlog
from structlog.types import EventDict

from pantrybot.config import get_settings

REDACTED = "[REDACTED]"

# Credential field names as they appear in settings, headers and event kwargs
SECRET_FIELDS = frozenset(
    {
        "api_key",
        "authorization",
        "x-api-key",
        "openai_api_key",
        "anthropic_api_key",
        "ollama_api_key",
    }
)


def _redact(value: Any) -> Any:
    if isinstance(value, Mapping):
        return {
            key: REDACTED if str(key).lower() in SECRET_FIELDS else _redact(item)
            for key, item in value.items()
        }
    return value


def redact_secrets(logger: Any, method_name: str, event_dict: EventDict) -> EventDict:
    """Mask backend credentials in event fields, including nested header dicts."""
    for key, value in list(event_dict.items()):
        if key.lower() in SECRET_FIELDS:
            event_dict[key] = REDACTED
        elif isinstance(value, Mapping):
            event_dict[key] = _redact(value)
    return event_dict


def setup_logging() -> None:
    """Configure structured logging for the application."""
    settings = get_settings()

    # Determine log level
    if settings.log_level:
        log_level = logging.getLevelName(settings.log_level.upper())
        if not isinstance(log_level, int):
            raise ValueError(f"Unknown LOG_LEVEL: {settings.log_level}")
    else:
        log_level = logging.DEBUG if settings.app_debug else logging.INFO

    # Configure structlog processors
    shared_processors: list[Any] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.PositionalArgumentsFormatter(),
        redact_secrets,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]

    if settings.is_development:
        # Pretty console output for development
        processors = shared_processors + [
            structlog.dev.ConsoleRenderer(colors=True),
        ]
    else:
        # JSON output for production
        processors = shared_processors + [
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ]

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=log_level,
    )

    # httpx logs every request line at INFO, including URLs
    for logger_name in ["httpx", "httpcore"]:
        logging.getLogger(logger_name).setLevel(logging.WARNING)


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Get a logger instance."""
    return cast(structlog.stdlib.BoundLogger, structlog.get_logger(name))
