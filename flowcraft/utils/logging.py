"""
Structured logging for flowcraft.

get_logger() is safe to import from any module; configure_logging() is
called once by entry points (CLI, service bootstrap).
"""

import logging
import sys
from typing import Any

import structlog

SENSITIVE_KEYS = (
    "api_key",
    "apikey",
    "password",
    "secret",
    "authorization",
    "access_token",
    "refresh_token",
)

REDACTED = "***REDACTED***"

_configured = False


def filter_sensitive_data(
    logger: Any, method_name: str, event_dict: dict[str, Any]
) -> dict[str, Any]:
    """Redact credential-like fields. Token counters are left alone."""
    for key in list(event_dict.keys()):
        lowered = key.lower()
        if lowered.endswith("tokens"):
            continue
        if any(marker in lowered for marker in SENSITIVE_KEYS):
            event_dict[key] = REDACTED
    return event_dict


def configure_logging(level: str = "INFO", json_logs: bool = False) -> None:
    """Configure structlog and the stdlib root handler."""
    global _configured

    log_level = getattr(logging, level.upper(), logging.INFO)

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stderr,
        level=log_level,
        force=True,
    )

    renderer: Any
    if json_logs:
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=False)

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            filter_sensitive_data,
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )
    _configured = True


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    """Return a structlog logger bound to ``name``."""
    return structlog.get_logger(name)


def is_configured() -> bool:
    return _configured


__all__ = [
    "configure_logging",
    "filter_sensitive_data",
    "get_logger",
    "is_configured",
]
