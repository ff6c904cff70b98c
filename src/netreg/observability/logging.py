"""Structured logging for netreg.

Features:
- JSON or text format output
- Correlation ID propagation (context variable or bound logger)
- Sensitive data redaction
- Configurable log level
"""

import logging
import re
import sys
from contextvars import ContextVar
from typing import Any

import structlog

# Context variable for the correlation ID of the current request
correlation_id_var: ContextVar[str | None] = ContextVar("correlation_id", default=None)

REDACTED_FIELDS = frozenset(
    {
        "password",
        "secret",
        "api_key",
        "auth_token",
        "bearer_token",
        "access_token",
        "database_url",
        "redis_url",
    }
)

# user:password@ in connection URLs
_URL_CREDENTIALS = re.compile(r"(?P<scheme>[a-z0-9+.-]+://)[^/@\s]+@", re.IGNORECASE)


def redact_url(url: str) -> str:
    """Strip credentials from a connection URL.

    Parameters
    ----------
    url : str
        A database or Redis URL.

    Returns
    -------
    str
        The URL with any ``user:password@`` part replaced.
    """
    return _URL_CREDENTIALS.sub(r"\g<scheme>[REDACTED]@", url)


def _add_correlation_id(
    _logger: logging.Logger,
    _method_name: str,
    event_dict: dict[str, Any],
) -> dict[str, Any]:
    """Add correlation ID to log event if available and not already bound."""
    correlation_id = correlation_id_var.get()
    if correlation_id and "correlation_id" not in event_dict:
        event_dict["correlation_id"] = correlation_id
    return event_dict


def _redact_sensitive(
    _logger: logging.Logger,
    _method_name: str,
    event_dict: dict[str, Any],
) -> dict[str, Any]:
    """Redact sensitive fields from log events."""
    for key, value in event_dict.items():
        if key.lower() in REDACTED_FIELDS:
            event_dict[key] = "[REDACTED]"
        elif isinstance(value, str) and "://" in value:
            event_dict[key] = redact_url(value)
    return event_dict


def configure_logging(
    level: str = "INFO",
    log_format: str = "json",
) -> None:
    """Configure structured logging for the application.

    Parameters
    ----------
    level : str
        Log level (DEBUG, INFO, WARNING, ERROR).
    log_format : str
        Output format (json or text).
    """
    try:
        log_level = getattr(logging, level.upper())
    except AttributeError:
        raise ValueError(
            f"Invalid log level: {level!r}. "
            "Valid levels are: DEBUG, INFO, WARNING, ERROR, CRITICAL."
        ) from None

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=log_level,
    )

    processors: list[structlog.typing.Processor] = [
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        _add_correlation_id,
        _redact_sensitive,
    ]

    if log_format.lower() == "json":
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=True))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    """Get a structured logger instance.

    Parameters
    ----------
    name : str | None
        Logger name. If None, uses the calling module's name.

    Returns
    -------
    structlog.stdlib.BoundLogger
        Configured logger instance.
    """
    return structlog.get_logger(name)


def bind_correlation_id(logger: Any, correlation_id: str) -> Any:
    """Return a logger with the correlation ID bound to every event.

    Parameters
    ----------
    logger : Any
        A structlog logger.
    correlation_id : str
        The request's correlation ID.
    """
    return logger.bind(correlation_id=correlation_id)


def set_correlation_id(correlation_id: str) -> None:
    """Set the correlation ID for the current context.

    Parameters
    ----------
    correlation_id : str
        The correlation ID to set.
    """
    correlation_id_var.set(correlation_id)


def clear_correlation_id() -> None:
    """Clear the correlation ID for the current context."""
    correlation_id_var.set(None)
