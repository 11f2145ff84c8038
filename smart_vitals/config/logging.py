"""
Structured logging configuration for SMART Vitals.

This module provides structured JSON logging using structlog, with a
correlation ID bound per incoming request and the patient in launch context
bound once a request resolves its session. OAuth credentials passed as log
fields are masked before rendering.
"""

import logging
import sys
import uuid
from collections.abc import Callable, Mapping
from contextvars import ContextVar
from dataclasses import dataclass, field
from typing import Any

import structlog


@dataclass
class LoggingConfig:
    """Logging configuration."""

    suppressed_loggers: dict[str, str] = field(
        default_factory=lambda: {
            "aiohttp": "WARNING",
            "asyncio": "WARNING",
            "fhirpy": "WARNING",
            "uvicorn.access": "WARNING",
        }
    )
    # Token endpoint and launch fields that must never reach log output
    redacted_fields: frozenset[str] = frozenset(
        {
            "access_token",
            "authorization",
            "client_secret",
            "code",
            "id_token",
            "refresh_token",
        }
    )
    redaction_mask: str = "[REDACTED]"
    correlation_id_length: int = 8
    colors: bool = True


# Default logging configuration
_logging_config = LoggingConfig()

# Context variable for request correlation ID
correlation_id_var: ContextVar[str] = ContextVar("correlation_id", default="")


def get_correlation_id() -> str:
    """Get the correlation ID of the current request."""
    return correlation_id_var.get()


def set_correlation_id(correlation_id: str | None = None) -> str:
    """
    Start the logging context of a request.

    Clears fields bound by a previous request on the same context and binds
    the correlation ID, generating one if none was supplied.

    Returns:
        The correlation ID now in effect
    """
    structlog.contextvars.clear_contextvars()
    new_id = correlation_id or uuid.uuid4().hex[: _logging_config.correlation_id_length]
    correlation_id_var.set(new_id)
    return new_id


def bind_patient_context(patient_id: str | None) -> None:
    """Attach the launch patient to every log event of the current request."""
    if patient_id:
        structlog.contextvars.bind_contextvars(patient_id=patient_id)


def add_correlation_id(
    logger: logging.Logger, method_name: str, event_dict: dict[str, Any]
) -> dict[str, Any]:
    """Structlog processor adding the correlation ID to log events."""
    correlation_id = get_correlation_id()
    if correlation_id:
        event_dict["correlation_id"] = correlation_id
    return event_dict


def _redact(value: Any) -> Any:
    if isinstance(value, Mapping):
        return {
            key: _logging_config.redaction_mask
            if str(key).lower() in _logging_config.redacted_fields and item
            else _redact(item)
            for key, item in value.items()
        }
    return value


def redact_credentials(
    logger: logging.Logger, method_name: str, event_dict: dict[str, Any]
) -> dict[str, Any]:
    """Structlog processor masking OAuth credentials, including inside nested dicts."""
    return _redact(event_dict)


def configure_logging(
    level: str = "INFO",
    json_format: bool = True,
) -> None:
    """
    Configure structured logging for the application.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR)
        json_format: If True, output JSON logs; otherwise, use console format
    """
    # Convert level string to logging constant
    log_level = getattr(logging, level.upper(), logging.INFO)

    # Common processors for all outputs
    shared_processors: list[Callable] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        add_correlation_id,
        redact_credentials,
    ]

    if json_format:
        # JSON format for production
        processors = shared_processors + [
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ]
    else:
        # Console format for development
        processors = shared_processors + [
            structlog.dev.ConsoleRenderer(colors=_logging_config.colors),
        ]

    # Configure structlog
    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    # Configure standard library logging to use structlog
    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=log_level,
    )

    # Suppress noisy loggers
    for logger_name, logger_level in _logging_config.suppressed_loggers.items():
        logging.getLogger(logger_name).setLevel(
            getattr(logging, logger_level.upper(), logging.WARNING)
        )


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    """Get a structlog logger instance (usually named after the module)."""
    return structlog.get_logger(name)
