"""
Structured logging configuration with correlation ID support.

JSON logs in production, coloured console output in development. Every HTTP
request carries a correlation ID so a recognition call can be followed through
the barrier command, the passage write and the notification tasks it spawns.
"""

import logging
import sys
import uuid
from contextvars import ContextVar
from typing import Any

import structlog
from structlog.types import Processor

from gatekeeper.core.config import get_settings

correlation_id_var: ContextVar[str] = ContextVar("correlation_id", default="")

NOISY_LOGGERS = ("uvicorn", "uvicorn.access", "sqlalchemy.engine", "httpx", "httpcore", "aiosqlite")


def get_correlation_id() -> str:
    """Return the correlation ID of the current request context."""
    return correlation_id_var.get()


def set_correlation_id(correlation_id: str | None = None) -> str:
    """
    Set the correlation ID for the current context.

    Args:
        correlation_id: Incoming ID (e.g. from ``X-Correlation-ID``). A new
            UUID is generated when None.

    Returns:
        str: The correlation ID that was set.
    """
    cid = correlation_id or str(uuid.uuid4())
    correlation_id_var.set(cid)
    return cid


def add_correlation_id(
    logger: logging.Logger,
    method_name: str,
    event_dict: dict[str, Any],
) -> dict[str, Any]:
    """Structlog processor adding ``correlation_id`` when one is set."""
    correlation_id = get_correlation_id()
    if correlation_id:
        event_dict["correlation_id"] = correlation_id
    return event_dict


def drop_color_message_key(
    logger: logging.Logger,
    method_name: str,
    event_dict: dict[str, Any],
) -> dict[str, Any]:
    # uvicorn duplicates the message with ANSI colours under this key
    event_dict.pop("color_message", None)
    return event_dict


def setup_logging() -> None:
    """
    Configure structlog and the standard library logging bridge.

    Called once when the application module is imported.
    """
    settings = get_settings()
    log_level = getattr(logging, settings.log_level.upper(), logging.INFO)

    common_processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
        add_correlation_id,
        drop_color_message_key,
    ]

    if settings.log_format == "json":
        processors: list[Processor] = [
            *common_processors,
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ]
    else:
        processors = [
            *common_processors,
            structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty()),
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

    for logger_name in NOISY_LOGGERS:
        logging.getLogger(logger_name).setLevel(logging.WARNING)


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    """
    Get a structured logger instance.

    Example:
        >>> logger = get_logger(__name__)
        >>> logger.info("barrier_opened", integration_id=3, plate="A123BC777")
    """
    return structlog.get_logger(name)
