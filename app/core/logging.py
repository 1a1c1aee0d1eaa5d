"""Structured logging with structlog.

Every event carries the request id of the HTTP request it belongs to and
any context bound with ``bind_log_context`` (an upload binds its file name
and current stage, so row-level events need not repeat them).
"""

import logging
from collections.abc import Iterator, MutableMapping
from contextlib import contextmanager
from contextvars import ContextVar
from typing import Any

import structlog

from app.core.config import Settings, get_settings

request_id_ctx: ContextVar[str | None] = ContextVar("request_id", default=None)


def add_request_id(
    _logger: structlog.types.WrappedLogger,
    _method_name: str,
    event_dict: MutableMapping[str, Any],
) -> MutableMapping[str, Any]:
    """Add request_id from context to log events."""
    request_id = request_id_ctx.get()
    if request_id:
        event_dict["request_id"] = request_id
    return event_dict


@contextmanager
def bind_log_context(**values: Any) -> Iterator[None]:
    """Attach key/value pairs to every event logged inside the block.

    Nested blocks may rebind a key (the upload stage, for instance); the
    outer value is restored on exit.
    """
    with structlog.contextvars.bound_contextvars(**values):
        yield


def configure_logging(settings: Settings | None = None) -> None:
    """Configure structlog for the application.

    Args:
        settings: Settings to read level and format from. Defaults to
            the cached process settings.
    """
    settings = settings or get_settings()

    processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
        add_request_id,
        structlog.processors.format_exc_info,
    ]

    if settings.log_format == "json":
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=settings.is_development))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(
            getattr(logging, settings.log_level)
        ),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str | None = None) -> structlog.typing.FilteringBoundLogger:
    """Get a configured logger instance.

    Args:
        name: Logger name (typically __name__ of the calling module).

    Returns:
        Configured structlog logger.
    """
    logger: structlog.typing.FilteringBoundLogger = structlog.get_logger(name)
    return logger
