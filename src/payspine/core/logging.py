"""
Structured logging for payspine.

Configures structlog once per process and hands out loggers. Payment attempt
loops bind ``account``, ``payment_id`` and ``transaction_id`` through
contextvars so every line emitted from a worker thread carries them.

Architecture:
    ::

        configure_logging(level="INFO", json_format=True, service="payspine")
        configure_from_settings(settings)   # level/format from PAYSPINE_LOG_*
            │
            ▼
        structlog processor chain:
          1. TimeStamper(iso)              (optional)
          2. merge_contextvars             account / payment_id / transaction_id
          3. add_log_level
          4. service metadata              service.name
          5. logger name                   logger
          6. ECS field names               (JSON only)
          7. JSONRenderer | ConsoleRenderer

Examples:
    >>> from payspine.core.logging import configure_logging, get_logger
    >>> configure_logging(level="DEBUG", json_format=False)
    >>> logger = get_logger(__name__)
    >>> with LogContext(payment_id="p-1"):
    ...     logger.info("payment_submitted")

Tags:
    logging, structlog, observability, payspine
"""

from __future__ import annotations

import logging
import sys
from typing import Any

import structlog
from structlog.types import EventDict, Processor, WrappedLogger

_ECS_RENAMES = {"timestamp": "@timestamp", "level": "log.level"}


def _service_metadata(service: str) -> Processor:
    def add_service(logger: WrappedLogger, method_name: str, event_dict: EventDict) -> EventDict:
        event_dict.setdefault("service.name", service)
        return event_dict

    return add_service


def _logger_name(logger: WrappedLogger, method_name: str, event_dict: EventDict) -> EventDict:
    """Expose the name given to ``get_logger`` as the ``logger`` field."""
    if "logger_name" in event_dict:
        event_dict["logger"] = event_dict.pop("logger_name")
    return event_dict


def _ecs_field_names(logger: WrappedLogger, method_name: str, event_dict: EventDict) -> EventDict:
    """Rename timestamp/level to their ECS keys."""
    for key, ecs_key in _ECS_RENAMES.items():
        if key in event_dict:
            event_dict[ecs_key] = event_dict.pop(key)
    return event_dict


def _build_processors(json_format: bool, service: str, add_timestamp: bool) -> list[Processor]:
    processors: list[Processor] = []
    if add_timestamp:
        processors.append(structlog.processors.TimeStamper(fmt="iso"))
    processors += [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.processors.StackInfoRenderer(),
        structlog.dev.set_exc_info,
        _service_metadata(service),
        _logger_name,
    ]
    if json_format:
        processors += [
            structlog.processors.format_exc_info,
            _ecs_field_names,
            structlog.processors.JSONRenderer(),
        ]
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty()))
    return processors


def configure_logging(
    level: str = "INFO",
    json_format: bool | None = None,
    service: str = "payspine",
    add_timestamp: bool = True,
) -> None:
    """Configure structured logging for the process.

    Args:
        level: Log level name (DEBUG, INFO, WARNING, ERROR)
        json_format: True for JSON, False for console, None for JSON unless stdout is a tty
        service: Value of ``service.name`` on every line
        add_timestamp: Include an ISO timestamp
    """
    if json_format is None:
        json_format = not sys.stdout.isatty()
    numeric_level = logging.getLevelNamesMapping()[level.upper()]

    structlog.configure(
        processors=_build_processors(json_format, service, add_timestamp),
        wrapper_class=structlog.make_filtering_bound_logger(numeric_level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )
    # httpx logs through the stdlib
    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=numeric_level)


def configure_from_settings(settings) -> None:
    """Configure logging from ``ProviderAccountSettings.log_level``/``log_format``."""
    configure_logging(
        level=settings.log_level,
        json_format=settings.log_format == "json",
        service=settings.service_name,
    )


def get_logger(name: str | None = None) -> Any:
    """Get a structlog logger; ``name`` is rendered as the ``logger`` field.

    The name is an initial value of the lazy proxy, so loggers created at
    import time still pick up a later ``configure_logging``.
    """
    if name is None:
        return structlog.get_logger()
    return structlog.get_logger(name, logger_name=name)


def bind_context(**kwargs: Any) -> None:
    """Bind fields onto every later log line of this thread."""
    structlog.contextvars.bind_contextvars(**kwargs)


def unbind_context(*keys: str) -> None:
    """Remove specific keys from the logging context."""
    structlog.contextvars.unbind_contextvars(*keys)


def clear_context() -> None:
    structlog.contextvars.clear_contextvars()


class LogContext:
    """Bind fields for the duration of a ``with`` block.

    Values bound before entering are restored on exit.

    Example:
        with LogContext(payment_id="p-1", transaction_id="t-1"):
            logger.info("payment_processed")
    """

    def __init__(self, **fields: Any):
        self.fields = fields
        self._tokens: dict[str, Any] = {}

    def __enter__(self) -> LogContext:
        self._tokens = structlog.contextvars.bind_contextvars(**self.fields)
        return self

    def __exit__(self, *exc_info) -> None:
        structlog.contextvars.reset_contextvars(**self._tokens)
        self._tokens = {}


__all__ = [
    "LogContext",
    "bind_context",
    "clear_context",
    "unbind_context",
    "configure_from_settings",
    "configure_logging",
    "get_logger",
]
