"""
Structured logging for widetable.

Modules log through structlog with snake_case event names and key-value
fields::

    logger = get_logger(__name__)
    logger.info("table_dropped", keyspace="app", table="events")

widetable never takes over an application's logging. ``connect_to_keyspace``
calls ``ensure_configured``, which applies ``WIDETABLE_LOG_LEVEL`` and
``WIDETABLE_LOG_FORMAT`` only while structlog is still unconfigured.

Tags:
    logging, structlog, widetable
"""

from __future__ import annotations

import logging
import sys
from typing import TYPE_CHECKING, Any

import structlog
from structlog.types import Processor

if TYPE_CHECKING:
    from widetable.settings import WidetableSettings


def _renderer(log_format: str) -> Processor:
    if log_format == "console":
        return structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty())
    return structlog.processors.JSONRenderer()


def configure_logging(level: str = "INFO", log_format: str = "json") -> None:
    """Route widetable events to stderr at ``level`` as JSON or console lines."""
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.add_log_level,
            structlog.processors.CallsiteParameterAdder(
                {structlog.processors.CallsiteParameter.MODULE}
            ),
            structlog.processors.format_exc_info,
            _renderer(log_format),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(getattr(logging, level.upper())),
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        # Loggers created at import time must follow a later reconfiguration
        cache_logger_on_first_use=False,
    )


def ensure_configured(settings: WidetableSettings) -> bool:
    """Configure from ``settings`` unless structlog is already configured."""
    if structlog.is_configured():
        return False
    configure_logging(level=settings.log_level, log_format=settings.log_format)
    get_logger(__name__).debug("logging_configured", level=settings.log_level, format=settings.log_format)
    return True


def get_logger(name: str | None = None) -> Any:
    """Lazy structlog logger, usually ``get_logger(__name__)``."""
    return structlog.get_logger(name)


__all__ = [
    "configure_logging",
    "ensure_configured",
    "get_logger",
]
