"""Structured logging setup.

Every module logs through ``get_logger(__name__)`` with event-style names
(``report_query_started``, ``data_store_select``). Values bound with
``log_context`` are merged into every event logged inside the block, which is
how a report refresh tags its lines with the tenant.
"""

import logging
import sys
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

import structlog
from structlog.types import Processor

from crm_reports.common.config import LoggingConfig

PACKAGE_LOGGER = "crm_reports"

# Third-party loggers that are too chatty at INFO
_QUIET_LOGGERS = ("httpx", "httpcore", "matplotlib")


def _shared_processors() -> list[Processor]:
    return [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]


def _renderer(log_format: str) -> Processor:
    if log_format == "json":
        return structlog.processors.JSONRenderer()
    return structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty())


def setup_logging(config: LoggingConfig | None = None) -> None:
    """Configure structlog on top of the standard logging module.

    Args:
        config: Logging configuration. Uses defaults if not provided.
    """
    config = config or LoggingConfig()
    shared = _shared_processors()

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            *shared,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    formatter = structlog.stdlib.ProcessorFormatter(
        processor=_renderer(config.format),
        foreign_pre_chain=shared,
    )

    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stdout)]
    if config.log_file:
        handlers.append(logging.FileHandler(config.log_file))
    for handler in handlers:
        handler.setFormatter(formatter)

    level = logging.getLevelName(config.level.upper())
    if not isinstance(level, int):
        level = logging.INFO

    root_logger = logging.getLogger()
    root_logger.handlers = handlers
    root_logger.setLevel(level)
    logging.getLogger(PACKAGE_LOGGER).setLevel(level)
    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    """Get a structured logger instance.

    Args:
        name: Logger name. Defaults to the package logger.

    Returns:
        Bound logger instance.
    """
    return structlog.get_logger(name or PACKAGE_LOGGER)


@contextmanager
def log_context(**values: Any) -> Iterator[None]:
    """Bind values to every event logged inside the block.

    Context is task-local, so concurrent refreshes don't see each other's
    values.
    """
    with structlog.contextvars.bound_contextvars(**values):
        yield
