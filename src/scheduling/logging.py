"""Structured logging for the scheduling engine, built on structlog.

JSON output in production, console output in development. Modules log through
get_logger(__name__) with snake_case event names and keyword context, e.g.
``log.warning("fetch_failed", endpoint=..., error=...)``.
"""

import logging
import sys
from typing import TYPE_CHECKING

import structlog

if TYPE_CHECKING:
    from src.scheduling.config import SchedulingConfig

# Chatty third-party loggers that only matter when debugging the transport
_QUIET_LOGGERS = ("httpx", "httpcore")


def setup_logging(json_output: bool = False, log_level: str = "INFO") -> None:
    """Configure structlog processors and the stdlib bridge.

    Args:
        json_output: If True, render JSON lines. If False, render for the console.
        log_level: Logging level name (DEBUG, INFO, WARNING, ERROR, CRITICAL).
    """
    numeric_level = getattr(logging, log_level.upper(), logging.INFO)

    processors = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.StackInfoRenderer(),
        structlog.dev.set_exc_info,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
    ]
    if json_output:
        # Teacher and student names are mostly CJK
        processors.append(structlog.processors.JSONRenderer(ensure_ascii=False))
    else:
        processors.append(structlog.dev.ConsoleRenderer())

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(numeric_level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )

    root = logging.getLogger()
    root.handlers = [logging.StreamHandler(sys.stdout)]
    root.setLevel(numeric_level)
    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(max(numeric_level, logging.WARNING))


def setup_logging_from_config(config: "SchedulingConfig") -> None:
    """Apply the ``log_json`` / ``log_level`` settings of a config object."""
    setup_logging(json_output=config.log_json, log_level=config.log_level)


def get_logger(name: str) -> structlog.BoundLogger:
    """Get a logger bound with the module name.

    Args:
        name: Logger name (typically __name__ from calling module).
    """
    return structlog.get_logger(name)
