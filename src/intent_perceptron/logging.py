"""
Structured logging setup for the perceptron intent classifier.

Configures structlog for key/value structured logging. Every log line
includes timestamp, level, and event; training context (iterations,
error) is passed as keyword arguments at the call site.
"""

from __future__ import annotations

import logging
import sys

import structlog

from intent_perceptron.config import get_settings


def configure_logging(level: str | None = None, json_output: bool = False) -> None:
    """Configure structlog processors, level filtering and rendering.

    Args:
        level: Logging level name (``DEBUG``, ``INFO``, ...).  Defaults to
            ``get_settings().log_level``.
        json_output: Render JSON lines instead of the console renderer.
    """
    if level is None:
        level = get_settings().log_level
    log_level = logging.getLevelName(level.upper())
    if not isinstance(log_level, int):
        raise ValueError(f"Unknown log level '{level}'")

    renderer: structlog.types.Processor
    if json_output:
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer()

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        logger_factory=structlog.PrintLoggerFactory(file=sys.stdout),
        cache_logger_on_first_use=False,
    )
