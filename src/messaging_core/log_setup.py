"""structlog setup driven by LoggingConfig."""

import logging
import sys

import structlog

from messaging_core.config import LoggingConfig


def configure_logging(config: LoggingConfig) -> None:
    """Configure structlog rendering and level filtering.

    Logs go to stderr so command output on stdout stays machine-readable.

    Args:
        config: Logging configuration (level and json/text format)
    """
    level = logging.getLevelName(config.log_level.upper())

    renderer: structlog.types.Processor
    if config.log_format.lower() == "json":
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=False)

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            structlog.processors.format_exc_info,
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=False,
    )
