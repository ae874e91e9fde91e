"""Structlog configuration.

Usage:
    from resilient_cache.log import configure_logging, get_logger

    configure_logging()              # once, at startup
    logger = get_logger()
    logger.info("cache_hit", key="habits:list")
"""

import logging
import sys

import structlog
from structlog.stdlib import BoundLogger


def configure_logging(level: str = "INFO", json_output: bool = False) -> BoundLogger:
    """Configure structlog and the standard logging bridge.

    Args:
        level: Log level name (DEBUG, INFO, WARNING, ...).
        json_output: Render JSON lines instead of the console renderer.

    Returns:
        A configured logger instance.
    """
    log_level = getattr(logging, level.upper(), logging.INFO)

    processors: list = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]

    if json_output:
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer())

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(format="%(message)s", stream=sys.stderr, level=log_level)

    return get_logger()


def get_logger(name: str | None = None) -> BoundLogger:
    """Return a structlog logger, optionally bound to a module name."""
    if name is None:
        return structlog.get_logger()
    return structlog.get_logger(name)
