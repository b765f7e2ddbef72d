"""Logging configuration for the Ordering domain."""

import logging

import structlog

logger = structlog.get_logger(__name__)


def configure_logging(level: int = logging.INFO, json_output: bool = False) -> None:
    """Route stdlib logging through structlog and quiet noisy libraries."""
    logging.basicConfig(format="%(message)s", level=level)

    renderer = structlog.processors.JSONRenderer() if json_output else structlog.dev.ConsoleRenderer()
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        cache_logger_on_first_use=True,
    )

    # Suppress noisy library loggers
    logging.getLogger("protean").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
