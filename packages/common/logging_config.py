"""
Structured logging setup

All modules log through structlog with snake_case event names and keyword
context, e.g. logger.info("recommendation_started", language="EN").
Call configure_logging() once at process start.
"""
import logging
from typing import Optional

import structlog

from packages.common.config import get_settings


def configure_logging(level: Optional[str] = None, json: Optional[bool] = None) -> None:
    """
    Configure structlog processors.

    Args:
        level: Log level name (defaults to LOG_LEVEL setting)
        json: Render JSON lines (defaults to LOG_JSON setting); console renderer otherwise
    """
    settings = get_settings()
    level_name = (level or settings.log_level).upper()
    render_json = settings.log_json if json is None else json

    renderer = structlog.processors.JSONRenderer() if render_json else structlog.dev.ConsoleRenderer()

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(logging.getLevelName(level_name)),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )
