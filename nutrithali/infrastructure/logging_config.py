"""Structlog setup for command line entry points."""

import logging
from typing import Optional

import structlog

from nutrithali.infrastructure.config import get_log_level


def configure_logging(json_output: bool = False, level: Optional[str] = None) -> None:
    """
    Configure structlog rendering.

    Args:
        json_output: Render JSON lines instead of the console format
        level: Log level name, defaults to NUTRITHALI_LOG_LEVEL
    """
    level_name = (level or get_log_level()).upper()
    numeric_level = logging.getLevelName(level_name)
    if not isinstance(numeric_level, int):
        numeric_level = logging.INFO

    renderer = (
        structlog.processors.JSONRenderer()
        if json_output
        else structlog.dev.ConsoleRenderer()
    )
    structlog.configure(
        processors=[
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(numeric_level),
    )
