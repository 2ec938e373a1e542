"""
Logging Setup

Applies LoggingSettings to the loguru logger.
"""

import sys
from pathlib import Path
from typing import Optional
from loguru import logger

from .config import LoggingSettings, settings


def configure_logging(log_settings: Optional[LoggingSettings] = None) -> None:
    """
    Configure loguru sinks.

    Replaces the default stderr sink with one using the configured level and
    format, and adds a rotating file sink when a log file is configured.

    Args:
        log_settings: Logging settings (uses application settings if not provided)
    """
    log_settings = log_settings or settings.logging

    logger.remove()
    logger.add(sys.stderr, level=log_settings.level, format=log_settings.format)

    if log_settings.file:
        Path(log_settings.file).parent.mkdir(parents=True, exist_ok=True)
        logger.add(
            log_settings.file,
            level=log_settings.level,
            format=log_settings.format,
            rotation="10 MB",
            retention=5,
        )

    logger.debug(f"Logging configured at level {log_settings.level}")
