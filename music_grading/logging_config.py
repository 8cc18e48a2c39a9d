"""
Logging configuration for the music grading system.

Modules log through the shared Loguru ``logger``; this module only decides
where records go.
"""

import sys
from pathlib import Path

from loguru import logger

from music_grading.config import Settings

CONSOLE_FORMAT = "{time:YYYY-MM-DD HH:mm:ss.SSS} | {level: <8} | {name} | {message}"


def setup_logging(level: str = "INFO", log_file: str | Path | None = None) -> None:
    """
    Configure Loguru sinks.

    Args:
        level: Log level for the stderr sink (DEBUG, INFO, WARNING, ...).
        log_file: Optional path to a log file; it always receives DEBUG records.
    """
    # Remove default handler
    logger.remove()

    logger.add(
        sys.stderr,
        format=CONSOLE_FORMAT,
        level=level,
        backtrace=False,
        diagnose=False,
    )

    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)

        logger.add(
            log_path,
            serialize=True,
            level="DEBUG",
            rotation="10 MB",
            retention="30 days",
        )


def setup_logging_from_settings(settings: Settings) -> None:
    """Configure logging from application settings."""
    setup_logging(level=settings.log_level, log_file=settings.log_file)
