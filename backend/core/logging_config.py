"""
Loguru logging configuration.

- Colored, human-readable console output in development
- JSON lines everywhere else (machine-parseable)
- Correlation ID attached to every record
- Optional rotating log file (``LOG_FILE``)
"""

import sys
from pathlib import Path
from typing import TYPE_CHECKING

from loguru import logger

from core.correlation import get_correlation_id

if TYPE_CHECKING:
    from loguru import Record

CONSOLE_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | "
    "<level>{level: <8}</level> | "
    "<cyan>{extra[correlation_id]}</cyan> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> | "
    "<level>{message}</level>"
)


def correlation_filter(record: "Record") -> bool:
    """
    Attach the current correlation ID to a log record.

    Args:
        record: Loguru log record.

    Returns:
        Always True (the filter never drops messages).
    """
    record["extra"].setdefault("correlation_id", get_correlation_id() or "-")
    return True


def configure_logging(environment: str = "production", log_file: str = "") -> None:
    """
    Configure Loguru for the application.

    Args:
        environment: "development" for colored console output; anything
            else logs serialized JSON at INFO level.
        log_file: Optional path of a rotating log file.
    """
    logger.remove()

    development = environment == "development"

    if development:
        logger.add(
            sys.stderr,
            format=CONSOLE_FORMAT,
            level="DEBUG",
            filter=correlation_filter,
            colorize=True,
        )
    else:
        logger.add(
            sys.stderr,
            format="{message}",
            level="INFO",
            filter=correlation_filter,
            serialize=True,
        )

    if log_file:
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)
        logger.add(
            log_file,
            format=CONSOLE_FORMAT if development else "{message}",
            level="INFO",
            filter=correlation_filter,
            rotation="10 MB",
            retention="7 days",
            serialize=not development,
        )
