"""Logging configuration for VitalZen."""

import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import List, Optional, Sequence

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# httpx logs every request at INFO, apscheduler every job run
LIBRARY_LOGGERS = ("httpx", "apscheduler")


def _build_handlers(
    log_file: Optional[str], max_bytes: int, backup_count: int
) -> List[logging.Handler]:
    formatter = logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT)

    handlers: List[logging.Handler] = [logging.StreamHandler(sys.stdout)]
    if log_file:
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)
        handlers.append(
            RotatingFileHandler(
                log_file,
                maxBytes=max_bytes,
                backupCount=backup_count,
                encoding="utf-8",
            )
        )

    for handler in handlers:
        handler.setFormatter(formatter)
    return handlers


def setup_logger(
    name: str = "vitalzen",
    log_level: str = "INFO",
    log_file: Optional[str] = None,
    max_bytes: int = 10 * 1024 * 1024,  # 10 MB
    backup_count: int = 5,
    library_loggers: Sequence[str] = LIBRARY_LOGGERS,
) -> logging.Logger:
    """
    Configure the application logger with console and optional rotating file output.

    Module loggers created with get_logger(__name__) inside the package are
    children of the "vitalzen" logger and inherit its handlers. The library
    loggers share the same handlers but stay at WARNING unless the
    application runs at DEBUG.

    Args:
        name: Logger name
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR)
        log_file: Path to log file. If None, only console logging is enabled
        max_bytes: Maximum size of log file before rotation
        backup_count: Number of rotated log files to keep
        library_loggers: Third-party logger names routed to the same output

    Returns:
        Configured logger instance
    """
    level = getattr(logging, log_level.upper(), logging.INFO)
    handlers = _build_handlers(log_file, max_bytes, backup_count)

    logger = logging.getLogger(name)
    logger.setLevel(level)
    logger.handlers[:] = handlers

    library_level = logging.DEBUG if level <= logging.DEBUG else logging.WARNING
    for library in library_loggers:
        library_logger = logging.getLogger(library)
        library_logger.setLevel(library_level)
        library_logger.handlers[:] = handlers

    return logger


def get_logger(name: str) -> logging.Logger:
    """Get a module logger by name."""
    return logging.getLogger(name)
