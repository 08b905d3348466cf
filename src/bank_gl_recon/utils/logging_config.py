"""Logging setup for the reconciliation tool."""

import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional

LOGGER_NAME = "bank_gl_recon"

MAX_LOG_BYTES = 10 * 1024 * 1024
LOG_BACKUP_COUNT = 5


def setup_logging(
    level: int,
    log_format: str,
    log_file: Optional[Path] = None,
) -> logging.Logger:
    """
    Route the package's log records to the console and, optionally, a file.

    Calling it again replaces the handlers installed by the previous call.

    Args:
        level: Console logging level
        log_format: Format string for console records
        log_file: Rotating log file that always records DEBUG and above

    Returns:
        The package logger
    """
    logger = logging.getLogger(LOGGER_NAME)

    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    console_handler = logging.StreamHandler()
    console_handler.setLevel(level)
    console_handler.setFormatter(logging.Formatter(log_format))
    logger.addHandler(console_handler)

    if log_file is None:
        logger.setLevel(level)
        return logger

    log_file.parent.mkdir(parents=True, exist_ok=True)
    file_handler = RotatingFileHandler(
        log_file, maxBytes=MAX_LOG_BYTES, backupCount=LOG_BACKUP_COUNT
    )
    file_handler.setLevel(logging.DEBUG)
    file_handler.setFormatter(
        logging.Formatter(f"{log_format} [%(filename)s:%(lineno)d]")
    )
    logger.addHandler(file_handler)
    logger.setLevel(logging.DEBUG)

    return logger


def level_from_name(name: str) -> int:
    """Translate a configured level name ("DEBUG", "info") into a logging level."""
    level = logging.getLevelName(name.strip().upper())
    return level if isinstance(level, int) else logging.INFO
