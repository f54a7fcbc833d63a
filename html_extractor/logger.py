"""
Logging configuration for the HTML Extractor engine.
"""

import logging
import os
import sys
from typing import Optional

from .config import get_settings


def setup_logger(
    name: str = "html_extractor",
    level: int = logging.INFO,
    log_file: Optional[str] = None
) -> logging.Logger:
    """
    Set up and return a logger instance.

    Args:
        name: Logger name
        level: Logging level (default: INFO)
        log_file: Optional file path for logging

    Returns:
        Configured logger instance
    """
    logger = logging.getLogger(name)

    # Later calls adjust the level of the handlers already attached, so the
    # CLI and HTMLExtractor can reconfigure after import-time setup.
    logger.setLevel(level)
    for handler in logger.handlers:
        handler.setLevel(level)

    # Format: timestamp - module - level - message
    formatter = logging.Formatter(
        "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S"
    )

    # Console handler on stderr, so stdout stays free for command output
    if not logger.handlers:
        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setLevel(level)
        console_handler.setFormatter(formatter)
        logger.addHandler(console_handler)

    # File handler (if specified), attached once per path
    if log_file and not _has_file_handler(logger, log_file):
        file_handler = logging.FileHandler(log_file)
        file_handler.setLevel(level)
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    return logger


def _has_file_handler(logger: logging.Logger, log_file: str) -> bool:
    path = os.path.abspath(log_file)
    return any(
        isinstance(h, logging.FileHandler) and h.baseFilename == path
        for h in logger.handlers
    )


# Default logger instance, created once at import time from the environment
_settings = get_settings()
logger = setup_logger(level=_settings.log_level, log_file=_settings.log_file)


def get_module_logger(module_name: str) -> logging.Logger:
    """
    Get a child logger for a specific module.

    Child loggers (e.g. "html_extractor.compiler") inherit the root logger's
    handlers and level, and their name tells which stage produced a message.

    Args:
        module_name: Name of the module (e.g., 'compiler', 'runner')

    Returns:
        Child logger instance
    """
    return logging.getLogger(f"html_extractor.{module_name}")
