"""
HELMSMAN Logging Configuration

Centralized logging setup for the helm control system:
- Console output with a consistent format
- Rotating file handler with size limits
- Per-component log level configuration

Usage:
    from helmsman.logging_config import setup_logging, get_logger

    setup_logging(log_level="INFO", log_file="helmsman.log")

    logger = get_logger(__name__)
    logger.info("Helm session started")
"""

import logging
import sys
from pathlib import Path
from typing import Optional

ROOT_LOGGER = "helmsman"

DEFAULT_LOG_LEVEL = "INFO"
DEFAULT_LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
DEFAULT_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
DEFAULT_MAX_BYTES = 10 * 1024 * 1024  # 10MB
DEFAULT_BACKUP_COUNT = 5

LOG_LEVELS = {
    "DEBUG": logging.DEBUG,
    "INFO": logging.INFO,
    "WARNING": logging.WARNING,
    "ERROR": logging.ERROR,
    "CRITICAL": logging.CRITICAL,
}


def setup_logging(
    log_level: str = DEFAULT_LOG_LEVEL,
    log_file: Optional[str | Path] = None,
    stream=None,
) -> logging.Logger:
    """Configure logging for the HELMSMAN application.

    Sets up the ``helmsman`` logger with a console handler and an optional
    rotating file handler. Safe to call more than once; previous handlers
    are replaced.

    Args:
        log_level: Logging level name (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_file: Optional path to a log file. Parent directories are created.
        stream: Console stream (defaults to stderr so stdout stays free for
                the helm display)

    Returns:
        The configured root HELMSMAN logger
    """
    level = LOG_LEVELS.get(log_level.upper(), logging.INFO)

    root_logger = logging.getLogger(ROOT_LOGGER)
    root_logger.setLevel(level)
    root_logger.handlers.clear()

    formatter = logging.Formatter(DEFAULT_LOG_FORMAT, DEFAULT_DATE_FORMAT)

    console_handler = logging.StreamHandler(stream or sys.stderr)
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    if log_file:
        from logging.handlers import RotatingFileHandler

        file_path = Path(log_file)
        file_path.parent.mkdir(parents=True, exist_ok=True)

        file_handler = RotatingFileHandler(
            file_path,
            maxBytes=DEFAULT_MAX_BYTES,
            backupCount=DEFAULT_BACKUP_COUNT,
        )
        file_handler.setFormatter(formatter)
        root_logger.addHandler(file_handler)

    return root_logger


def get_logger(name: str) -> logging.Logger:
    """Get a logger under the ``helmsman`` namespace.

    Args:
        name: Logger name (typically ``__name__`` or a component name)

    Returns:
        Logger that inherits the HELMSMAN handlers
    """
    if not name.startswith(ROOT_LOGGER):
        name = f"{ROOT_LOGGER}.{name}"
    return logging.getLogger(name)


def set_service_level(service_name: str, level: str) -> None:
    """Set log level for a single component.

    Example:
        set_service_level("llm_client", "DEBUG")
        set_service_level("feedback", "WARNING")
    """
    logger = logging.getLogger(f"{ROOT_LOGGER}.{service_name}")
    logger.setLevel(LOG_LEVELS.get(level.upper(), logging.INFO))
