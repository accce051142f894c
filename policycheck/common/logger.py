"""Logging infrastructure for policycheck.

Provides centralized logging configuration with file and console output,
log rotation, ISO 8601 timestamps, and a per-message adapter so every
line written while handling a transaction carries its message ID.
"""

import logging
import logging.handlers
import os
from typing import Any, MutableMapping, Optional, Tuple

DEFAULT_LOG_DIR = "/var/log/policycheck"


def setup_logger(
    name: str,
    log_dir: str = DEFAULT_LOG_DIR,
    level: str = "INFO",
    log_format: Optional[str] = None,
    date_format: Optional[str] = None,
    file_logging: bool = True,
    console_logging: bool = True,
    max_bytes: int = 10485760,  # 10MB
    backup_count: int = 5,
) -> logging.Logger:
    """Set up a logger with file and console handlers.

    Args:
        name: Logger name (usually the package name, so check loggers
            created with get_logger() propagate to it)
        log_dir: Directory for log files
        level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_format: Custom log format string
        date_format: Custom date format string (ISO 8601 by default)
        file_logging: Enable file logging
        console_logging: Enable console logging
        max_bytes: Maximum log file size before rotation
        backup_count: Number of backup log files to keep

    Returns:
        Configured logger instance

    Raises:
        ValueError: If the level name is not a logging level
    """
    logger = logging.getLogger(name)

    level_upper = level.upper()
    if level_upper not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
        raise ValueError(
            f"Invalid log level: {level}. "
            f"Must be one of: DEBUG, INFO, WARNING, ERROR, CRITICAL"
        )
    logger.setLevel(getattr(logging, level_upper))

    # Prevent duplicate handlers
    if logger.handlers:
        return logger

    if log_format is None:
        log_format = "%(asctime)s [%(levelname)s] [%(name)s] %(message)s"
    if date_format is None:
        date_format = "%Y-%m-%dT%H:%M:%S"

    formatter = logging.Formatter(log_format, datefmt=date_format)

    if file_logging:
        os.makedirs(log_dir, exist_ok=True)
        log_file = os.path.join(log_dir, f"{name}.log")
        file_handler = logging.handlers.RotatingFileHandler(
            log_file, maxBytes=max_bytes, backupCount=backup_count
        )
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    if console_logging:
        console_handler = logging.StreamHandler()
        console_handler.setFormatter(formatter)
        logger.addHandler(console_handler)

    return logger


def get_logger(name: str) -> logging.Logger:
    """Get a logger under the policycheck namespace.

    Args:
        name: Component name (e.g. "command")

    Returns:
        Logger instance
    """
    if name == "policycheck" or name.startswith("policycheck."):
        return logging.getLogger(name)
    return logging.getLogger(f"policycheck.{name}")


class MessageLogger(logging.LoggerAdapter):
    """Logger adapter that prefixes records with the message ID."""

    def __init__(self, logger: logging.Logger, msg_id: str):
        super().__init__(logger, {"msg_id": msg_id})

    def process(
        self, msg: Any, kwargs: MutableMapping[str, Any]
    ) -> Tuple[Any, MutableMapping[str, Any]]:
        return f"[msg_id={self.extra['msg_id']}] {msg}", kwargs
