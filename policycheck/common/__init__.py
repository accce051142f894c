"""Common utilities for policycheck."""

from .config import load_config, load_typed_config
from .errors import ConfigError, SMTPError
from .logger import get_logger, setup_logger

__all__ = [
    "ConfigError",
    "SMTPError",
    "get_logger",
    "load_config",
    "load_typed_config",
    "setup_logger",
]
