"""Configuration management for policycheck.

Handles loading of YAML configuration files and parsing of the top-level
sections. Individual check sections are parsed by the check modules
themselves (see policycheck.check.config).
"""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict

import yaml

from .logger import DEFAULT_LOG_DIR

DEFAULT_CONFIG_PATH = "/etc/policycheck/config.yaml"


@dataclass
class LoggingConfig:
    """Logging settings."""

    level: str = "INFO"
    log_dir: str = DEFAULT_LOG_DIR
    file_logging: bool = True
    console_logging: bool = True


@dataclass
class PolicyCheckConfig:
    """Top-level configuration for policycheck."""

    logging: LoggingConfig = field(default_factory=LoggingConfig)
    checks: Dict[str, Dict[str, Any]] = field(default_factory=dict)


def parse_logging_config(logging_dict: Dict[str, Any]) -> LoggingConfig:
    """Parse the logging section.

    Args:
        logging_dict: Logging configuration dictionary

    Returns:
        LoggingConfig instance
    """
    return LoggingConfig(
        level=logging_dict.get("level", "INFO"),
        log_dir=logging_dict.get("log_dir", DEFAULT_LOG_DIR),
        file_logging=logging_dict.get("file_logging", True),
        console_logging=logging_dict.get("console_logging", True),
    )


def parse_config(config_dict: Dict[str, Any]) -> PolicyCheckConfig:
    """Parse the full configuration dictionary.

    Args:
        config_dict: Full configuration dictionary

    Returns:
        PolicyCheckConfig instance

    Raises:
        TypeError: If the checks section is not a mapping of mappings
    """
    logging_config = LoggingConfig()
    if "logging" in config_dict:
        logging_config = parse_logging_config(config_dict["logging"] or {})

    checks = config_dict.get("checks") or {}
    if not isinstance(checks, dict):
        raise TypeError(
            f"'checks' must be a mapping, got {type(checks).__name__}"
        )
    for name, section in checks.items():
        if not isinstance(section, dict):
            raise TypeError(
                f"Check '{name}' must be a mapping, got {type(section).__name__}"
            )

    return PolicyCheckConfig(
        logging=logging_config,
        checks={str(name): section for name, section in checks.items()},
    )


def load_config(config_path: str = DEFAULT_CONFIG_PATH) -> Dict[str, Any]:
    """Load configuration from YAML file.

    Args:
        config_path: Path to configuration file

    Returns:
        Configuration dictionary

    Raises:
        FileNotFoundError: If config file doesn't exist
        yaml.YAMLError: If config file is invalid YAML
        TypeError: If the document root is not a mapping
    """
    config_file = Path(config_path)

    if not config_file.exists():
        raise FileNotFoundError(f"Configuration file not found: {config_path}")

    with config_file.open("r") as f:
        config = yaml.safe_load(f)

    if config is None:
        config = {}

    if not isinstance(config, dict):
        raise TypeError(
            f"Configuration root must be a mapping, got {type(config).__name__}"
        )

    return _expand_env_vars(config)


def _expand_env_vars(obj: Any) -> Any:
    """Recursively expand environment variables in configuration.

    Args:
        obj: Configuration object (dict, list, str, etc.)

    Returns:
        Configuration with expanded environment variables
    """
    if isinstance(obj, dict):
        return {key: _expand_env_vars(value) for key, value in obj.items()}
    elif isinstance(obj, list):
        return [_expand_env_vars(item) for item in obj]
    elif isinstance(obj, str):
        return os.path.expandvars(obj)
    else:
        return obj


def load_typed_config(config_path: str = DEFAULT_CONFIG_PATH) -> PolicyCheckConfig:
    """Load and parse configuration into typed dataclass.

    Args:
        config_path: Path to configuration file

    Returns:
        PolicyCheckConfig instance

    Raises:
        FileNotFoundError: If config file doesn't exist
        yaml.YAMLError: If config file is invalid YAML
    """
    return parse_config(load_config(config_path))
