"""
Utility functions for Django settings configuration.

This module provides environment-specific configuration loading functionality
using python-decouple for managing environment variables across different
deployment environments, plus parsing of human-readable token lifetimes.
"""

import re
from datetime import timedelta
from pathlib import Path

from decouple import Config, RepositoryEnv
from decouple import config as default_config

DURATION_PATTERN = re.compile(r"^\s*(\d+)\s*([smhdw]?)\s*$")

DURATION_UNITS = {
    "": "seconds",
    "s": "seconds",
    "m": "minutes",
    "h": "hours",
    "d": "days",
    "w": "weeks",
}


def load_environment_config(environment):
    """
    Load environment-specific configuration from the appropriate .env file.

    Args:
        environment (str): The target environment ('development', 'production', 'test')

    Returns:
        function: A config function that can be used to retrieve environment variables
                 from the appropriate .env file
    """
    # Map environment names to their corresponding .env files
    env_files = {
        "development": ".env.dev",
        "production": ".env.production",
        "test": ".env.test",
    }

    env_file_name = env_files.get(environment, ".env")
    env_file_path = Path(__file__).resolve().parent.parent.parent.parent / env_file_name

    if env_file_path.exists():
        print(f"✓ Loading environment: {environment} from {env_file_name}")
        return Config(RepositoryEnv(env_file_path))

    # Fall back to process environment / default .env lookup
    print(f"✗ Warning: {env_file_name} not found, using default config")
    return default_config


def parse_duration(value):
    """
    Convert a lifetime string such as ``"24h"``, ``"7d"`` or ``"30m"`` to a timedelta.

    A bare number is read as seconds.

    Args:
        value (str | int | timedelta): Lifetime as configured in the environment

    Returns:
        timedelta: Parsed lifetime

    Raises:
        ValueError: If the value is not a recognised duration
    """
    if isinstance(value, timedelta):
        return value
    if isinstance(value, int):
        return timedelta(seconds=value)

    match = DURATION_PATTERN.match(str(value).lower())
    if not match:
        raise ValueError(f"Invalid duration: {value!r}")

    amount, unit = match.groups()
    return timedelta(**{DURATION_UNITS[unit]: int(amount)})


def rotating_log_handler(path, level, max_megabytes, backup_count=10):
    """Handler entry for ``LOGGING["handlers"]`` writing structured lines to a rotating file."""
    return {
        "level": level,
        "class": "logging.handlers.RotatingFileHandler",
        "filename": str(path),
        "maxBytes": max_megabytes * 1024 * 1024,
        "backupCount": backup_count,
        "formatter": "structured",
        "encoding": "utf-8",
    }


def route_project_loggers(logging_config, handlers, level):
    """Point the framework and application loggers at ``handlers``."""
    for name in ("django", "core", "users", "finance"):
        logger_config = logging_config["loggers"].get(name)
        if logger_config is not None:
            logger_config["handlers"] = list(handlers)
            logger_config["level"] = level
