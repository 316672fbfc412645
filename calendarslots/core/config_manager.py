"""Configuration management for calendarslots."""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any

from calendarslots.calendar.slot_exceptions import InvalidTimezoneError
from calendarslots.core.timezone_utils import DEFAULT_TIMEZONE, resolve_zone

logger = logging.getLogger(__name__)

ENV_PREFIX = "CALENDARSLOTS_"


def parse_env_file(path: Path) -> dict[str, str]:
    """Parse a .env file and return key-value pairs.

    Args:
        path: Path to .env file

    Returns:
        Dictionary of key-value pairs from the .env file.
        Empty dict if file doesn't exist or cannot be read.

    Note:
        - Skips empty lines and comments (lines starting with #)
        - Strips quotes (both single and double) from values
        - Handles KEY=VALUE format with optional whitespace
    """
    if not path.exists():
        return {}

    result: dict[str, str] = {}

    try:
        content = path.read_text(encoding="utf-8")
    except OSError:
        logger.debug("Failed to read .env file (continuing): %s", str(path), exc_info=True)
        return result

    for raw_line in content.splitlines():
        line = raw_line.strip()

        if not line or line.startswith("#"):
            continue
        if "=" not in line:
            continue

        key, val = line.split("=", 1)
        key = key.strip()
        val = val.strip().strip('"').strip("'")

        if key:
            result[key] = val

    return result


class ConfigManager:
    """Manages application configuration from environment variables and .env files."""

    def __init__(self, env_file_path: Path | None = None):
        """Initialize configuration manager.

        Args:
            env_file_path: Optional path to .env file (defaults to .env in current directory)
        """
        self.env_file_path = env_file_path or Path.cwd() / ".env"

    def load_env_file(self) -> list[str]:
        """Load .env file and set environment variables.

        Only sets variables that are not already in the environment.

        Returns:
            List of environment variable keys that were loaded from .env file
        """
        if not self.env_file_path.exists():
            logger.debug("No .env file found at %s", self.env_file_path)
            return []

        set_keys = []
        for key, val in parse_env_file(self.env_file_path).items():
            if key not in os.environ:
                os.environ[key] = val
                set_keys.append(key)

        if set_keys:
            logger.debug("Loaded .env defaults for keys: %s", ", ".join(set_keys))
        return set_keys

    def build_config_from_env(self) -> dict[str, Any]:
        """Build configuration dictionary from environment variables.

        Recognizes:
        - CALENDARSLOTS_DEFAULT_TIMEZONE -> 'default_timezone' (UTC when it does not resolve)
        - CALENDARSLOTS_STORE_PATH -> 'store_path'
        - CALENDARSLOTS_LOG_LEVEL -> 'log_level'
        - CALENDARSLOTS_DEBUG -> 'debug' (bool)

        Returns:
            Configuration dictionary
        """
        cfg: dict[str, Any] = {}

        if os.environ.get(f"{ENV_PREFIX}DEFAULT_TIMEZONE"):
            cfg["default_timezone"] = get_default_timezone()

        store_path = os.environ.get(f"{ENV_PREFIX}STORE_PATH")
        if store_path:
            cfg["store_path"] = store_path

        log_level = os.environ.get(f"{ENV_PREFIX}LOG_LEVEL")
        if log_level:
            cfg["log_level"] = log_level.upper()

        debug = os.environ.get(f"{ENV_PREFIX}DEBUG")
        if debug is not None:
            cfg["debug"] = debug.strip().lower() in ("1", "true", "yes", "on")

        return cfg

    def load_full_config(self) -> dict[str, Any]:
        """Load .env file and build configuration from environment.

        Returns:
            Configuration dictionary
        """
        self.load_env_file()
        return self.build_config_from_env()


def get_default_timezone(fallback: str = DEFAULT_TIMEZONE) -> str:
    """Get default timezone from environment with validation.

    Args:
        fallback: Fallback timezone if not configured or invalid

    Returns:
        Timezone identifier that resolves
    """
    timezone = os.environ.get(f"{ENV_PREFIX}DEFAULT_TIMEZONE", fallback)

    try:
        resolve_zone(timezone)
        return timezone
    except InvalidTimezoneError:
        logger.warning("Invalid timezone %r, falling back to %r", timezone, fallback)
        return fallback


def get_config_value(config: Any, key: str, default: Any = None) -> Any:
    """Get configuration value supporting both dict and dataclass-like objects.

    Args:
        config: Configuration object (dict or object with attributes)
        key: Configuration key to retrieve
        default: Default value if key not found

    Returns:
        Configuration value or default
    """
    if isinstance(config, dict):
        return config.get(key, default)
    return getattr(config, key, default)
