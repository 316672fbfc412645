"""
Central logging configuration for calendarslots.

Keeps the package's own loggers at DEBUG or INFO depending on debug mode while
pinning the loggers of third-party libraries to quieter levels.
"""

import logging
import os
from typing import Optional

# Loggers of libraries that never need to be more verbose than WARNING here
_THIRD_PARTY_LOGGERS = [
    "asyncio",
    "dateutil",
    "pydantic",
]

_PACKAGE_LOGGERS = [
    "calendarslots",
    "calendarslots.calendar.occurrence_generator",
    "calendarslots.calendar.slot_materializer",
    "calendarslots.core.timezone_utils",
    "calendarslots.core.config_manager",
    "calendarslots.domain.slot_store",
    "calendarslots.domain.expansion_orchestrator",
]


def configure_lite_logging(debug_mode: bool = False, force_debug: Optional[bool] = None) -> None:
    """
    Configure logging levels for calendarslots.

    Args:
        debug_mode: Whether to enable debug logging for calendarslots modules
        force_debug: Override debug mode setting (None to use env var detection)

    Environment Variables:
        CALENDARSLOTS_DEBUG: Set to '1', 'true', 'yes' to force debug logging
        CALENDARSLOTS_LOG_LEVEL: Override root log level (DEBUG, INFO, WARNING, ERROR)
    """
    env_debug = os.getenv("CALENDARSLOTS_DEBUG", "").lower() in ("1", "true", "yes")
    env_log_level = os.getenv("CALENDARSLOTS_LOG_LEVEL", "").upper()

    if force_debug is not None:
        final_debug = force_debug
    elif env_debug:
        final_debug = True
    else:
        final_debug = debug_mode

    root_level = logging.DEBUG if final_debug else logging.INFO
    if env_log_level in ("DEBUG", "INFO", "WARNING", "ERROR"):
        root_level = getattr(logging, env_log_level)

    # Don't use force=True so a colorized handler installed by _init_logging survives
    root_logger = logging.getLogger()
    root_logger.setLevel(root_level)

    if not root_logger.handlers:
        handler = logging.StreamHandler()
        handler.setLevel(root_level)
        handler.setFormatter(logging.Formatter("[%(asctime)s] %(levelname)s - %(name)s - %(message)s"))
        root_logger.addHandler(handler)

    logger_config: dict[str, int] = {name: logging.WARNING for name in _THIRD_PARTY_LOGGERS}

    package_level = logging.DEBUG if final_debug else logging.INFO
    for module in _PACKAGE_LOGGERS:
        logger_config[module] = package_level

    for logger_name, level in logger_config.items():
        logging.getLogger(logger_name).setLevel(level)

    if final_debug:
        root_logger.debug("Debug logging enabled for calendarslots modules")
