"""
Central logging configuration for occurrence_lite.

Keeps occurrence_lite diagnostics (coercion warnings, discarded events) visible
while quieting third-party parser libraries.
"""

import logging
import os
import sys
from typing import Optional

from colorlog import ColoredFormatter

LOG_FORMAT = "%(asctime)s %(log_color)s%(levelname)-7s%(reset)s %(name)s: %(message)s"

LOG_COLORS = {
    "DEBUG": "cyan",
    "INFO": "green",
    "WARNING": "yellow",
    "ERROR": "red",
    "CRITICAL": "bold_red",
}

THIRD_PARTY_LOGGERS = ("icalendar", "dateutil")

LITE_MODULES = (
    "occurrence_lite",
    "occurrence_lite.__main__",
    "occurrence_lite.config_loader",
    "occurrence_lite.lite_datetime_utils",
    "occurrence_lite.lite_event_materializer",
    "occurrence_lite.lite_ics_reader",
    "occurrence_lite.lite_occurrence_table",
    "occurrence_lite.lite_rrule_expander",
    "occurrence_lite.lite_rrule_grammar",
)


def configure_lite_logging(
    debug_mode: bool = False,
    force_debug: Optional[bool] = None,
    log_level: Optional[str] = None,
) -> None:
    """
    Configure logging levels for occurrence_lite.

    Args:
        debug_mode: Whether to enable debug logging for occurrence_lite modules
        force_debug: Override debug mode setting (None to use env var detection)
        log_level: Root level name used when debug is off (e.g. from config)

    Environment Variables:
        OCCURRENCE_LITE_DEBUG: Set to '1', 'true', 'yes' to force debug logging
        OCCURRENCE_LITE_LOG_LEVEL: Override root log level (DEBUG, INFO, WARNING, ERROR)
    """
    env_debug = os.getenv("OCCURRENCE_LITE_DEBUG", "").lower() in ("1", "true", "yes")
    env_log_level = os.getenv("OCCURRENCE_LITE_LOG_LEVEL", "").upper()

    if force_debug is not None:
        final_debug = force_debug
    elif env_debug:
        final_debug = True
    else:
        final_debug = debug_mode

    root_level = logging.DEBUG if final_debug else logging.INFO
    if not final_debug and log_level and log_level.upper() in ("DEBUG", "INFO", "WARNING", "ERROR"):
        root_level = getattr(logging, log_level.upper())
    if env_log_level in ("DEBUG", "INFO", "WARNING", "ERROR"):
        root_level = getattr(logging, env_log_level)

    root_logger = logging.getLogger()
    root_logger.setLevel(root_level)

    # Only add a handler if none exist (preserve handlers installed by the host app)
    if not root_logger.handlers:
        handler = logging.StreamHandler(stream=sys.stderr)
        handler.setFormatter(ColoredFormatter(LOG_FORMAT, datefmt="%H:%M:%S", log_colors=LOG_COLORS))
        root_logger.addHandler(handler)

    logger_config: dict[str, int] = {name: logging.WARNING for name in THIRD_PARTY_LOGGERS}

    lite_level = logging.DEBUG if final_debug else root_level
    for module in LITE_MODULES:
        logger_config[module] = lite_level

    for logger_name, level in logger_config.items():
        logging.getLogger(logger_name).setLevel(level)

    root_logger.debug("occurrence_lite logging configured (debug=%s)", final_debug)


def get_logging_status() -> dict[str, str]:
    """
    Get current logging configuration status.

    Returns:
        Dictionary mapping logger names to their current levels
    """
    status = {"root": logging.getLevelName(logging.getLogger().level)}
    for logger_name in ("occurrence_lite", *THIRD_PARTY_LOGGERS):
        status[logger_name] = logging.getLevelName(logging.getLogger(logger_name).level)
    return status
