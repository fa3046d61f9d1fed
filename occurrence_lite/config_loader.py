"""occurrence_lite.config_loader

Config loader for occurrence_lite.

- YAML (PyYAML) for ``.yaml``/``.yml`` files, JSON for ``.json``.
- Exposes a typed dataclass `Config` and a `load_config()` helper that accepts
  an optional path override.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from datetime import tzinfo
from pathlib import Path
from typing import Any

import yaml

from .lite_datetime_utils import resolve_timezone

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_NAME = "occurrence_lite.yaml"

_MAX_DAYS = 3660


@dataclass
class Config:
    """Typed configuration for occurrence_lite.

    Fields:
        window_days: length of the default expansion window (1..3660)
        lookback_days: days before now the default window starts (0..3660)
        timezone: IANA zone for floating and date-only values
        strict_integer_lists: reject malformed BY* list elements
        strict_frequency: reject unknown FREQ values instead of using YEARLY
        log_level: logging level name
    """

    window_days: int = 30
    lookback_days: int = 0
    timezone: str = "UTC"
    strict_integer_lists: bool = True
    strict_frequency: bool = False
    log_level: str = "INFO"

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> Config:
        """Create Config from a plain mapping, applying defaults and validation.

        Numeric values are coerced to int and clamped to their ranges; an
        unknown timezone falls back to UTC. Each coercion logs a warning.
        """
        if data is None:
            data = {}

        def _coerce_int(key: str, default: int, minimum: int) -> int:
            raw = data.get(key, default)
            try:
                value = int(raw)
            except (TypeError, ValueError):
                logger.warning("Config %s=%r is not an int; using default %d", key, raw, default)
                return default
            if value < minimum:
                logger.warning("%s %d below minimum; coercing to %d", key, value, minimum)
                return minimum
            if value > _MAX_DAYS:
                logger.warning("%s %d above maximum; coercing to %d", key, value, _MAX_DAYS)
                return _MAX_DAYS
            return value

        def _coerce_bool(key: str, default: bool) -> bool:
            raw = data.get(key, default)
            if isinstance(raw, bool):
                return raw
            if str(raw).strip().lower() in ("1", "true", "yes", "on"):
                return True
            if str(raw).strip().lower() in ("0", "false", "no", "off"):
                return False
            logger.warning("Config %s=%r is not a boolean; using default %s", key, raw, default)
            return default

        timezone = str(data.get("timezone") or "UTC")
        try:
            resolve_timezone(timezone)
        except ValueError:
            logger.warning("Config timezone %r is unknown; using UTC", timezone)
            timezone = "UTC"

        log_level = data.get("log_level", "INFO")
        log_level = str(log_level).upper() if log_level is not None else "INFO"

        return cls(
            window_days=_coerce_int("window_days", 30, 1),
            lookback_days=_coerce_int("lookback_days", 0, 0),
            timezone=timezone,
            strict_integer_lists=_coerce_bool("strict_integer_lists", True),
            strict_frequency=_coerce_bool("strict_frequency", False),
            log_level=log_level,
        )

    @property
    def zone(self) -> tzinfo:
        return resolve_timezone(self.timezone)

    def parser_options(self) -> dict[str, bool]:
        """Grammar strictness flags as builder keyword arguments."""
        return {
            "strict_integer_lists": self.strict_integer_lists,
            "strict_frequency": self.strict_frequency,
        }


def _load_mapping(path: Path) -> Any:
    text = path.read_text(encoding="utf-8")
    if path.suffix.lower() == ".json":
        return json.loads(text)
    try:
        loaded = yaml.safe_load(text)
    except yaml.YAMLError as e:
        raise ValueError(f"Invalid YAML in {path}: {e}") from e
    # safe_load returns None for empty files
    return {} if loaded is None else loaded


def load_config(path: str | Path | None = None) -> Config:
    """Load configuration from a YAML/JSON file and return a Config instance.

    Behavior:
    - If file is missing: returns Config() with defaults.
    - If file exists but is not valid YAML/JSON or its top-level is not a
      mapping: raises ValueError.
    """
    p = Path(path) if path else Path.cwd() / DEFAULT_CONFIG_NAME
    logger.debug("Attempting to load config from %s", p)
    if not p.exists():
        logger.info("Config file %s not found; using defaults", p)
        return Config()

    raw = _load_mapping(p)
    if not isinstance(raw, dict):
        logger.warning("Config file %s parsed but top-level is not a mapping: %r", p, raw)
        raise ValueError("Config file must contain a mapping at top level")  # noqa: TRY004
    cfg = Config.from_dict(raw)
    logger.info("Loaded configuration from %s", p)
    logger.debug("Configuration values: %s", cfg)
    return cfg
