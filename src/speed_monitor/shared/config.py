# Copyright © 2025 Sierra Labs LLC
# SPDX-License-Identifier: AGPL-3.0-only
# License-Filename: LICENSE

"""
Configuration management for the speed monitor core.

Loads config.yaml from the configuration directory, merges it over the
built-in defaults and applies environment overrides.
"""

import copy
import logging
import os
from pathlib import Path
from typing import Any, Dict, Optional, Tuple, Union

import yaml

logger = logging.getLogger(__name__)

CONFIG_FILENAME = "config.yaml"
DEFAULT_CONFIG_DIR = Path.home() / ".speed_monitor"

DEFAULTS: Dict[str, Any] = {
    "paths": {
        "database": {
            "telemetry_db": str(DEFAULT_CONFIG_DIR / "speed_monitor.db"),
        },
    },
    "database": {
        "busy_timeout": 5.0,  # seconds
    },
    "limits": {
        "results": {"default": 100, "max": 1000},
        "device_results": {"default": 50, "max": 500},
        "recent_tests": 20,
        "problem_devices": 20,
    },
    "thresholds": {
        "problem_jitter_ms": 20.0,
        "problem_packet_loss_pct": 1.0,
    },
    "trends": {
        "hourly_window_hours": 24,
    },
    "logging": {
        "level": "INFO",
    },
}


def _merge(base: Dict[str, Any], override: Dict[str, Any], prefix: str = "") -> Dict[str, Any]:
    """Deep-merge override into base, keeping defaults for mistyped sections."""
    for key, value in override.items():
        dotted = f"{prefix}{key}"
        current = base.get(key)
        if isinstance(current, dict):
            if isinstance(value, dict):
                _merge(current, value, prefix=f"{dotted}.")
            else:
                logger.warning(f"Ignoring config section '{dotted}': expected a mapping, got {type(value).__name__}")
        else:
            base[key] = value
    return base


class Config:
    """
    YAML-backed configuration.

    Values are looked up with dot-notation keys, e.g.
    ``config.get("limits.results.max")``.

    Environment overrides:
    - SPEED_MONITOR_CONFIG_DIR: configuration directory
    - SPEED_MONITOR_DB_PATH (or DB_PATH): telemetry database path
    - SPEED_MONITOR_LOG_LEVEL: logging level
    """

    def __init__(self, config_dir: Optional[Union[str, Path]] = None):
        """
        Initialize configuration.

        Args:
            config_dir: Directory containing config.yaml
                        (default: $SPEED_MONITOR_CONFIG_DIR or ~/.speed_monitor)
        """
        if config_dir is None:
            config_dir = os.environ.get("SPEED_MONITOR_CONFIG_DIR") or DEFAULT_CONFIG_DIR
        self.config_dir = Path(config_dir).expanduser()
        self.config_path = self.config_dir / CONFIG_FILENAME
        self._data: Dict[str, Any] = copy.deepcopy(DEFAULTS)

        if self.config_path.exists():
            self.load_from_file()

        self.load_from_env()

    def load_from_file(self) -> None:
        """Load configuration from config.yaml."""
        try:
            with open(self.config_path) as f:
                data = yaml.safe_load(f) or {}
        except (OSError, yaml.YAMLError) as e:
            logger.warning(f"Could not load config file {self.config_path}: {e}")
            return

        if not isinstance(data, dict):
            logger.warning(f"Ignoring config file {self.config_path}: top level is not a mapping")
            return

        _merge(self._data, data)

    def load_from_env(self) -> None:
        """Apply environment variable overrides."""
        db_path = os.environ.get("SPEED_MONITOR_DB_PATH") or os.environ.get("DB_PATH")
        if db_path:
            self._data["paths"]["database"]["telemetry_db"] = db_path

        if level := os.environ.get("SPEED_MONITOR_LOG_LEVEL"):
            self._data["logging"]["level"] = level

    def get(self, key: str, default: Any = None) -> Any:
        """Get configuration value by dot-notation key."""
        value: Any = self._data
        for part in key.split("."):
            if not isinstance(value, dict) or part not in value:
                return default
            value = value[part]
        return value

    def get_path(self, key: str) -> Path:
        """Get a filesystem path by dot-notation key, with ~ expanded."""
        value = self.get(key)
        if value is None:
            raise KeyError(f"No path configured for '{key}'")
        return Path(value).expanduser()

    def get_int(self, key: str) -> int:
        """Get an integer setting, falling back to the built-in default."""
        return self._typed(key, int)

    def get_float(self, key: str) -> float:
        """Get a float setting, falling back to the built-in default."""
        return self._typed(key, float)

    def get_limit(self, name: str) -> Tuple[int, int]:
        """
        Get the (default, max) page size for a listing.

        Args:
            name: 'results' or 'device_results'
        """
        return self.get_int(f"limits.{name}.default"), self.get_int(f"limits.{name}.max")

    def _typed(self, key: str, cast) -> Any:
        value = self.get(key)
        try:
            if isinstance(value, bool):
                raise TypeError("booleans are not numbers")
            return cast(value)
        except (TypeError, ValueError):
            fallback = DEFAULTS
            for part in key.split("."):
                fallback = fallback[part]
            logger.warning(f"Invalid value for '{key}': {value!r}, using {fallback!r}")
            return cast(fallback)
