"""Configuration loading for sysdash.

Loads settings from TOML config files with sensible defaults.
Search order: explicit --config path → ~/.config/sysdash/config.toml → defaults only.
"""

from __future__ import annotations

import copy
import sys
import tomllib
from pathlib import Path
from typing import Any

# Fixed cadence and severity bands; these are deliberately not configurable.
TICK_INTERVAL = 0.3
WARNING_PERCENT = 50
CRITICAL_PERCENT = 80
HISTORY_MINIMUM = 100

DEFAULT_CONFIG: dict[str, Any] = {
    "animation_speed": 0.03,
    "min_history": HISTORY_MINIMUM,
    "disk_path": "/",
    "max_processes": 0,
    "logging": {"file": "", "level": "WARNING"},
}

_DEFAULT_PATH = Path.home() / ".config" / "sysdash" / "config.toml"
_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


class ConfigError(ValueError):
    """A configuration value is out of range or of the wrong type."""


def _deep_merge(base: dict[str, Any], overlay: dict[str, Any]) -> dict[str, Any]:
    """Merge overlay into base. Nested dicts are merged at the first level only."""
    merged = copy.deepcopy(base)
    for key, value in overlay.items():
        if key in merged and isinstance(merged[key], dict) and isinstance(value, dict):
            # Merge one level: overlay sub-keys into base sub-keys
            merged[key] = {**merged[key], **value}
        else:
            merged[key] = value
    return merged


def validate_config(config: dict[str, Any]) -> dict[str, Any]:
    """Check value ranges and return the config unchanged.

    Raises:
        ConfigError: If any value is unusable.
    """
    speed = config["animation_speed"]
    if isinstance(speed, bool) or not isinstance(speed, (int, float)) or not 0 < speed <= 1:
        raise ConfigError(f"animation_speed must be in (0, 1], got {speed!r}")

    for key in ("min_history", "max_processes"):
        value = config[key]
        if isinstance(value, bool) or not isinstance(value, int) or value < 0:
            raise ConfigError(f"{key} must be a non-negative integer, got {value!r}")
    if config["min_history"] < HISTORY_MINIMUM:
        raise ConfigError(f"min_history must be at least {HISTORY_MINIMUM}")

    if not isinstance(config["disk_path"], str) or not config["disk_path"]:
        raise ConfigError("disk_path must be a non-empty string")

    if not isinstance(config["logging"], dict):
        raise ConfigError("[logging] must be a table")
    level = str(config["logging"].get("level", "WARNING")).upper()
    if level not in _LOG_LEVELS:
        raise ConfigError(f"logging.level must be one of {', '.join(_LOG_LEVELS)}")
    return config


def load_config(path: Path | None = None) -> dict[str, Any]:
    """Load configuration, merging user TOML over defaults.

    Args:
        path: Explicit config file path (from --config). If None, tries the
              default location ~/.config/sysdash/config.toml.

    Returns:
        Merged configuration dict.

    Raises:
        SystemExit: If an explicit path doesn't exist or can't be parsed.
        ConfigError: If a merged value is out of range.
    """
    if path is not None:
        if not path.is_file():
            print(f"sysdash: config file not found: {path}", file=sys.stderr)
            raise SystemExit(1)
        try:
            user_config = tomllib.loads(path.read_text(encoding="utf-8"))
        except tomllib.TOMLDecodeError as e:
            print(f"sysdash: invalid TOML in {path}: {e}", file=sys.stderr)
            raise SystemExit(1) from e
        return validate_config(_deep_merge(DEFAULT_CONFIG, user_config))

    # Try default location silently
    if _DEFAULT_PATH.is_file():
        try:
            user_config = tomllib.loads(_DEFAULT_PATH.read_text(encoding="utf-8"))
            return validate_config(_deep_merge(DEFAULT_CONFIG, user_config))
        except tomllib.TOMLDecodeError:
            print(
                f"sysdash: warning: ignoring invalid TOML in {_DEFAULT_PATH}",
                file=sys.stderr,
            )

    return _deep_merge(DEFAULT_CONFIG, {})


def dump_default_config() -> str:
    """Return the default configuration as a TOML string."""
    lines = [
        "# sysdash configuration",
        "# Place this file at ~/.config/sysdash/config.toml",
        "",
        f"animation_speed = {DEFAULT_CONFIG['animation_speed']}",
        f"min_history = {DEFAULT_CONFIG['min_history']}",
        f'disk_path = "{DEFAULT_CONFIG["disk_path"]}"',
        f"max_processes = {DEFAULT_CONFIG['max_processes']}",
        "",
        "[logging]",
        f'file = "{DEFAULT_CONFIG["logging"]["file"]}"',
        f'level = "{DEFAULT_CONFIG["logging"]["level"]}"',
    ]
    return "\n".join(lines) + "\n"
