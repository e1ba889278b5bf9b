"""Configuration parsing and validation for watchrun."""

import logging
import math
import shlex
from pathlib import Path
from typing import Any

try:
    import tomllib
except ImportError:
    import tomli as tomllib  # type: ignore

from watchrun.models import WatchConfig

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_NAME = "watchrun.toml"

# Default config template for a typical edit-and-rerun loop
DEFAULT_CONFIG_TEMPLATE = """\
# Auto-generated watchrun.toml

[watch]
path = "."
command = ["pytest", "-q"]
recursive = true
immediate = true
stop_on_error = false
rate_limit = 0.5
notices = false
"""

_BOOL_KEYS = ("recursive", "immediate", "stop_on_error", "notices")
_KNOWN_KEYS = {"path", "command", "rate_limit", *_BOOL_KEYS}


class ConfigError(Exception):
    """Raised when the configuration is missing or invalid."""


def create_default_config(config_path: Path) -> bool:
    """
    Create a default config file if it doesn't exist.

    Args:
        config_path: Path where config should be created

    Returns:
        True if config was created, False if it already exists

    Raises:
        PermissionError: If unable to write to the directory
        OSError: If other file system errors occur
    """
    if config_path.exists():
        return False

    config_path.parent.mkdir(parents=True, exist_ok=True)
    config_path.write_text(DEFAULT_CONFIG_TEMPLATE)
    return True


def load_watch_settings(path: str | Path) -> dict[str, Any]:
    """Load the [watch] table of a TOML config file.

    Relative ``path`` entries are resolved against the config file's directory.

    Args:
        path: Path to TOML config file

    Returns:
        Mapping of validated setting name to value

    Raises:
        ConfigError: If the file is missing, unparsable or holds invalid values
    """
    path = Path(path)
    if not path.exists():
        raise ConfigError(f"Config file not found: {path}")

    try:
        with open(path, "rb") as f:
            raw = tomllib.load(f)
    except (tomllib.TOMLDecodeError, OSError) as e:
        raise ConfigError(f"Failed to parse config file {path}: {e}") from e

    table = raw.get("watch", {})
    if not isinstance(table, dict):
        raise ConfigError("'watch' section must be a table")

    unknown = sorted(set(table) - _KNOWN_KEYS)
    if unknown:
        logger.warning(f"Ignoring unknown keys in [watch] of {path}: {', '.join(unknown)}")

    settings: dict[str, Any] = {}
    if "path" in table:
        if not isinstance(table["path"], str):
            raise ConfigError("watch.path must be a string")
        settings["path"] = path.parent / Path(table["path"])
    if "command" in table:
        settings["command"] = _parse_command(table["command"])
    for key in _BOOL_KEYS:
        if key in table:
            if not isinstance(table[key], bool):
                raise ConfigError(f"watch.{key} must be a boolean")
            settings[key] = table[key]
    if "rate_limit" in table:
        settings["rate_limit"] = _parse_rate_limit(table["rate_limit"], field_name="watch.rate_limit")

    logger.debug(f"Loaded settings from {path}: {settings}")
    return settings


def build_config(settings: dict[str, Any]) -> WatchConfig:
    """Validate merged settings and build the immutable configuration.

    Args:
        settings: Setting name to value, e.g. from load_watch_settings()
            overlaid with command-line values

    Raises:
        ConfigError: If a required value is missing or invalid
    """
    raw_path = settings.get("path")
    if raw_path in (None, ""):
        raise ConfigError("A path to watch is required")

    command = tuple(settings.get("command") or ())
    if not command:
        raise ConfigError("A command to run is required")
    if not command[0]:
        raise ConfigError("The command's executable must not be empty")
    # subprocess cannot pass NUL inside an argument
    if any("\0" in part for part in command):
        raise ConfigError("The command must not contain NUL characters")

    return WatchConfig(
        path=Path(raw_path),
        command=command,
        recursive=bool(settings.get("recursive", False)),
        immediate=bool(settings.get("immediate", False)),
        stop_on_error=bool(settings.get("stop_on_error", False)),
        rate_limit=_parse_rate_limit(settings.get("rate_limit", 0.0), field_name="rate limit"),
        notices=bool(settings.get("notices", False)),
    )


def _parse_command(value: Any) -> list[str]:
    if isinstance(value, str):
        try:
            return shlex.split(value)
        except ValueError as e:
            raise ConfigError(f"watch.command could not be split: {e}") from e
    if not isinstance(value, list) or not all(isinstance(item, str) for item in value):
        raise ConfigError("watch.command must be a string or a list of strings")
    return list(value)


def _parse_rate_limit(value: Any, *, field_name: str) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ConfigError(f"{field_name} must be a number of seconds")
    if not math.isfinite(value):
        raise ConfigError(f"{field_name} must be a finite number of seconds")
    if value < 0:
        raise ConfigError(f"{field_name} must not be negative")
    return float(value)
