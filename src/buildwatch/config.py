# Copyright 2025 Ben Mensi
# SPDX-License-Identifier: Apache-2.0

"""
Configuration loading for buildwatch.

Settings come from an optional YAML file and are overridden by CLI options.
File lookup order:
1. Explicit --config path
2. $BUILDWATCH_CONFIG (if set)
3. <watch_dir>/.buildwatch.yaml (if present)
"""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

import yaml

from buildwatch.debouncer import DEFAULT_QUIET_PERIOD
from buildwatch.filters import DEFAULT_EXCLUDES, DEFAULT_EXTENSIONS
from buildwatch.schemas import CommandName, CommandSpec

CONFIG_ENV_VAR = "BUILDWATCH_CONFIG"
CONFIG_FILENAME = ".buildwatch.yaml"

DEFAULT_BUILD_COMMAND = "make -j4"
DEFAULT_TEST_COMMAND = "make test"

KNOWN_KEYS = frozenset({
    "build_command",
    "test_command",
    "build_dir",
    "quiet_period",
    "start_delay",
    "extensions",
    "exclude",
    "notify",
    "clear_screen",
    "quiet_output",
    "run_on_start",
    "kill_grace",
})


class ConfigError(Exception):
    """Raised when configuration is invalid."""
    pass


@dataclass(frozen=True)
class WatchConfig:
    """Resolved, validated settings for one watch session."""
    watch_dir: Path
    build_dir: Path
    build: CommandSpec
    test: CommandSpec
    quiet_period: float = DEFAULT_QUIET_PERIOD
    start_delay: float = 0.0
    extensions: Tuple[str, ...] = DEFAULT_EXTENSIONS
    exclude: Tuple[str, ...] = DEFAULT_EXCLUDES
    notify: bool = True
    clear_screen: bool = False
    quiet_output: bool = False
    run_on_start: bool = False
    kill_grace: float = 2.0


def expand_path(path: str) -> Path:
    """
    Expand user home directory and environment variables in path.

    Example:
        >>> expand_path("~/src/project")
        Path("/home/user/src/project")
    """
    return Path(os.path.expandvars(str(path))).expanduser().resolve()


def find_config(watch_dir: Path, config_path: Optional[str] = None) -> Optional[Path]:
    """Locate the config file, or None when there is none."""
    if config_path:
        return expand_path(config_path)
    env_path = os.environ.get(CONFIG_ENV_VAR)
    if env_path:
        return expand_path(env_path)
    candidate = Path(watch_dir) / CONFIG_FILENAME
    return candidate if candidate.exists() else None


def load_config(config_path: Optional[Path]) -> Dict[str, Any]:
    """
    Load settings from a YAML file.

    Args:
        config_path: File to read; None yields an empty dict

    Returns:
        Dict of settings

    Raises:
        FileNotFoundError: If config_path does not exist
        ConfigError: If the file is not a YAML mapping of known keys
    """
    if config_path is None:
        return {}
    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    try:
        data = yaml.safe_load(config_path.read_text())
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {config_path}: {e}") from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"Config file must contain a mapping: {config_path}")

    unknown = sorted(set(data) - KNOWN_KEYS)
    if unknown:
        raise ConfigError(f"Unknown config keys in {config_path}: {', '.join(unknown)}")
    return data


def _as_seconds(settings: Dict[str, Any], key: str, default: float) -> float:
    value = settings.get(key)
    if value is None:
        return default
    try:
        seconds = float(value)
    except (TypeError, ValueError):
        raise ConfigError(f"{key} must be a number of seconds, got: {value!r}")
    if seconds < 0:
        raise ConfigError(f"{key} cannot be negative, got: {seconds}")
    return seconds


def _as_bool(settings: Dict[str, Any], key: str, default: bool) -> bool:
    value = settings.get(key)
    if value is None:
        return default
    if not isinstance(value, bool):
        raise ConfigError(f"{key} must be true or false, got: {value!r}")
    return value


def _as_tuple(settings: Dict[str, Any], key: str, default: Tuple[str, ...]) -> Tuple[str, ...]:
    value = settings.get(key)
    if value is None:
        return default
    if isinstance(value, str):
        value = value.split()
    if not isinstance(value, (list, tuple)):
        raise ConfigError(f"{key} must be a list, got: {value!r}")
    return tuple(str(v) for v in value)


def build_config(
    watch_dir: str,
    settings: Optional[Dict[str, Any]] = None,
    overrides: Optional[Dict[str, Any]] = None,
) -> WatchConfig:
    """
    Merge file settings and CLI overrides into a WatchConfig.

    Overrides whose value is None are ignored so unset CLI options fall
    through to the file, then to the defaults.

    Raises:
        ConfigError: If a directory is missing or a value is invalid
    """
    merged = dict(settings or {})
    merged.update({k: v for k, v in (overrides or {}).items() if v is not None})

    root = expand_path(watch_dir)
    if not root.is_dir():
        raise ConfigError(f"Invalid watch directory: {root}")

    build_dir_value = merged.get("build_dir") or ""
    if build_dir_value:
        build_dir = Path(os.path.expandvars(str(build_dir_value))).expanduser()
        build_dir = (build_dir if build_dir.is_absolute() else root / build_dir).resolve()
    else:
        build_dir = root
    if not build_dir.is_dir():
        raise ConfigError(f"Invalid build directory: {build_dir}")

    build_command = merged.get("build_command", DEFAULT_BUILD_COMMAND)
    build = CommandSpec.from_command_line(CommandName.BUILD, build_command)
    if not build.enabled:
        raise ConfigError("A build command is required")
    test = CommandSpec.from_command_line(
        CommandName.TEST, merged.get("test_command", DEFAULT_TEST_COMMAND)
    )

    quiet_period = _as_seconds(merged, "quiet_period", DEFAULT_QUIET_PERIOD)
    if quiet_period <= 0:
        raise ConfigError(f"quiet_period must be positive, got: {quiet_period}")

    return WatchConfig(
        watch_dir=root,
        build_dir=build_dir,
        build=build,
        test=test,
        quiet_period=quiet_period,
        start_delay=_as_seconds(merged, "start_delay", 0.0),
        extensions=_as_tuple(merged, "extensions", DEFAULT_EXTENSIONS),
        exclude=_as_tuple(merged, "exclude", DEFAULT_EXCLUDES),
        notify=_as_bool(merged, "notify", True),
        clear_screen=_as_bool(merged, "clear_screen", False),
        quiet_output=_as_bool(merged, "quiet_output", False),
        run_on_start=_as_bool(merged, "run_on_start", False),
        kill_grace=_as_seconds(merged, "kill_grace", 2.0),
    )


def resolve_config(
    watch_dir: str,
    config_path: Optional[str] = None,
    overrides: Optional[Dict[str, Any]] = None,
) -> WatchConfig:
    """Find and load the config file, then apply CLI overrides."""
    root = expand_path(watch_dir)
    settings = load_config(find_config(root, config_path))
    return build_config(watch_dir, settings, overrides)
