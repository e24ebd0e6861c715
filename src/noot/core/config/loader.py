"""
Configuration loading with multi-layer merging.

Implements the configuration precedence chain:
    defaults < live config document ({data_dir}/config.json) < env vars

There is deliberately no module-level cache: callers build the config once
at process start and pass it to the components that need it.
"""

import json
import logging
import os
from pathlib import Path
from typing import Any

from .models import NootConfig, default_data_dir

logger = logging.getLogger(__name__)

CONFIG_FILENAME = "config.json"


def get_data_dir() -> Path:
    """
    Get the data directory, honoring NOOT_DATA_DIR.

    Returns:
        Path to the data directory (defaults to ~/.local/share/noot)
    """
    if data_dir := os.environ.get("NOOT_DATA_DIR"):
        return Path(data_dir)
    return default_data_dir()


def get_config_path(data_dir: Path | None = None) -> Path:
    """
    Get path to the live configuration document.

    Args:
        data_dir: Data directory (defaults to get_data_dir())

    Returns:
        Path to {data_dir}/config.json
    """
    return (data_dir or get_data_dir()) / CONFIG_FILENAME


def deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """
    Deep merge two dictionaries.

    Values in `override` take precedence over values in `base`.
    Nested dicts are merged, not replaced.

    Example:
        >>> deep_merge({"a": 1, "b": {"x": 10}}, {"b": {"y": 2}})
        {'a': 1, 'b': {'x': 10, 'y': 2}}
    """
    result = base.copy()

    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = deep_merge(result[key], value)
        else:
            result[key] = value

    return result


def load_json_file(path: Path) -> dict[str, Any] | None:
    """
    Load a JSON file, returning None if it doesn't exist or is invalid.

    Args:
        path: Path to JSON file

    Returns:
        Parsed JSON as dict, or None if file doesn't exist or can't be parsed
    """
    if not path.exists():
        return None

    try:
        with path.open(encoding="utf-8") as f:
            data = json.load(f)
            if isinstance(data, dict):
                return data
            return None
    except (json.JSONDecodeError, OSError) as e:
        logger.warning("Failed to parse config at %s: %s", path, e)
        return None


def _parse_bool(value: str) -> bool:
    return value.lower() not in ("false", "0", "no", "")


def apply_env_overrides(config_dict: dict[str, Any]) -> dict[str, Any]:
    """
    Apply environment variable overrides to configuration.

    Supported env vars:
        NOOT_BACKUPS_DIR - overrides paths.backups_dir
        NOOT_AUTO_SYNC - overrides workspace.auto_sync_enabled
        NOOT_AUTO_SYNC_INTERVAL - overrides workspace.auto_sync_interval_minutes
        NOOT_SYNC_ARCHIVED - overrides workspace.sync_archived_notes

    Args:
        config_dict: Configuration dictionary to override

    Returns:
        Configuration dictionary with env var overrides applied
    """
    result = config_dict.copy()

    if backups_dir := os.environ.get("NOOT_BACKUPS_DIR"):
        result.setdefault("paths", {})["backups_dir"] = backups_dir

    if auto_sync := os.environ.get("NOOT_AUTO_SYNC"):
        result.setdefault("workspace", {})["auto_sync_enabled"] = _parse_bool(auto_sync)

    if interval_str := os.environ.get("NOOT_AUTO_SYNC_INTERVAL"):
        try:
            interval = int(interval_str)
            if interval < 1:
                logger.warning(
                    "NOOT_AUTO_SYNC_INTERVAL must be >= 1, got %d, ignoring", interval
                )
            else:
                result.setdefault("workspace", {})["auto_sync_interval_minutes"] = interval
        except ValueError:
            logger.warning("Invalid NOOT_AUTO_SYNC_INTERVAL value '%s', ignoring", interval_str)

    if sync_archived := os.environ.get("NOOT_SYNC_ARCHIVED"):
        result.setdefault("workspace", {})["sync_archived_notes"] = _parse_bool(sync_archived)

    return result


def get_default_config(data_dir: Path) -> dict[str, Any]:
    """
    Get hardcoded default configuration.

    Returns:
        Dictionary with default configuration values
    """
    return {
        "paths": {"data_dir": str(data_dir)},
        "workspace": {
            "auto_sync_enabled": False,
            "auto_sync_interval_minutes": 30,
            "sync_archived_notes": False,
        },
        "export": {"include_attachments": True, "include_archived": False, "organize_by": "context"},
    }


def load_config(data_dir: Path | None = None) -> NootConfig:
    """
    Load configuration with multi-layer merging.

    Configuration precedence (highest to lowest):
        1. Environment variables (NOOT_*)
        2. Live configuration document ({data_dir}/config.json)
        3. Hardcoded defaults

    Args:
        data_dir: Data directory to load config.json from (defaults to
            NOOT_DATA_DIR or the XDG data home)

    Returns:
        Validated NootConfig instance

    Raises:
        ValidationError: If the merged config fails Pydantic validation
    """
    data_dir = data_dir or get_data_dir()
    merged = get_default_config(data_dir)

    if document := load_json_file(get_config_path(data_dir)):
        # The data directory is fixed by the caller, never by the document
        document.get("paths", {}).pop("data_dir", None)
        merged = deep_merge(merged, document)

    merged = apply_env_overrides(merged)

    return NootConfig(**merged)
