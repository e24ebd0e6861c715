"""
Unit tests for configuration loader.

Tests multi-layer config merging, environment variable overrides,
and data directory resolution.
"""

import json
from pathlib import Path

import pytest
from pydantic import ValidationError

from noot.core.config import get_config_path, get_data_dir, load_config
from noot.core.config.loader import (
    apply_env_overrides,
    deep_merge,
    get_default_config,
    load_json_file,
)
from noot.core.config.models import NootConfig, PathsConfig

# ==============================================================================
# Helper Functions Tests
# ==============================================================================


class TestDeepMerge:
    """Test the deep_merge helper function."""

    def test_simple_merge(self):
        """Test merging two simple dicts."""
        result = deep_merge({"a": 1, "b": 2}, {"b": 3, "c": 4})
        assert result == {"a": 1, "b": 3, "c": 4}

    def test_nested_merge(self):
        """Test merging nested dicts."""
        base = {"workspace": {"auto_sync_enabled": False, "auto_sync_interval_minutes": 30}}
        override = {"workspace": {"auto_sync_enabled": True}}
        result = deep_merge(base, override)
        assert result == {"workspace": {"auto_sync_enabled": True, "auto_sync_interval_minutes": 30}}

    def test_does_not_mutate_base(self):
        base = {"a": {"x": 1}}
        deep_merge(base, {"a": {"y": 2}})
        assert base == {"a": {"x": 1}}


class TestLoadJsonFile:
    """Test JSON file loading."""

    def test_load_existing_file(self, tmp_path):
        config_file = tmp_path / "config.json"
        config_file.write_text(json.dumps({"key": "value"}))
        assert load_json_file(config_file) == {"key": "value"}

    def test_load_nonexistent_file(self, tmp_path):
        """Test loading a file that doesn't exist returns None."""
        assert load_json_file(tmp_path / "nonexistent.json") is None

    def test_load_invalid_json(self, tmp_path):
        """Test loading invalid JSON returns None instead of raising."""
        config_file = tmp_path / "config.json"
        config_file.write_text("{not json")
        assert load_json_file(config_file) is None


# ==============================================================================
# Environment Overrides
# ==============================================================================


class TestEnvOverrides:
    """Test NOOT_* environment variable overrides."""

    def test_auto_sync_flag(self, monkeypatch):
        monkeypatch.setenv("NOOT_AUTO_SYNC", "true")
        result = apply_env_overrides({})
        assert result["workspace"]["auto_sync_enabled"] is True

    def test_auto_sync_false_values(self, monkeypatch):
        monkeypatch.setenv("NOOT_AUTO_SYNC", "0")
        assert apply_env_overrides({})["workspace"]["auto_sync_enabled"] is False

    def test_interval_override(self, monkeypatch):
        monkeypatch.setenv("NOOT_AUTO_SYNC_INTERVAL", "5")
        result = apply_env_overrides({"workspace": {"auto_sync_interval_minutes": 30}})
        assert result["workspace"]["auto_sync_interval_minutes"] == 5

    def test_invalid_interval_ignored(self, monkeypatch):
        """Test that a non-integer interval is ignored."""
        monkeypatch.setenv("NOOT_AUTO_SYNC_INTERVAL", "often")
        result = apply_env_overrides({"workspace": {"auto_sync_interval_minutes": 30}})
        assert result["workspace"]["auto_sync_interval_minutes"] == 30

    def test_zero_interval_ignored(self, monkeypatch):
        monkeypatch.setenv("NOOT_AUTO_SYNC_INTERVAL", "0")
        result = apply_env_overrides({"workspace": {"auto_sync_interval_minutes": 30}})
        assert result["workspace"]["auto_sync_interval_minutes"] == 30

    def test_backups_dir(self, monkeypatch, tmp_path):
        monkeypatch.setenv("NOOT_BACKUPS_DIR", str(tmp_path / "bk"))
        assert apply_env_overrides({})["paths"]["backups_dir"] == str(tmp_path / "bk")


# ==============================================================================
# Directory Resolution
# ==============================================================================


class TestDataDir:
    def test_env_var_wins(self, monkeypatch, tmp_path):
        monkeypatch.setenv("NOOT_DATA_DIR", str(tmp_path / "custom"))
        assert get_data_dir() == tmp_path / "custom"

    def test_xdg_default(self, tmp_path):
        """isolated_env points XDG_DATA_HOME into tmp_path."""
        assert get_data_dir() == tmp_path / "xdg-data" / "noot"

    def test_config_path(self, tmp_path):
        assert get_config_path(tmp_path) == tmp_path / "config.json"

    def test_derived_paths(self, tmp_path):
        paths = PathsConfig(data_dir=tmp_path)
        assert paths.db_path == tmp_path / "noot.db"
        assert paths.attachments_dir == tmp_path / "attachments"


# ==============================================================================
# load_config
# ==============================================================================


class TestLoadConfig:
    """Test layered configuration loading."""

    def test_defaults(self, tmp_path):
        config = load_config(tmp_path)
        assert isinstance(config, NootConfig)
        assert config.paths.data_dir == tmp_path
        assert config.workspace.auto_sync_enabled is False
        assert config.workspace.auto_sync_interval_minutes == 30
        assert config.export.organize_by == "context"

    def test_document_overrides_defaults(self, tmp_path):
        (tmp_path / "config.json").write_text(
            json.dumps({"workspace": {"sync_archived_notes": True}})
        )
        config = load_config(tmp_path)
        assert config.workspace.sync_archived_notes is True
        assert config.workspace.auto_sync_interval_minutes == 30

    def test_env_overrides_document(self, tmp_path, monkeypatch):
        (tmp_path / "config.json").write_text(
            json.dumps({"workspace": {"auto_sync_interval_minutes": 10}})
        )
        monkeypatch.setenv("NOOT_AUTO_SYNC_INTERVAL", "45")
        assert load_config(tmp_path).workspace.auto_sync_interval_minutes == 45

    def test_document_cannot_move_data_dir(self, tmp_path):
        (tmp_path / "config.json").write_text(json.dumps({"paths": {"data_dir": "/elsewhere"}}))
        assert load_config(tmp_path).paths.data_dir == tmp_path

    def test_unknown_keys_preserved(self, tmp_path):
        """Preferences written by other front-ends survive loading."""
        (tmp_path / "config.json").write_text(json.dumps({"theme": "dark"}))
        config = load_config(tmp_path)
        assert config.model_extra == {"theme": "dark"}

    def test_fresh_instance_each_call(self, tmp_path):
        assert load_config(tmp_path) is not load_config(tmp_path)

    def test_invalid_value_raises(self, tmp_path):
        (tmp_path / "config.json").write_text(
            json.dumps({"export": {"organize_by": "alphabetical"}})
        )
        with pytest.raises(ValidationError):
            load_config(tmp_path)

    def test_uses_env_data_dir(self, tmp_path, monkeypatch):
        monkeypatch.setenv("NOOT_DATA_DIR", str(tmp_path / "d"))
        assert load_config().paths.data_dir == Path(tmp_path / "d")
