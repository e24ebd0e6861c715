"""
Configuration models and loading.

This module provides Pydantic models for noot configuration
with multi-layer merging: defaults < config.json < env vars.
"""

from .env import get_user_env_path, load_env_files
from .loader import (
    deep_merge,
    get_config_path,
    get_data_dir,
    load_config,
)
from .models import (
    ExportConfig,
    NootConfig,
    PathsConfig,
    WorkspaceSyncConfig,
)

__all__ = [
    # Models
    "ExportConfig",
    "NootConfig",
    "PathsConfig",
    "WorkspaceSyncConfig",
    # Loader functions
    "deep_merge",
    "get_config_path",
    "get_data_dir",
    "load_config",
    "get_user_env_path",
    "load_env_files",
]
