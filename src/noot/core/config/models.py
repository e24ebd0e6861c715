"""
Configuration data models for noot.

These models define the structure of the live configuration document
({data_dir}/config.json), with validation and type safety via Pydantic.
Unknown keys are kept so the document round-trips through bundles intact.
"""

import os
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field


def default_data_dir() -> Path:
    """Return the default data directory (XDG data home)."""
    if xdg_data := os.environ.get("XDG_DATA_HOME"):
        return Path(xdg_data) / "noot"
    return Path.home() / ".local" / "share" / "noot"


def default_backups_dir() -> Path:
    """Return the default location for automatic pre-replace backups."""
    return Path.home() / "Documents" / "Noot Backups"


class PathsConfig(BaseModel):
    """
    Filesystem locations used by the engine.

    The data directory holds the database, the live configuration
    document and the attachment tree.
    """
    data_dir: Path = Field(
        default_factory=default_data_dir,
        description="Directory holding noot.db, config.json and attachments/"
    )
    backups_dir: Path = Field(
        default_factory=default_backups_dir,
        description="Directory receiving automatic backups before replace imports"
    )

    @property
    def db_path(self) -> Path:
        return self.data_dir / "noot.db"

    @property
    def config_path(self) -> Path:
        return self.data_dir / "config.json"

    @property
    def attachments_dir(self) -> Path:
        return self.data_dir / "attachments"


class WorkspaceSyncConfig(BaseModel):
    """
    Remote workspace sync behavior.

    Controls the recurring sweep and which notes are eligible.
    """
    auto_sync_enabled: bool = Field(
        default=False,
        description="Run a sync sweep on a recurring schedule"
    )
    auto_sync_interval_minutes: int = Field(
        default=30,
        ge=1,
        description="Minutes between scheduled sync sweeps"
    )
    sync_archived_notes: bool = Field(
        default=False,
        description="Include archived notes in sync sweeps"
    )


class ExportConfig(BaseModel):
    """Defaults for the human-readable markdown export."""
    include_attachments: bool = Field(
        default=True,
        description="Copy attachment files next to exported markdown"
    )
    include_archived: bool = Field(
        default=False,
        description="Include archived notes in markdown exports"
    )
    organize_by: str = Field(
        default="context",
        pattern="^(context|date|flat)$",
        description="Folder layout for markdown exports: context, date or flat"
    )


class NootConfig(BaseModel):
    """
    Top-level noot configuration.

    Built once at process start by load_config() and passed by reference
    to the export, import and sync components.

    Example:
        >>> config = NootConfig(paths=PathsConfig(data_dir=Path("/tmp/noot")))
        >>> config.paths.db_path
        PosixPath('/tmp/noot/noot.db')
    """
    paths: PathsConfig = Field(
        default_factory=PathsConfig,
        description="Filesystem locations"
    )
    workspace: WorkspaceSyncConfig = Field(
        default_factory=WorkspaceSyncConfig,
        description="Remote workspace sync settings"
    )
    export: ExportConfig = Field(
        default_factory=ExportConfig,
        description="Markdown export defaults"
    )

    model_config = ConfigDict(
        extra="allow",  # Preferences written by other front-ends are preserved
        validate_assignment=True,
    )
