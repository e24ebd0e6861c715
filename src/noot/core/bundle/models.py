"""
Bundle data models.

Defines the on-disk shapes of a bundle (manifest, per-note frontmatter),
the in-memory graph an import works on, and the progress and report types
surfaced to callers. On-disk keys are camelCase; Python attributes are
snake_case.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from noot.core.store.models import (
    Attachment,
    CalendarAccount,
    CalendarEvent,
    CalendarSeriesContextRule,
    Context,
    ContextLink,
    Meeting,
    Note,
    NoteContext,
    NoteLink,
    NoteMeeting,
    ScreenContext,
    utc_now,
)

# Bump on any change a current decoder could not read from an older bundle
CURRENT_SCHEMA_VERSION = 1

MANIFEST_FILENAME = "manifest.json"
CONFIG_FILENAME = "config.json"
NOTES_DIRNAME = "notes"
ATTACHMENTS_DIRNAME = "attachments"

# document file -> table
COLLECTION_FILES: dict[str, str] = {
    "contexts.json": "contexts",
    "context-links.json": "context_links",
    "meetings.json": "meetings",
    "calendar-accounts.json": "calendar_accounts",
    "calendar-events.json": "calendar_events",
    "calendar-rules.json": "calendar_series_context_rules",
}


class CamelModel(BaseModel):
    """Base for models written to or read from bundle files."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_document(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class ExportManifest(CamelModel):
    """
    A bundle's self-description.

    Counts are taken from database rows at export time, not from the files
    that were actually written.
    """

    noot_version: str = "0.0.0"
    schema_version: int = CURRENT_SCHEMA_VERSION
    exported_at: datetime = Field(default_factory=utc_now)
    note_count: int = 0
    attachment_count: int = 0
    context_count: int = 0
    meeting_count: int = 0
    context_link_count: int = 0
    note_link_count: int = 0
    screen_context_count: int = 0
    calendar_event_count: int = 0
    calendar_account_count: int = 0


class ContextRef(CamelModel):
    id: str
    name: str


class LinkRef(CamelModel):
    target_id: str
    relationship: str


class ScreenContextRef(CamelModel):
    # id and capturedAt are optional so bundles without them still read
    id: str | None = None
    source_type: str
    app_name: str | None = None
    url: str | None = None
    file_path: str | None = None
    line_start: int | None = None
    line_end: int | None = None
    git_repo: str | None = None
    git_branch: str | None = None
    captured_at: datetime | None = None


class AttachmentRef(CamelModel):
    id: str
    type: str
    filename: str
    file_size: int | None = None
    duration_seconds: float | None = None


class NoteFrontmatter(CamelModel):
    """
    Per-note header stored above the body in notes/{id}.md.

    Optional collections are left out entirely when empty, so a note
    without contexts has no `contexts` key at all.
    """

    id: str
    created_at: datetime
    updated_at: datetime
    closed_at: datetime | None = None
    archived: bool
    contexts: list[ContextRef] | None = None
    links: list[LinkRef] | None = None
    meeting_id: str | None = None
    screen_context: ScreenContextRef | None = None
    attachments: list[AttachmentRef] | None = None


@dataclass
class BundleGraph:
    """Everything an import read from one bundle, before it touches the store."""

    notes: list[Note] = field(default_factory=list)
    contexts: list[Context] = field(default_factory=list)
    context_links: list[ContextLink] = field(default_factory=list)
    note_contexts: list[NoteContext] = field(default_factory=list)
    note_links: list[NoteLink] = field(default_factory=list)
    meetings: list[Meeting] = field(default_factory=list)
    note_meetings: list[NoteMeeting] = field(default_factory=list)
    screen_contexts: list[ScreenContext] = field(default_factory=list)
    calendar_accounts: list[CalendarAccount] = field(default_factory=list)
    calendar_events: list[CalendarEvent] = field(default_factory=list)
    calendar_rules: list[CalendarSeriesContextRule] = field(default_factory=list)
    # (owning note id, reference) pairs; rows are built when files are copied
    attachment_refs: list[tuple[str, AttachmentRef]] = field(default_factory=list)


@dataclass
class ExportSnapshot:
    """Rows read from the store in one read scope for a full export."""

    notes: list[Note]
    contexts: list[Context]
    context_links: list[ContextLink]
    note_contexts: list[NoteContext]
    note_links: list[NoteLink]
    meetings: list[Meeting]
    note_meetings: list[NoteMeeting]
    screen_contexts: list[ScreenContext]
    attachments: list[Attachment]
    calendar_accounts: list[CalendarAccount]
    calendar_events: list[CalendarEvent]
    calendar_rules: list[CalendarSeriesContextRule]


@dataclass
class ExportProgress:
    """Discrete progress step; phase sizes are not uniform."""

    phase: str
    current: int
    total: int

    @property
    def fraction_completed(self) -> float:
        if self.total <= 0:
            return 0.0
        return self.current / self.total

    def __str__(self) -> str:
        return f"{self.phase} ({self.current}/{self.total})"


# Imports report through the same triple
ImportProgress = ExportProgress

ProgressCallback = Callable[[ExportProgress], None]


class ImportMode(str, Enum):
    """Conflict policy for bundle imports."""

    MERGE = "merge"  # add entities whose id is absent, skip the rest
    REPLACE = "replace"  # back up, wipe, reload


class OrganizeBy(str, Enum):
    CONTEXT = "context"
    DATE = "date"
    FLAT = "flat"


class SkippedItem(CamelModel):
    type: str
    name: str
    reason: str


class ImportReport(CamelModel):
    """
    Terminal report of an import; the single source of truth for the caller.

    Example:
        >>> report = ImportReport()
        >>> report.skip("note", "Standup", "already exists")
        >>> report.to_document()["skipped"][0]["reason"]
        'already exists'
    """

    notes_imported: int = 0
    contexts_imported: int = 0
    meetings_imported: int = 0
    attachments_imported: int = 0
    skipped: list[SkippedItem] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)
    backup_path: str | None = None

    def skip(self, item_type: str, name: str, reason: str) -> None:
        self.skipped.append(SkippedItem(type=item_type, name=name, reason=reason))


class ImportPreview(CamelModel):
    """Result of inspecting a bundle without importing it."""

    is_valid: bool
    schema_version: int = 0
    note_count: int = 0
    context_count: int = 0
    meeting_count: int = 0
    attachment_count: int = 0
    warnings: list[str] = Field(default_factory=list)
    manifest: ExportManifest | None = None
    migration_description: str | None = None


class MarkdownExportOptions(BaseModel):
    include_attachments: bool = True
    include_archived: bool = False
    organize_by: OrganizeBy = OrganizeBy.CONTEXT


class MarkdownImportOptions(BaseModel):
    create_contexts_from_folders: bool = True
    parse_frontmatter: bool = True
    import_images: bool = True
    target_context: str | None = None
