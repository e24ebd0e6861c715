"""
Entity graph data models.

Each model maps one-to-one onto a table of the local store. Field names are
the snake_case column names; the camelCase aliases are the key names used in
export bundles, so the same model reads a database row and a bundle
document.

Example:
    >>> note = Note(content="Standup notes")
    >>> note.to_row()["archived"]
    False
    >>> "createdAt" in note.to_document()
    True
"""

from __future__ import annotations

import hashlib
import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Any, ClassVar

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


def new_id() -> str:
    """Generate a new entity id."""
    return str(uuid.uuid4()).upper()


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class ContextType(str, Enum):
    """Broad domain vs narrow workstream."""

    DOMAIN = "domain"
    WORKSTREAM = "workstream"


class NoteLinkRelationship(str, Enum):
    """Directed relationship from one note to another."""

    CONTINUES = "continues"
    INFORMED_BY = "informed_by"
    RELATED = "related"


class AttachmentType(str, Enum):
    """Attachment kinds; each lives in its own attachment subdirectory."""

    SCREENSHOT = "screenshot"
    SCREEN_RECORDING = "screen_recording"
    AUDIO = "audio"

    @property
    def subdirectory(self) -> str:
        return {
            AttachmentType.SCREENSHOT: "screenshots",
            AttachmentType.SCREEN_RECORDING: "recordings",
            AttachmentType.AUDIO: "audio",
        }[self]


class ScreenContextSourceType(str, Enum):
    BROWSER = "browser"
    VSCODE = "vscode"
    TERMINAL = "terminal"
    OTHER = "other"


class Record(BaseModel):
    """
    Base class for store records.

    Subclasses declare their table and key columns as class variables.
    """

    table_name: ClassVar[str]
    key_columns: ClassVar[tuple[str, ...]] = ("id",)

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        use_enum_values=False,
    )

    def to_row(self) -> dict[str, Any]:
        """Serialize to a column -> value mapping for SQLite."""
        return self.model_dump(mode="json")

    def to_document(self) -> dict[str, Any]:
        """Serialize to the camelCase shape used in bundle JSON documents."""
        return self.model_dump(mode="json", by_alias=True)

    def key(self) -> tuple[Any, ...]:
        return tuple(getattr(self, column) for column in self.key_columns)


class Note(Record):
    """A short free-form note."""

    table_name: ClassVar[str] = "notes"

    id: str = Field(default_factory=new_id)
    content: str = ""
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)
    closed_at: datetime | None = None
    archived: bool = False

    @property
    def is_open(self) -> bool:
        return self.closed_at is None

    @property
    def title(self) -> str:
        """First line of the body, used as a label in progress and reports."""
        first_line = self.content.split("\n", 1)[0] if self.content else ""
        return first_line[:50]


class Context(Record):
    """User-defined organizing tag."""

    table_name: ClassVar[str] = "contexts"

    id: str = Field(default_factory=new_id)
    name: str
    type: ContextType = ContextType.WORKSTREAM
    pinned: bool = False
    archived: bool = False
    created_at: datetime = Field(default_factory=utc_now)


class ContextLink(Record):
    """Parent -> child edge between contexts."""

    table_name: ClassVar[str] = "context_links"

    id: str = Field(default_factory=new_id)
    parent_context_id: str
    child_context_id: str
    created_at: datetime = Field(default_factory=utc_now)


class NoteContext(Record):
    table_name: ClassVar[str] = "note_contexts"
    key_columns: ClassVar[tuple[str, ...]] = ("note_id", "context_id")

    note_id: str
    context_id: str
    assigned_at: datetime = Field(default_factory=utc_now)


class NoteLink(Record):
    table_name: ClassVar[str] = "note_links"

    id: str = Field(default_factory=new_id)
    source_note_id: str
    target_note_id: str
    relationship: NoteLinkRelationship = NoteLinkRelationship.RELATED
    created_at: datetime = Field(default_factory=utc_now)


class Meeting(Record):
    table_name: ClassVar[str] = "meetings"

    id: str = Field(default_factory=new_id)
    title: str | None = None
    started_at: datetime = Field(default_factory=utc_now)
    ended_at: datetime | None = None
    audio_path: str | None = None
    calendar_event_id: str | None = None


class NoteMeeting(Record):
    table_name: ClassVar[str] = "note_meetings"
    key_columns: ClassVar[tuple[str, ...]] = ("note_id", "meeting_id")

    note_id: str
    meeting_id: str


class MeetingContext(Record):
    table_name: ClassVar[str] = "meeting_contexts"
    key_columns: ClassVar[tuple[str, ...]] = ("meeting_id", "context_id")

    meeting_id: str
    context_id: str
    assigned_at: datetime = Field(default_factory=utc_now)


class ScreenContext(Record):
    """What was on screen when a note was captured."""

    table_name: ClassVar[str] = "screen_contexts"

    id: str = Field(default_factory=new_id)
    note_id: str
    source_type: ScreenContextSourceType = ScreenContextSourceType.OTHER
    app_name: str | None = None
    url: str | None = None
    file_path: str | None = None
    line_start: int | None = None
    line_end: int | None = None
    git_repo: str | None = None
    git_branch: str | None = None
    captured_at: datetime = Field(default_factory=utc_now)


class Attachment(Record):
    """
    A file attached to a note.

    file_path is either absolute or relative to the attachment tree
    ({data_dir}/attachments).
    """

    table_name: ClassVar[str] = "attachments"

    id: str = Field(default_factory=new_id)
    note_id: str
    type: AttachmentType
    file_path: str
    file_size: int = 0
    original_size: int | None = None
    duration_seconds: float | None = None
    created_at: datetime = Field(default_factory=utc_now)

    @property
    def extension(self) -> str:
        name = self.file_path.rsplit("/", 1)[-1]
        return name.rsplit(".", 1)[-1] if "." in name else ""

    @property
    def bundle_filename(self) -> str:
        """Collision-free file name used inside a bundle's attachments/ folder."""
        return f"{self.id}-{self.type.value}.{self.extension}"

    @property
    def formatted_duration(self) -> str | None:
        if self.duration_seconds is None:
            return None
        minutes, seconds = divmod(int(self.duration_seconds), 60)
        return f"{minutes}:{seconds:02d}"


class CalendarAccount(Record):
    table_name: ClassVar[str] = "calendar_accounts"

    id: str = Field(default_factory=new_id)
    email: str
    connected_at: datetime = Field(default_factory=utc_now)
    last_sync_at: datetime | None = None


class CalendarEvent(Record):
    table_name: ClassVar[str] = "calendar_events"

    id: str = Field(default_factory=new_id)
    google_event_id: str
    google_series_id: str | None = None
    calendar_account_id: str
    title: str
    start_time: datetime
    end_time: datetime
    attendees: str | None = None
    location: str | None = None
    meeting_link: str | None = None
    cached_at: datetime = Field(default_factory=utc_now)


class CalendarSeriesContextRule(Record):
    """Auto-assigns a context to meetings from a recurring calendar series."""

    table_name: ClassVar[str] = "calendar_series_context_rules"

    id: str = Field(default_factory=new_id)
    google_series_id: str
    context_id: str
    created_at: datetime = Field(default_factory=utc_now)


class IgnoredCalendarEvent(Record):
    table_name: ClassVar[str] = "ignored_calendar_events"

    id: str = Field(default_factory=new_id)
    google_event_id: str | None = None
    google_series_id: str | None = None
    created_at: datetime = Field(default_factory=utc_now)


class WorkspaceConnection(Record):
    """The single configured remote workspace and its target container."""

    table_name: ClassVar[str] = "workspace_connections"

    id: str = Field(default_factory=new_id)
    workspace_id: str
    workspace_name: str | None = None
    container_id: str
    container_name: str | None = None
    access_token: str
    connected_at: datetime = Field(default_factory=utc_now)
    last_sync_at: datetime | None = None
    sync_archived_notes: bool = False


class NoteSyncState(Record):
    """
    Ledger row: what has been pushed for one note to one connection.

    Created on the first successful push, updated in place afterwards.
    """

    table_name: ClassVar[str] = "note_sync_states"

    id: str = Field(default_factory=new_id)
    note_id: str
    page_id: str
    connection_id: str
    last_synced_at: datetime = Field(default_factory=utc_now)
    sync_hash: str

    @staticmethod
    def compute_hash(note: Note, meeting_id: str | None = None) -> str:
        """
        Hash the note fields whose change requires a push.

        Covers the body, the updated timestamp, the archived flag and the
        linked meeting id.
        """
        payload = "|".join(
            [
                note.content,
                repr(note.updated_at.timestamp()),
                "true" if note.archived else "false",
                meeting_id or "none",
            ]
        )
        return hashlib.sha256(payload.encode("utf-8")).hexdigest()


# Entity classes keyed by table name
RECORD_TYPES: dict[str, type[Record]] = {
    cls.table_name: cls
    for cls in (
        Note,
        Context,
        ContextLink,
        NoteContext,
        NoteLink,
        Meeting,
        NoteMeeting,
        MeetingContext,
        ScreenContext,
        Attachment,
        CalendarAccount,
        CalendarEvent,
        CalendarSeriesContextRule,
        IgnoredCalendarEvent,
        WorkspaceConnection,
        NoteSyncState,
    )
}
