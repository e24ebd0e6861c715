"""
Local store: entity models, SQLite schema and scoped access.

Usage:
    from noot.core.store import Store, Note, fetch_all

    store = Store.open(config.paths.db_path)
    with store.read() as conn:
        notes = fetch_all(conn, Note)
"""

from .connection import ReadWriteLock, Store
from .exceptions import DependencyCycleError, StoreError
from .graph import TableGraph
from .models import (
    RECORD_TYPES,
    Attachment,
    AttachmentType,
    CalendarAccount,
    CalendarEvent,
    CalendarSeriesContextRule,
    Context,
    ContextLink,
    ContextType,
    IgnoredCalendarEvent,
    Meeting,
    MeetingContext,
    Note,
    NoteContext,
    NoteLink,
    NoteLinkRelationship,
    NoteMeeting,
    NoteSyncState,
    Record,
    ScreenContext,
    ScreenContextSourceType,
    WorkspaceConnection,
    new_id,
    utc_now,
)
from .queries import (
    InsertResult,
    count,
    delete_all,
    delete_where,
    exists,
    fetch_all,
    fetch_one,
    insert,
    insert_if_absent,
    update,
)
from .schema import ENTITY_TABLES, LEDGER_TABLES, SCHEMA_VERSION, TABLE_DEPENDENCIES

__all__ = [
    # Connection
    "ReadWriteLock",
    "Store",
    # Exceptions
    "DependencyCycleError",
    "StoreError",
    # Graph
    "TableGraph",
    # Models
    "RECORD_TYPES",
    "Attachment",
    "AttachmentType",
    "CalendarAccount",
    "CalendarEvent",
    "CalendarSeriesContextRule",
    "Context",
    "ContextLink",
    "ContextType",
    "IgnoredCalendarEvent",
    "Meeting",
    "MeetingContext",
    "Note",
    "NoteContext",
    "NoteLink",
    "NoteLinkRelationship",
    "NoteMeeting",
    "NoteSyncState",
    "Record",
    "ScreenContext",
    "ScreenContextSourceType",
    "WorkspaceConnection",
    "new_id",
    "utc_now",
    # Queries
    "InsertResult",
    "count",
    "delete_all",
    "delete_where",
    "exists",
    "fetch_all",
    "fetch_one",
    "insert",
    "insert_if_absent",
    "update",
    # Schema
    "ENTITY_TABLES",
    "LEDGER_TABLES",
    "SCHEMA_VERSION",
    "TABLE_DEPENDENCIES",
]
