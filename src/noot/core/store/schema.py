"""
SQLite schema for the noot store.

Schema Design:
- notes, contexts, meetings: core entities
- context_links, note_contexts, note_links, note_meetings, meeting_contexts:
  join/link tables, unique per pair
- screen_contexts, attachments: per-note capture metadata
- calendar_*: cached calendar data and series -> context rules
- workspace_connections, note_sync_states: remote workspace sync ledger
- schema_info: version tracking for migrations

TABLE_DEPENDENCIES declares which tables each table references through a
foreign key. Deletion and insertion orders are derived from it (see
noot.core.store.graph) instead of being written out by hand.
"""

import sqlite3

# Schema version for migrations
SCHEMA_VERSION = 1

SCHEMA_DDL = """
CREATE TABLE IF NOT EXISTS schema_info (
    version INTEGER PRIMARY KEY,
    applied_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
    description TEXT
);

CREATE TABLE IF NOT EXISTS notes (
    id TEXT PRIMARY KEY,
    content TEXT NOT NULL DEFAULT '',
    created_at TIMESTAMP NOT NULL,
    updated_at TIMESTAMP NOT NULL,
    closed_at TIMESTAMP,
    archived BOOLEAN NOT NULL DEFAULT 0
);

CREATE TABLE IF NOT EXISTS contexts (
    id TEXT PRIMARY KEY,
    name TEXT NOT NULL,
    type TEXT NOT NULL CHECK(type IN ('domain', 'workstream')),
    pinned BOOLEAN NOT NULL DEFAULT 0,
    archived BOOLEAN NOT NULL DEFAULT 0,
    created_at TIMESTAMP NOT NULL
);

CREATE TABLE IF NOT EXISTS context_links (
    id TEXT PRIMARY KEY,
    parent_context_id TEXT NOT NULL REFERENCES contexts(id) ON DELETE CASCADE,
    child_context_id TEXT NOT NULL REFERENCES contexts(id) ON DELETE CASCADE,
    created_at TIMESTAMP NOT NULL,
    UNIQUE(parent_context_id, child_context_id)
);

CREATE TABLE IF NOT EXISTS note_contexts (
    note_id TEXT NOT NULL REFERENCES notes(id) ON DELETE CASCADE,
    context_id TEXT NOT NULL REFERENCES contexts(id) ON DELETE CASCADE,
    assigned_at TIMESTAMP NOT NULL,
    PRIMARY KEY (note_id, context_id)
);

CREATE TABLE IF NOT EXISTS note_links (
    id TEXT PRIMARY KEY,
    source_note_id TEXT NOT NULL REFERENCES notes(id) ON DELETE CASCADE,
    target_note_id TEXT NOT NULL REFERENCES notes(id) ON DELETE CASCADE,
    relationship TEXT NOT NULL CHECK(relationship IN ('continues', 'informed_by', 'related')),
    created_at TIMESTAMP NOT NULL,
    UNIQUE(source_note_id, target_note_id)
);

CREATE TABLE IF NOT EXISTS meetings (
    id TEXT PRIMARY KEY,
    title TEXT,
    started_at TIMESTAMP NOT NULL,
    ended_at TIMESTAMP,
    audio_path TEXT,
    calendar_event_id TEXT
);

CREATE TABLE IF NOT EXISTS note_meetings (
    note_id TEXT NOT NULL REFERENCES notes(id) ON DELETE CASCADE,
    meeting_id TEXT NOT NULL REFERENCES meetings(id) ON DELETE CASCADE,
    PRIMARY KEY (note_id, meeting_id)
);

CREATE TABLE IF NOT EXISTS meeting_contexts (
    meeting_id TEXT NOT NULL REFERENCES meetings(id) ON DELETE CASCADE,
    context_id TEXT NOT NULL REFERENCES contexts(id) ON DELETE CASCADE,
    assigned_at TIMESTAMP NOT NULL,
    PRIMARY KEY (meeting_id, context_id)
);

CREATE TABLE IF NOT EXISTS screen_contexts (
    id TEXT PRIMARY KEY,
    note_id TEXT NOT NULL REFERENCES notes(id) ON DELETE CASCADE,
    source_type TEXT NOT NULL,
    app_name TEXT,
    url TEXT,
    file_path TEXT,
    line_start INTEGER,
    line_end INTEGER,
    git_repo TEXT,
    git_branch TEXT,
    captured_at TIMESTAMP NOT NULL
);

CREATE TABLE IF NOT EXISTS attachments (
    id TEXT PRIMARY KEY,
    note_id TEXT NOT NULL REFERENCES notes(id) ON DELETE CASCADE,
    type TEXT NOT NULL CHECK(type IN ('screenshot', 'screen_recording', 'audio')),
    file_path TEXT NOT NULL,
    file_size INTEGER NOT NULL,
    original_size INTEGER,
    duration_seconds REAL,
    created_at TIMESTAMP NOT NULL
);

CREATE TABLE IF NOT EXISTS calendar_accounts (
    id TEXT PRIMARY KEY,
    email TEXT NOT NULL,
    connected_at TIMESTAMP NOT NULL,
    last_sync_at TIMESTAMP
);

CREATE TABLE IF NOT EXISTS calendar_events (
    id TEXT PRIMARY KEY,
    google_event_id TEXT NOT NULL,
    google_series_id TEXT,
    calendar_account_id TEXT NOT NULL REFERENCES calendar_accounts(id) ON DELETE CASCADE,
    title TEXT NOT NULL,
    start_time TIMESTAMP NOT NULL,
    end_time TIMESTAMP NOT NULL,
    attendees TEXT,
    location TEXT,
    meeting_link TEXT,
    cached_at TIMESTAMP NOT NULL
);

CREATE TABLE IF NOT EXISTS calendar_series_context_rules (
    id TEXT PRIMARY KEY,
    google_series_id TEXT NOT NULL,
    context_id TEXT NOT NULL REFERENCES contexts(id) ON DELETE CASCADE,
    created_at TIMESTAMP NOT NULL
);

CREATE TABLE IF NOT EXISTS ignored_calendar_events (
    id TEXT PRIMARY KEY,
    google_event_id TEXT,
    google_series_id TEXT,
    created_at TIMESTAMP NOT NULL
);

CREATE TABLE IF NOT EXISTS workspace_connections (
    id TEXT PRIMARY KEY,
    workspace_id TEXT NOT NULL,
    workspace_name TEXT,
    container_id TEXT NOT NULL,
    container_name TEXT,
    access_token TEXT NOT NULL,
    connected_at TIMESTAMP NOT NULL,
    last_sync_at TIMESTAMP,
    sync_archived_notes BOOLEAN NOT NULL DEFAULT 0
);

-- note_id carries no foreign key: ledger rows survive a replace import of
-- the same notes and are pruned by the sync sweep when their note is gone.
CREATE TABLE IF NOT EXISTS note_sync_states (
    id TEXT PRIMARY KEY,
    note_id TEXT NOT NULL,
    page_id TEXT NOT NULL,
    connection_id TEXT NOT NULL REFERENCES workspace_connections(id) ON DELETE CASCADE,
    last_synced_at TIMESTAMP NOT NULL,
    sync_hash TEXT NOT NULL,
    UNIQUE(note_id, connection_id)
);

CREATE INDEX IF NOT EXISTS idx_notes_created_at ON notes(created_at);
CREATE INDEX IF NOT EXISTS idx_notes_archived ON notes(archived);
CREATE INDEX IF NOT EXISTS idx_contexts_type ON contexts(type);
CREATE INDEX IF NOT EXISTS idx_contexts_archived ON contexts(archived);
CREATE INDEX IF NOT EXISTS idx_screen_contexts_note ON screen_contexts(note_id);
CREATE INDEX IF NOT EXISTS idx_attachments_note ON attachments(note_id);
CREATE INDEX IF NOT EXISTS idx_meeting_contexts_meeting ON meeting_contexts(meeting_id);
CREATE INDEX IF NOT EXISTS idx_note_sync_states_connection ON note_sync_states(connection_id);
"""

# table -> tables it references through foreign keys
TABLE_DEPENDENCIES: dict[str, set[str]] = {
    "notes": set(),
    "contexts": set(),
    "meetings": set(),
    "calendar_accounts": set(),
    "ignored_calendar_events": set(),
    "context_links": {"contexts"},
    "note_contexts": {"notes", "contexts"},
    "note_links": {"notes"},
    "note_meetings": {"notes", "meetings"},
    "meeting_contexts": {"meetings", "contexts"},
    "screen_contexts": {"notes"},
    "attachments": {"notes"},
    "calendar_events": {"calendar_accounts"},
    "calendar_series_context_rules": {"contexts"},
    "workspace_connections": set(),
    "note_sync_states": {"workspace_connections"},
}

# Workspace sync state is not part of the entity graph a bundle replaces
LEDGER_TABLES = frozenset({"workspace_connections", "note_sync_states"})

ENTITY_TABLES = frozenset(TABLE_DEPENDENCIES) - LEDGER_TABLES


def create_schema(conn: sqlite3.Connection) -> None:
    """
    Create the database schema.

    Executes all DDL statements to create tables and indexes.
    This is idempotent - safe to call multiple times.

    Args:
        conn: SQLite database connection
    """
    conn.executescript(SCHEMA_DDL)
    conn.execute(
        "INSERT OR REPLACE INTO schema_info (version, description) VALUES (?, ?)",
        (SCHEMA_VERSION, "Entity graph, calendar cache and workspace sync ledger"),
    )


def get_schema_version(conn: sqlite3.Connection) -> int | None:
    """
    Get the current schema version from the database.

    Returns:
        Current schema version, or None if schema_info table doesn't exist
    """
    try:
        row = conn.execute("SELECT MAX(version) AS version FROM schema_info").fetchone()
    except sqlite3.OperationalError:
        return None
    if row is None:
        return None
    version = row["version"] if isinstance(row, dict) else row[0]
    return int(version) if version is not None else None


def needs_migration(conn: sqlite3.Connection) -> bool:
    """Check if the database needs to be brought to SCHEMA_VERSION."""
    current_version = get_schema_version(conn)
    if current_version is None:
        return True
    return current_version < SCHEMA_VERSION
