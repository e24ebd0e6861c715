"""
Incremental one-way sync of notes into a remote workspace container.

Each note is pushed as one page. A ledger row per (note, connection) keeps
the page id and a hash of the fields that matter; a sweep creates pages for
notes with no ledger row, updates pages whose hash changed and leaves the
rest alone. Ledger rows are written only after the remote call succeeds.

The service does not serialize overlapping sweeps. Scheduled callers go
through AutoSyncScheduler, which holds a single in-flight gate.

Example:
    >>> service = WorkspaceSyncService(store, config.workspace)
    >>> await service.connect("ntn_...")
    >>> report = await service.sync_all()
    >>> report.notes_created
    12
"""

from __future__ import annotations

import logging
import sqlite3
from collections.abc import Callable
from enum import Enum

from pydantic import ValidationError

from noot.core.config.models import WorkspaceSyncConfig
from noot.core.store import (
    Context,
    Meeting,
    Note,
    NoteSyncState,
    Store,
    WorkspaceConnection,
    delete_all,
    delete_where,
    fetch_all,
    fetch_one,
    insert,
    update,
    utc_now,
)

from .blocks import markdown_to_blocks
from .client import WorkspaceClient
from .exceptions import (
    InvalidTokenError,
    NoContainerAccessError,
    NotConnectedError,
    NoteNotFoundError,
    WorkspaceError,
)
from .models import RemoteContainer, SyncProgress, SyncProgressCallback, SyncReport
from .properties import PropertyNames, build_page_properties, missing_properties

logger = logging.getLogger(__name__)

TOKEN_PREFIXES = ("secret_", "ntn_")
PAGE_URL_BASE = "https://notion.so"

ClientFactory = Callable[[str], WorkspaceClient]


class SyncAction(str, Enum):
    """What a single push did."""

    CREATED = "created"
    UPDATED = "updated"
    UNCHANGED = "unchanged"


def _noop_progress(progress: SyncProgress) -> None:
    pass


def choose_container(containers: list[RemoteContainer]) -> RemoteContainer:
    """Prefer a container whose title mentions noot, else the first one."""
    for container in containers:
        if "noot" in container.display_title.lower():
            return container
    return containers[0]


class WorkspaceSyncService:
    """
    Pushes local notes to the connected workspace.

    Args:
        store: Local store
        config: Sync settings; seeds the connection's archived toggle
        client_factory: Builds a client for a token (swap for tests)
    """

    def __init__(
        self,
        store: Store,
        config: WorkspaceSyncConfig | None = None,
        client_factory: ClientFactory = WorkspaceClient,
    ) -> None:
        self.store = store
        self.config = config or WorkspaceSyncConfig()
        self.client_factory = client_factory

    # Connection lifecycle

    def get_connection(self) -> WorkspaceConnection | None:
        with self.store.read() as conn:
            connections = fetch_all(conn, WorkspaceConnection, order_by="connected_at DESC")
        return connections[0] if connections else None

    def _require_connection(self) -> WorkspaceConnection:
        connection = self.get_connection()
        if connection is None:
            raise NotConnectedError()
        return connection

    @property
    def is_connected(self) -> bool:
        return self.get_connection() is not None

    async def connect(self, token: str) -> WorkspaceConnection:
        """
        Verify *token*, pick a container and store the connection.

        Missing sync properties are added to the container here, once,
        before anything is pushed. Any previous connection (and its ledger)
        is replaced.

        Raises:
            InvalidTokenError: Token lacks a known integration prefix
            NoContainerAccessError: Token can see no container
            WorkspaceAPIError: The remote rejected a call
        """
        token = token.strip()
        if not token.startswith(TOKEN_PREFIXES):
            raise InvalidTokenError()

        async with self.client_factory(token) as client:
            user = await client.get_current_user()
            containers = await client.search_containers()
            if not containers:
                raise NoContainerAccessError()

            container = choose_container(containers)
            additions = missing_properties(container)
            if additions:
                logger.info("Adding properties to %s: %s", container.id, ", ".join(additions))
                container = await client.update_container_properties(container.id, additions)

        connection = WorkspaceConnection(
            workspace_id=user.id,
            workspace_name=user.name,
            container_id=container.id,
            container_name=container.display_title,
            access_token=token,
            sync_archived_notes=self.config.sync_archived_notes,
        )
        with self.store.write() as conn:
            delete_all(conn, WorkspaceConnection.table_name)
            insert(conn, connection)

        logger.info("Connected to container %s (%s)", connection.container_name, connection.container_id)
        return connection

    def disconnect(self) -> None:
        """Forget the connection. Its ledger rows go with it."""
        with self.store.write() as conn:
            delete_all(conn, WorkspaceConnection.table_name)

    def clear_sync_states(self) -> int:
        """Drop every ledger row so the next sweep re-creates all pages."""
        with self.store.write() as conn:
            return delete_all(conn, NoteSyncState.table_name)

    def update_settings(self, sync_archived: bool) -> WorkspaceConnection:
        connection = self._require_connection()
        connection.sync_archived_notes = sync_archived
        with self.store.write() as conn:
            update(conn, connection)
        return connection

    # Ledger lookups

    def _sync_state(self, conn: sqlite3.Connection, note_id: str, connection_id: str) -> NoteSyncState | None:
        states = fetch_all(
            conn, NoteSyncState, "note_id = ? AND connection_id = ?", (note_id, connection_id)
        )
        return states[0] if states else None

    def is_synced(self, note_id: str) -> bool:
        connection = self.get_connection()
        if connection is None:
            return False
        with self.store.read() as conn:
            return self._sync_state(conn, note_id, connection.id) is not None

    def page_url(self, note_id: str) -> str | None:
        """Browser URL of the note's page, if it has been pushed."""
        connection = self.get_connection()
        if connection is None:
            return None
        with self.store.read() as conn:
            state = self._sync_state(conn, note_id, connection.id)
        if state is None:
            return None
        return f"{PAGE_URL_BASE}/{state.page_id.replace('-', '')}"

    def prune_orphaned_states(self) -> int:
        """Delete ledger rows whose note no longer exists."""
        with self.store.write() as conn:
            removed = delete_where(
                conn,
                NoteSyncState.table_name,
                "note_id NOT IN (SELECT id FROM notes)",
            )
        if removed:
            logger.debug("Pruned %d orphaned sync states", removed)
        return removed

    # Sync

    async def sync_all(self, progress: SyncProgressCallback | None = None) -> SyncReport:
        """
        Sweep every eligible note.

        Archived notes are included only when the connection says so. A
        note that fails is counted and described in the report; the sweep
        carries on with the next note.

        Args:
            progress: Optional (phase, current, total, note label) callback

        Returns:
            Created/updated/failed counts and error strings

        Raises:
            NotConnectedError: No connection is configured
            WorkspaceAPIError: The container itself could not be read
        """
        report_progress = progress or _noop_progress
        connection = self._require_connection()
        report = SyncReport()

        report_progress(SyncProgress("Preparing", 0, 0))
        self.prune_orphaned_states()

        with self.store.read() as conn:
            where = None if connection.sync_archived_notes else "archived = 0"
            notes = fetch_all(conn, Note, where, order_by="created_at")
        total = len(notes)
        report_progress(SyncProgress("Preparing", 0, total))

        async with self.client_factory(connection.access_token) as client:
            names = PropertyNames.from_container(await client.get_container(connection.container_id))

            for index, note in enumerate(notes):
                report_progress(SyncProgress("Syncing notes", index + 1, total, note.title))
                try:
                    action = await self._push(client, connection, names, note)
                except (WorkspaceError, sqlite3.Error, ValidationError) as e:
                    logger.warning("Failed to sync note %s: %s", note.id, e)
                    report.notes_failed += 1
                    report.errors.append(f"Failed to sync note: {e}")
                    continue

                if action == SyncAction.CREATED:
                    report.notes_created += 1
                elif action == SyncAction.UPDATED:
                    report.notes_updated += 1

        connection.last_sync_at = utc_now()
        with self.store.write() as conn:
            update(conn, connection)

        report_progress(SyncProgress("Complete", total, total))
        return report

    async def sync_note(self, note_id: str) -> SyncAction:
        """
        Push one note now, regardless of its stored hash.

        Raises:
            NotConnectedError: No connection is configured
            NoteNotFoundError: No note with that id
            WorkspaceError: The remote call failed
        """
        connection = self._require_connection()
        with self.store.read() as conn:
            note = fetch_one(conn, Note, note_id)
        if note is None:
            raise NoteNotFoundError(note_id)

        async with self.client_factory(connection.access_token) as client:
            names = PropertyNames.from_container(await client.get_container(connection.container_id))
            return await self._push(client, connection, names, note, force=True)

    async def _push(
        self,
        client: WorkspaceClient,
        connection: WorkspaceConnection,
        names: PropertyNames,
        note: Note,
        force: bool = False,
    ) -> SyncAction:
        with self.store.read() as conn:
            state = self._sync_state(conn, note.id, connection.id)
            contexts = fetch_all(
                conn,
                Context,
                "id IN (SELECT context_id FROM note_contexts WHERE note_id = ?)",
                (note.id,),
                order_by="name",
            )
            meetings = fetch_all(
                conn,
                Meeting,
                "id IN (SELECT meeting_id FROM note_meetings WHERE note_id = ?)",
                (note.id,),
                order_by="started_at",
            )

        meeting = meetings[0] if meetings else None
        sync_hash = NoteSyncState.compute_hash(note, meeting.id if meeting else None)
        if state is not None and not force and state.sync_hash == sync_hash:
            return SyncAction.UNCHANGED

        context_names = [context.name for context in contexts]
        blocks = markdown_to_blocks(note.content)

        if state is None:
            properties = build_page_properties(note, names, context_names, meeting, include_created=True)
            page = await client.create_page(connection.container_id, properties, blocks)
            with self.store.write() as conn:
                insert(
                    conn,
                    NoteSyncState(
                        note_id=note.id,
                        page_id=page.id,
                        connection_id=connection.id,
                        sync_hash=sync_hash,
                    ),
                )
            logger.debug("Created page %s for note %s", page.id, note.id)
            return SyncAction.CREATED

        properties = build_page_properties(note, names, context_names, meeting)
        await client.update_page_properties(state.page_id, properties)
        await client.replace_page_content(state.page_id, blocks)

        state.sync_hash = sync_hash
        state.last_synced_at = utc_now()
        with self.store.write() as conn:
            update(conn, state)
        logger.debug("Updated page %s for note %s", state.page_id, note.id)
        return SyncAction.UPDATED


__all__ = ["PAGE_URL_BASE", "TOKEN_PREFIXES", "ClientFactory", "SyncAction", "WorkspaceSyncService", "choose_container"]
