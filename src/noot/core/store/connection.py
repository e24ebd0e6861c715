"""
Store connection management.

All store access goes through Store.read() and Store.write():

- read(): shared access; any number of readers may hold it at once
- write(): exclusive access; one writer, no concurrent readers, and the
  whole block runs in a single transaction that commits on success and
  rolls back on any exception

Each scope opens its own SQLite connection (WAL mode, foreign keys on, dict
rows) and closes it on exit, including error paths.

Usage:
    from noot.core.store import Store

    store = Store.open(Path("~/.local/share/noot/noot.db").expanduser())

    with store.read() as conn:
        rows = conn.execute("SELECT * FROM notes").fetchall()

    with store.write() as conn:
        conn.execute("DELETE FROM note_links")
"""

from __future__ import annotations

import logging
import sqlite3
import threading
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import Any

from .exceptions import StoreError
from .schema import create_schema, needs_migration

logger = logging.getLogger(__name__)


def dict_factory(cursor: sqlite3.Cursor, row: tuple[Any, ...]) -> dict[str, Any]:
    """Row factory that returns rows as dictionaries keyed by column name."""
    fields = [column[0] for column in cursor.description]
    return dict(zip(fields, row))


def configure_connection(conn: sqlite3.Connection) -> None:
    """
    Configure a SQLite connection.

    Settings applied:
    - WAL mode: readers do not block the writer at the file level
    - Foreign keys: enforce referential integrity and ON DELETE CASCADE
    - dict_factory: dict-like row access
    """
    conn.execute("PRAGMA journal_mode=WAL")
    conn.execute("PRAGMA foreign_keys=ON")
    conn.row_factory = dict_factory


class ReadWriteLock:
    """
    Process-local readers-writer lock.

    Writers are preferred: once a writer is waiting, new readers queue
    behind it so a steady stream of reads cannot starve a write.
    Not reentrant; do not open write() inside read() on the same thread.
    """

    def __init__(self) -> None:
        self._cond = threading.Condition(threading.Lock())
        self._readers = 0
        self._writer = False
        self._writers_waiting = 0

    def acquire_read(self) -> None:
        with self._cond:
            while self._writer or self._writers_waiting:
                self._cond.wait()
            self._readers += 1

    def release_read(self) -> None:
        with self._cond:
            self._readers -= 1
            if self._readers == 0:
                self._cond.notify_all()

    def acquire_write(self) -> None:
        with self._cond:
            self._writers_waiting += 1
            try:
                while self._writer or self._readers:
                    self._cond.wait()
            finally:
                self._writers_waiting -= 1
            self._writer = True

    def release_write(self) -> None:
        with self._cond:
            self._writer = False
            self._cond.notify_all()


class Store:
    """
    Handle on the local SQLite store.

    Built once at process start and passed to the export, import and sync
    components; owns the lock that serializes their access.
    """

    def __init__(self, db_path: Path | str) -> None:
        self.db_path = Path(db_path)
        self._lock = ReadWriteLock()

    @classmethod
    def open(cls, db_path: Path | str) -> Store:
        """Create the database if needed, apply the schema and return a Store."""
        store = cls(db_path)
        store.init_schema()
        return store

    def init_schema(self) -> None:
        """Create or migrate the schema. Idempotent."""
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        conn = self._connect()
        try:
            if needs_migration(conn):
                logger.debug("Applying store schema to %s", self.db_path)
                create_schema(conn)
        finally:
            conn.close()

    def _connect(self) -> sqlite3.Connection:
        try:
            # Autocommit mode; write() issues BEGIN/COMMIT itself
            conn = sqlite3.connect(str(self.db_path), isolation_level=None)
        except sqlite3.Error as e:
            raise StoreError(f"Cannot open store at {self.db_path}: {e}", path=str(self.db_path)) from e
        configure_connection(conn)
        return conn

    @contextmanager
    def read(self) -> Iterator[sqlite3.Connection]:
        """Shared, read-only access to the store."""
        self._lock.acquire_read()
        try:
            conn = self._connect()
            try:
                yield conn
            finally:
                conn.close()
        finally:
            self._lock.release_read()

    @contextmanager
    def write(self) -> Iterator[sqlite3.Connection]:
        """
        Exclusive access inside one transaction.

        Commits when the block exits normally; rolls back and re-raises if
        it raises.
        """
        self._lock.acquire_write()
        try:
            conn = self._connect()
            try:
                conn.execute("BEGIN IMMEDIATE")
                try:
                    yield conn
                except BaseException:
                    conn.execute("ROLLBACK")
                    raise
                conn.execute("COMMIT")
            finally:
                conn.close()
        finally:
            self._lock.release_write()
