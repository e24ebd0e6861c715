"""
Row helpers shared by the export, import and sync components.

Bridge between SQLite rows and the Record models in
noot.core.store.models. Every helper takes an open connection from
Store.read() or Store.write() and never manages transactions itself.
"""

from __future__ import annotations

import logging
import sqlite3
from enum import Enum
from typing import Any, TypeVar

from .models import Record

logger = logging.getLogger(__name__)

R = TypeVar("R", bound=Record)


class InsertResult(str, Enum):
    """Outcome of insert_if_absent()."""

    INSERTED = "inserted"
    ALREADY_PRESENT = "already_present"
    FAILED = "failed"


def _key_clause(record_type: type[Record]) -> str:
    return " AND ".join(f"{column} = ?" for column in record_type.key_columns)


def fetch_all(
    conn: sqlite3.Connection,
    record_type: type[R],
    where: str | None = None,
    params: tuple[Any, ...] = (),
    order_by: str | None = None,
) -> list[R]:
    """
    Fetch rows of one table as models.

    Args:
        conn: SQLite connection
        record_type: Record subclass naming the table
        where: Optional SQL condition (without the WHERE keyword)
        params: Parameters for the condition
        order_by: Optional ORDER BY expression

    Returns:
        List of validated models

    Example:
        >>> fetch_all(conn, Note, "archived = ?", (False,), order_by="created_at")
    """
    query = f"SELECT * FROM {record_type.table_name}"
    if where:
        query += f" WHERE {where}"
    if order_by:
        query += f" ORDER BY {order_by}"
    rows = conn.execute(query, params).fetchall()
    return [record_type.model_validate(row) for row in rows]


def fetch_one(conn: sqlite3.Connection, record_type: type[R], *key: Any) -> R | None:
    """Fetch a single row by its key columns, or None."""
    row = conn.execute(
        f"SELECT * FROM {record_type.table_name} WHERE {_key_clause(record_type)}",
        key,
    ).fetchone()
    if row is None:
        return None
    return record_type.model_validate(row)


def exists(conn: sqlite3.Connection, record_type: type[Record], *key: Any) -> bool:
    row = conn.execute(
        f"SELECT 1 AS found FROM {record_type.table_name} WHERE {_key_clause(record_type)}",
        key,
    ).fetchone()
    return row is not None


def count(conn: sqlite3.Connection, table: str) -> int:
    row = conn.execute(f"SELECT COUNT(*) AS n FROM {table}").fetchone()
    return int(row["n"])


def insert(conn: sqlite3.Connection, record: Record) -> None:
    """
    Insert a record.

    Raises:
        sqlite3.IntegrityError: On duplicate key or broken foreign key
    """
    row = record.to_row()
    columns = list(row)
    placeholders = ", ".join("?" for _ in columns)
    conn.execute(
        f"INSERT INTO {record.table_name} ({', '.join(columns)}) VALUES ({placeholders})",
        tuple(row[c] for c in columns),
    )


def insert_if_absent(conn: sqlite3.Connection, record: Record) -> InsertResult:
    """
    Insert a record unless an equivalent row already exists.

    A row counts as present when its key matches, or when the insert trips a
    UNIQUE constraint (e.g. the same note pair linked under a different id).
    Any other failure, such as a dangling foreign key, is FAILED.

    Example:
        >>> insert_if_absent(conn, NoteContext(note_id=n.id, context_id=c.id))
        <InsertResult.INSERTED: 'inserted'>
    """
    if exists(conn, type(record), *record.key()):
        return InsertResult.ALREADY_PRESENT

    try:
        insert(conn, record)
    except sqlite3.IntegrityError as e:
        if "UNIQUE" in str(e) or "PRIMARY KEY" in str(e):
            return InsertResult.ALREADY_PRESENT
        logger.warning("Insert into %s failed for %s: %s", record.table_name, record.key(), e)
        return InsertResult.FAILED

    return InsertResult.INSERTED


def update(conn: sqlite3.Connection, record: Record) -> None:
    """Overwrite every non-key column of an existing row."""
    row = record.to_row()
    columns = [c for c in row if c not in record.key_columns]
    assignments = ", ".join(f"{c} = ?" for c in columns)
    conn.execute(
        f"UPDATE {record.table_name} SET {assignments} WHERE {_key_clause(type(record))}",
        tuple(row[c] for c in columns) + record.key(),
    )


def delete_all(conn: sqlite3.Connection, table: str) -> int:
    """Delete every row of *table*; returns the number of rows removed."""
    cursor = conn.execute(f"DELETE FROM {table}")
    return cursor.rowcount


def delete_where(conn: sqlite3.Connection, table: str, where: str, params: tuple[Any, ...] = ()) -> int:
    cursor = conn.execute(f"DELETE FROM {table} WHERE {where}", params)
    return cursor.rowcount
