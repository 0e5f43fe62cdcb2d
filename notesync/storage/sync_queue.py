"""Operation queue persistence.

The queue is an append-only log in the ``sync_queue`` table; the
autoincrement id gives FIFO order. Functions take an open connection so a
queue change can share a transaction with the note it belongs to.
"""

import logging
import sqlite3
from typing import List, Optional

from notesync.types import Operation, OperationType

logger = logging.getLogger(__name__)

_OPERATION_COLUMNS = """id, type, client_id, server_id, content, created, updated,
                        timestamp, COALESCE(attempts, 0) AS attempts,
                        last_error, last_attempt_at"""


def row_to_operation(row: sqlite3.Row) -> Operation:
    return Operation(
        id=row["id"],
        type=OperationType(row["type"]),
        client_id=row["client_id"],
        server_id=row["server_id"],
        content=row["content"],
        created=row["created"],
        updated=row["updated"],
        timestamp=row["timestamp"],
        attempts=row["attempts"] or 0,
        last_error=row["last_error"],
        last_attempt_at=row["last_attempt_at"],
    )


def enqueue(conn: sqlite3.Connection, operation: Operation, now: int) -> int:
    """Append an operation and return its queue id.

    Sets ``operation.id`` and fills ``operation.timestamp`` when missing.
    """
    if operation.timestamp is None:
        operation.timestamp = now
    cursor = conn.execute(
        """INSERT INTO sync_queue
           (type, client_id, server_id, content, created, updated, timestamp, attempts)
           VALUES (?, ?, ?, ?, ?, ?, ?, 0)""",
        (
            operation.type.value,
            operation.client_id,
            operation.server_id,
            operation.content,
            operation.created,
            operation.updated,
            operation.timestamp,
        ),
    )
    operation.id = cursor.lastrowid
    return operation.id


def list_operations(
    conn: sqlite3.Connection, client_id: Optional[str] = None
) -> List[Operation]:
    """Pending operations in ascending id order, optionally for one note."""
    if client_id is None:
        rows = conn.execute(f"SELECT {_OPERATION_COLUMNS} FROM sync_queue ORDER BY id").fetchall()
    else:
        rows = conn.execute(
            f"SELECT {_OPERATION_COLUMNS} FROM sync_queue WHERE client_id = ? ORDER BY id",
            (client_id,),
        ).fetchall()
    return [row_to_operation(row) for row in rows]


def get_operation(conn: sqlite3.Connection, op_id: int) -> Optional[Operation]:
    row = conn.execute(
        f"SELECT {_OPERATION_COLUMNS} FROM sync_queue WHERE id = ?", (op_id,)
    ).fetchone()
    return row_to_operation(row) if row else None


def remove_operation(conn: sqlite3.Connection, op_id: int) -> bool:
    cursor = conn.execute("DELETE FROM sync_queue WHERE id = ?", (op_id,))
    return cursor.rowcount > 0


def remove_for_client(conn: sqlite3.Connection, client_id: str) -> int:
    """Drop every pending operation for a note. Returns the number removed."""
    cursor = conn.execute("DELETE FROM sync_queue WHERE client_id = ?", (client_id,))
    return cursor.rowcount


def clear_queue(conn: sqlite3.Connection) -> int:
    cursor = conn.execute("DELETE FROM sync_queue")
    return cursor.rowcount


def count_operations(conn: sqlite3.Connection) -> int:
    return conn.execute("SELECT COUNT(*) FROM sync_queue").fetchone()[0]


def assign_server_id(conn: sqlite3.Connection, client_id: str, server_id: int) -> int:
    """Fill in the server id on queued operations that were enqueued before
    the note's create round-tripped. Returns the number of rows patched."""
    cursor = conn.execute(
        "UPDATE sync_queue SET server_id = ? WHERE client_id = ? AND server_id IS NULL",
        (server_id, client_id),
    )
    return cursor.rowcount


def record_failure(conn: sqlite3.Connection, op_id: int, error: str, now: int) -> int:
    """Record a failed attempt and return the new attempt count."""
    conn.execute(
        """UPDATE sync_queue
           SET attempts = COALESCE(attempts, 0) + 1,
               last_error = ?,
               last_attempt_at = ?
           WHERE id = ?""",
        (error[:500], now, op_id),
    )
    row = conn.execute("SELECT attempts FROM sync_queue WHERE id = ?", (op_id,)).fetchone()
    return row["attempts"] if row else 0
