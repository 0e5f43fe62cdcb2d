"""Note row operations for the local store.

Every function takes an open connection so callers can combine a note write
and an operation-queue append in a single transaction.
"""

import logging
import sqlite3
from typing import List, Optional

from notesync.types import Note

logger = logging.getLogger(__name__)

# `pending` backs the derived `synced` flag
_NOTE_SELECT = """
    SELECT n.client_id, n.server_id, n.content, n.created, n.updated,
           (SELECT COUNT(*) FROM sync_queue q WHERE q.client_id = n.client_id) AS pending
    FROM notes n
"""


def row_to_note(row: sqlite3.Row) -> Note:
    """Convert a row selected with ``_NOTE_SELECT`` to a Note."""
    return Note(
        client_id=row["client_id"],
        server_id=row["server_id"],
        content=row["content"],
        created=row["created"],
        updated=row["updated"],
        synced=row["pending"] == 0,
    )


def insert_note(conn: sqlite3.Connection, note: Note) -> None:
    conn.execute(
        """INSERT INTO notes (client_id, server_id, content, created, updated)
           VALUES (?, ?, ?, ?, ?)""",
        (note.client_id, note.server_id, note.content, note.created, note.updated),
    )


def get_note(conn: sqlite3.Connection, client_id: str) -> Optional[Note]:
    row = conn.execute(f"{_NOTE_SELECT} WHERE n.client_id = ?", (client_id,)).fetchone()
    return row_to_note(row) if row else None


def get_note_by_server_id(conn: sqlite3.Connection, server_id: int) -> Optional[Note]:
    row = conn.execute(f"{_NOTE_SELECT} WHERE n.server_id = ?", (server_id,)).fetchone()
    return row_to_note(row) if row else None


def list_notes(conn: sqlite3.Connection) -> List[Note]:
    """All notes, most recently updated first."""
    rows = conn.execute(f"{_NOTE_SELECT} ORDER BY n.updated DESC, n.client_id").fetchall()
    return [row_to_note(row) for row in rows]


def update_note_content(
    conn: sqlite3.Connection, client_id: str, content: str, updated: int
) -> bool:
    cursor = conn.execute(
        "UPDATE notes SET content = ?, updated = ? WHERE client_id = ?",
        (content, updated, client_id),
    )
    return cursor.rowcount > 0


def delete_note_row(conn: sqlite3.Connection, client_id: str) -> bool:
    cursor = conn.execute("DELETE FROM notes WHERE client_id = ?", (client_id,))
    return cursor.rowcount > 0


def set_server_id(conn: sqlite3.Connection, client_id: str, server_id: int) -> bool:
    """Record the server id assigned to a note.

    A server id is written once; a note that already carries a different
    one keeps it.

    Returns:
        True if the note exists (whether or not it was changed).
    """
    row = conn.execute(
        "SELECT server_id FROM notes WHERE client_id = ?", (client_id,)
    ).fetchone()
    if row is None:
        return False

    current = row["server_id"]
    if current is None:
        conn.execute(
            "UPDATE notes SET server_id = ? WHERE client_id = ?", (server_id, client_id)
        )
    elif current != server_id:
        logger.warning(
            f"Note {client_id} already has server id {current}, ignoring {server_id}"
        )
    return True
