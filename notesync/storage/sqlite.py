"""SQLite storage backend for notesync.

Local-first storage with:
- A notes table keyed by client id (secondary lookup by server id)
- An operation queue recording mutations for the remote authority
- Sync metadata (last successful sync time)

A note mutation and its queue append always commit in one transaction.
"""

import contextlib
import logging
import sqlite3
import tempfile
from pathlib import Path
from typing import Iterator, List, Optional

from notesync.core.validation import validate_content
from notesync.types import (
    Note,
    NoteNotFoundError,
    Operation,
    OperationType,
    generate_client_id,
    now_ms,
)
from notesync.utils import get_notesync_home

from . import notes_crud, sync_queue
from .schema import init_db

logger = logging.getLogger(__name__)


class SQLiteStorage:
    """SQLite-based local note store and operation queue.

    Args:
        db_path: Database file. Defaults to ``{home}/notes.db``.
        cancel_unsynced_on_delete: When a note that never reached the remote
            authority is deleted, drop its queued create/update operations
            instead of leaving them to resurrect the note remotely. Pass
            False to keep the legacy behavior.
    """

    def __init__(
        self,
        db_path: Optional[Path] = None,
        cancel_unsynced_on_delete: bool = True,
    ):
        self.db_path = self._resolve_db_path(db_path)
        self.cancel_unsynced_on_delete = cancel_unsynced_on_delete

        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._init_db()

    def _resolve_db_path(self, db_path: Optional[Path]) -> Path:
        """Resolve the database path, falling back to temp dir if home is not writable."""
        if db_path is not None:
            return Path(db_path).expanduser().resolve()

        default_path = get_notesync_home() / "notes.db"
        try:
            default_path.parent.mkdir(parents=True, exist_ok=True)
            return default_path.resolve()
        except OSError as e:
            fallback_dir = Path(tempfile.gettempdir()) / ".notesync"
            logger.warning(
                f"Cannot write to {default_path.parent} ({e}), falling back to {fallback_dir}"
            )
            return (fallback_dir / "notes.db").resolve()

    def _get_conn(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self.db_path)
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA journal_mode=WAL")
        conn.execute("PRAGMA busy_timeout=5000")
        return conn

    @contextlib.contextmanager
    def _connect(self) -> Iterator[sqlite3.Connection]:
        """Context manager that handles transactions AND closes connection.

        - Transaction commit on success
        - Transaction rollback on exception
        - Connection close in all cases
        """
        conn = self._get_conn()
        try:
            yield conn
            conn.commit()
        except Exception as e:
            logger.debug(f"Transaction failed, rolling back: {e}")
            conn.rollback()
            raise
        finally:
            conn.close()

    @contextlib.contextmanager
    def _transaction(self) -> Iterator[sqlite3.Connection]:
        """Like ``_connect`` but takes the write lock up front so reads made
        inside the block see the state the writes are based on."""
        with self._connect() as conn:
            conn.execute("BEGIN IMMEDIATE")
            yield conn

    def _init_db(self):
        with self._connect() as conn:
            init_db(conn, self.db_path)

    def close(self):
        """Close any resources.

        Connections are per-operation, so there is nothing persistent to close.
        """
        pass

    # === Notes ===

    def add_note(self, content: str, client_id: Optional[str] = None) -> Note:
        """Create a note and queue its ``create`` operation atomically."""
        content = validate_content(content)
        now = now_ms()
        note = Note(
            client_id=client_id or generate_client_id(),
            content=content,
            created=now,
            updated=now,
        )
        operation = Operation(
            type=OperationType.CREATE,
            client_id=note.client_id,
            content=content,
            created=note.created,
            updated=note.updated,
            timestamp=now,
        )

        with self._transaction() as conn:
            notes_crud.insert_note(conn, note)
            sync_queue.enqueue(conn, operation, now)

        logger.debug(f"Created note {note.client_id} (queue op {operation.id})")
        return note

    def update_note(self, client_id: str, content: str) -> Note:
        """Change a note's content and queue an ``update`` operation atomically.

        Raises:
            NoteNotFoundError: If no note has this client id.
            ValueError: If the content is empty.
        """
        content = validate_content(content)
        now = now_ms()

        with self._transaction() as conn:
            existing = notes_crud.get_note(conn, client_id)
            if existing is None:
                raise NoteNotFoundError(client_id)

            notes_crud.update_note_content(conn, client_id, content, now)
            sync_queue.enqueue(
                conn,
                Operation(
                    type=OperationType.UPDATE,
                    client_id=client_id,
                    server_id=existing.server_id,
                    content=content,
                    updated=now,
                    timestamp=now,
                ),
                now,
            )
            note = notes_crud.get_note(conn, client_id)

        logger.debug(f"Updated note {client_id}")
        return note

    def delete_note(self, client_id: str) -> Optional[Operation]:
        """Remove a note locally and queue a remote delete when needed.

        A ``delete`` operation is queued only when the note already has a
        server id. For a never-synced note its pending operations are
        cancelled instead (see ``cancel_unsynced_on_delete``).

        Returns:
            The queued delete operation, or None if none was needed.

        Raises:
            NoteNotFoundError: If no note has this client id.
        """
        now = now_ms()
        operation = None

        with self._transaction() as conn:
            existing = notes_crud.get_note(conn, client_id)
            if existing is None:
                raise NoteNotFoundError(client_id)

            notes_crud.delete_note_row(conn, client_id)

            if existing.server_id is not None:
                operation = Operation(
                    type=OperationType.DELETE,
                    client_id=client_id,
                    server_id=existing.server_id,
                    timestamp=now,
                )
                sync_queue.enqueue(conn, operation, now)
            elif self.cancel_unsynced_on_delete:
                cancelled = sync_queue.remove_for_client(conn, client_id)
                if cancelled:
                    logger.debug(
                        f"Cancelled {cancelled} queued operation(s) for unsynced note {client_id}"
                    )

        logger.debug(f"Deleted note {client_id}")
        return operation

    def get_note(self, client_id: str) -> Optional[Note]:
        with self._connect() as conn:
            return notes_crud.get_note(conn, client_id)

    def get_note_by_server_id(self, server_id: int) -> Optional[Note]:
        with self._connect() as conn:
            return notes_crud.get_note_by_server_id(conn, server_id)

    def list_notes(self) -> List[Note]:
        with self._connect() as conn:
            return notes_crud.list_notes(conn)

    # === Operation Queue ===

    def enqueue_operation(self, operation: Operation) -> int:
        """Append an operation on its own.

        Note mutations enqueue through ``add_note``/``update_note``/
        ``delete_note``; this is for replaying or repairing the queue.
        """
        with self._transaction() as conn:
            return sync_queue.enqueue(conn, operation, now_ms())

    def get_operations(self, client_id: Optional[str] = None) -> List[Operation]:
        """Pending operations in ascending id order."""
        with self._connect() as conn:
            return sync_queue.list_operations(conn, client_id)

    def get_operation(self, op_id: int) -> Optional[Operation]:
        with self._connect() as conn:
            return sync_queue.get_operation(conn, op_id)

    def remove_operation(self, op_id: int) -> bool:
        with self._transaction() as conn:
            return sync_queue.remove_operation(conn, op_id)

    def clear_queue(self) -> int:
        with self._transaction() as conn:
            removed = sync_queue.clear_queue(conn)
        logger.info(f"Cleared {removed} queued operation(s)")
        return removed

    def get_pending_count(self) -> int:
        with self._connect() as conn:
            return sync_queue.count_operations(conn)

    def record_failure(self, op_id: int, error: str) -> int:
        """Record a failed remote attempt on a queued operation."""
        with self._transaction() as conn:
            return sync_queue.record_failure(conn, op_id, error, now_ms())

    # === Remote confirmations ===

    def complete_create(self, operation: Operation, server_id: int) -> bool:
        """Apply a confirmed remote create in one transaction.

        Writes the server id to the note, patches it into the note's other
        queued operations and removes the create from the queue. If the note
        was deleted locally while the create was in flight, a delete for the
        new server id is queued so the remote copy does not linger.

        Returns:
            True if the note still exists locally.
        """
        now = now_ms()
        with self._transaction() as conn:
            sync_queue.remove_operation(conn, operation.id)
            exists = notes_crud.set_server_id(conn, operation.client_id, server_id)
            if exists:
                sync_queue.assign_server_id(conn, operation.client_id, server_id)
            elif self.cancel_unsynced_on_delete:
                sync_queue.enqueue(
                    conn,
                    Operation(
                        type=OperationType.DELETE,
                        client_id=operation.client_id,
                        server_id=server_id,
                        timestamp=now,
                    ),
                    now,
                )
                logger.info(
                    f"Note {operation.client_id} was deleted during sync, "
                    f"queued remote delete for server id {server_id}"
                )
        return exists

    def complete_operation(self, operation: Operation) -> bool:
        """Remove a confirmed update/delete from the queue."""
        return self.remove_operation(operation.id)

    # === Sync metadata ===

    def _get_sync_meta(self, key: str) -> Optional[str]:
        with self._connect() as conn:
            row = conn.execute("SELECT value FROM sync_meta WHERE key = ?", (key,)).fetchone()
        return row["value"] if row else None

    def _set_sync_meta(self, key: str, value: str):
        with self._connect() as conn:
            conn.execute(
                "INSERT OR REPLACE INTO sync_meta (key, value, updated_at) VALUES (?, ?, ?)",
                (key, value, now_ms()),
            )

    def get_last_sync_time(self) -> Optional[int]:
        """Epoch ms of the last run that drained the queue, if any."""
        value = self._get_sync_meta("last_sync_time")
        return int(value) if value else None

    def set_last_sync_time(self, when: Optional[int] = None):
        self._set_sync_meta("last_sync_time", str(when if when is not None else now_ms()))
