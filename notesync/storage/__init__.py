"""notesync storage layer.

Local-first storage using SQLite: the note store, the operation queue,
the remote authority client and the sync engine that connects them.
"""

from notesync.types import (
    Note,
    NoteNotFoundError,
    Operation,
    OperationType,
    RemoteError,
    RemoteNotFoundError,
    SyncResult,
    SyncState,
)

from .remote import RemoteClient, resolve_backend_url
from .sqlite import SQLiteStorage
from .sync_engine import SyncEngine

__all__ = [
    "Note",
    "NoteNotFoundError",
    "Operation",
    "OperationType",
    "RemoteClient",
    "RemoteError",
    "RemoteNotFoundError",
    "SQLiteStorage",
    "SyncEngine",
    "SyncResult",
    "SyncState",
    "resolve_backend_url",
]
