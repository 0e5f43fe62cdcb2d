"""
notesync - Offline-first notes with a durable operation queue.

Notes are written locally first; a sync engine replays queued mutations
against the remote notes authority when connectivity allows.
"""

from .core import NoteSync
from .types import Note, NoteNotFoundError, Operation, OperationType, SyncResult, SyncState

try:
    from importlib.metadata import version

    __version__ = version("notesync")
except Exception:
    __version__ = "0.0.0"

__all__ = [
    "NoteSync",
    "Note",
    "NoteNotFoundError",
    "Operation",
    "OperationType",
    "SyncResult",
    "SyncState",
]
