"""
Shared types for notesync.

The Note and Operation dataclasses are the contract between the local
store, the operation queue, the sync engine and the facade. Errors raised
across those layers live here too.
"""

import random
import string
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

# === Shared Utility Functions ===


def now_ms() -> int:
    """Get the current wall-clock time in milliseconds."""
    return int(time.time() * 1000)


def generate_client_id() -> str:
    """Generate a locally unique note identifier.

    Format: ``client_<ms>_<9 random base36 chars>``.
    """
    alphabet = string.ascii_lowercase + string.digits
    suffix = "".join(random.choices(alphabet, k=9))
    return f"client_{now_ms()}_{suffix}"


# === Enums ===


class OperationType(str, Enum):
    """Kinds of mutation that can be queued for the remote authority."""

    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"


VALID_OPERATION_TYPES = frozenset(t.value for t in OperationType)


class SyncState(str, Enum):
    """Final state reported by a sync run."""

    SYNCED = "synced"  # Queue fully drained
    PARTIAL = "partial"  # Stopped or skipped; remainder retried later
    OFFLINE = "offline"  # Engine offline, nothing attempted
    ALREADY_RUNNING = "already_running"  # Collapsed into the run in progress


# === Errors ===


class NoteNotFoundError(KeyError):
    """Raised when an update or delete targets a note absent from the store."""

    def __init__(self, client_id: str):
        super().__init__(client_id)
        self.client_id = client_id

    def __str__(self) -> str:
        return f"Note not found: {self.client_id}"


class RemoteError(Exception):
    """A remote authority call did not succeed.

    Covers transport failures, timeouts, non-success status codes and
    malformed responses alike. The sync engine treats all of them as
    "failed, retry later".
    """

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class RemoteNotFoundError(RemoteError):
    """The remote authority reported that the target note does not exist."""

    def __init__(self, server_id: Any):
        super().__init__(f"Remote note not found: {server_id}", status_code=404)
        self.server_id = server_id


# === Records ===


@dataclass
class Note:
    """A user note as held in the local store."""

    client_id: str
    content: str
    created: int
    updated: int
    server_id: Optional[int] = None
    # Derived on read: no queued operation references this note
    synced: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "clientId": self.client_id,
            "serverId": self.server_id,
            "content": self.content,
            "created": self.created,
            "updated": self.updated,
            "synced": self.synced,
        }


@dataclass
class Operation:
    """A queued mutation awaiting confirmation from the remote authority."""

    type: OperationType
    client_id: str
    server_id: Optional[int] = None
    content: Optional[str] = None
    created: Optional[int] = None
    updated: Optional[int] = None
    timestamp: Optional[int] = None
    id: Optional[int] = None  # Assigned by the queue on enqueue
    # Retry bookkeeping, informational only
    attempts: int = 0
    last_error: Optional[str] = None
    last_attempt_at: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "type": self.type.value,
            "clientId": self.client_id,
            "serverId": self.server_id,
            "content": self.content,
            "created": self.created,
            "updated": self.updated,
            "timestamp": self.timestamp,
            "attempts": self.attempts,
            "lastError": self.last_error,
        }


@dataclass
class SyncResult:
    """Result of one sync run."""

    state: SyncState = SyncState.SYNCED
    pushed: int = 0  # Operations confirmed and removed this run
    skipped: int = 0  # Operations left queued because no server id is known yet
    remaining: int = 0  # Queue length when the run ended
    errors: List[str] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return len(self.errors) == 0

    @property
    def fully_synced(self) -> bool:
        return self.state == SyncState.SYNCED

    def to_dict(self) -> Dict[str, Any]:
        return {
            "state": self.state.value,
            "pushed": self.pushed,
            "skipped": self.skipped,
            "remaining": self.remaining,
            "errors": list(self.errors),
            "success": self.success,
        }
