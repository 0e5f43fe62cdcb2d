"""NoteSync class, the main interface for offline-first notes.

This module defines the NoteSync class, which wires the local store, the
remote client, the sync engine and its scheduler together and inherits the
user-facing operations from the mixins.
"""

import logging
import os
from pathlib import Path
from typing import Optional

from notesync.core.notes import NotesMixin
from notesync.core.sync import SyncMixin
from notesync.core.validation import ValidationMixin
from notesync.scheduler import SyncScheduler
from notesync.storage import RemoteClient, SQLiteStorage, SyncEngine
from notesync.utils import parse_bool_env

logger = logging.getLogger(__name__)


class NoteSync(NotesMixin, SyncMixin, ValidationMixin):
    """Main interface for notesync.

    Examples:
        ns = NoteSync()
        note = ns.create_note("Buy milk")
        ns.sync()

        # Explicit components (tests, embedding)
        ns = NoteSync(storage=SQLiteStorage(db_path=path), remote=RemoteClient(url))
    """

    def __init__(
        self,
        device_id: Optional[str] = None,
        storage: Optional[SQLiteStorage] = None,
        remote: Optional[RemoteClient] = None,
        db_path: Optional[Path] = None,
        backend_url: Optional[str] = None,
        online: bool = True,
        auto_sync: Optional[bool] = None,
        debounce_seconds: Optional[float] = None,
        interval_seconds: Optional[float] = None,
    ):
        """Initialize NoteSync.

        Args:
            device_id: Label for this device in the sync-events log.
            storage: Optional storage backend. Defaults to SQLite at ``db_path``.
            remote: Optional remote client. Defaults to one built from
                ``backend_url`` / environment / config.
            online: Initial connectivity state.
            auto_sync: Arm a deferred sync after each local edit. Defaults to
                ``NOTESYNC_AUTO_SYNC``, else True.
            debounce_seconds: Delay of that deferred sync.
            interval_seconds: Optional periodic sync interval.
        """
        self.device_id = self._validate_device_id(
            device_id or os.environ.get("NOTESYNC_DEVICE_ID", "default")
        )
        self._storage = storage if storage is not None else SQLiteStorage(db_path=db_path)
        self._remote = remote if remote is not None else RemoteClient(backend_url)

        self._engine = SyncEngine(
            self._storage, self._remote, device_id=self.device_id, online=online
        )
        self._scheduler = SyncScheduler(
            self._engine,
            debounce_seconds=debounce_seconds,
            interval_seconds=interval_seconds,
        )

        env_auto_sync = parse_bool_env("NOTESYNC_AUTO_SYNC")
        if auto_sync is not None:
            self._auto_sync = auto_sync
        elif env_auto_sync is not None:
            self._auto_sync = env_auto_sync
        else:
            self._auto_sync = True

        self._scheduler.start()

        logger.debug(
            f"NoteSync initialized with storage: {type(self._storage).__name__}, "
            f"remote: {self._remote.backend_url}, auto_sync: {self._auto_sync}"
        )

    @property
    def storage(self) -> SQLiteStorage:
        return self._storage

    @property
    def engine(self) -> SyncEngine:
        return self._engine

    @property
    def scheduler(self) -> SyncScheduler:
        return self._scheduler

    def close(self):
        self._scheduler.stop()
        self._remote.close()
        self._storage.close()

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.close()
