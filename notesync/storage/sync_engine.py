"""Sync engine for notesync.

SyncEngine drains the operation queue against the remote authority. It
receives the host SQLiteStorage for queue/note access and a RemoteClient
for the outbound calls.

Run semantics:
- Operations are applied strictly in queue order.
- The first failed remote call stops the run; that operation and every
  later one stay queued, untouched and in order.
- An update/delete whose note has no server id yet is skipped for this run.
- Only one run executes at a time; overlapping requests return
  ``SyncState.ALREADY_RUNNING`` without waiting.
"""

import logging
import sqlite3
import threading
from typing import TYPE_CHECKING, Optional

from notesync.logging_config import log_sync
from notesync.types import OperationType, RemoteError, SyncResult, SyncState

if TYPE_CHECKING:
    from .remote import RemoteClient
    from .sqlite import SQLiteStorage

logger = logging.getLogger(__name__)


class SyncEngine:
    """Drains the operation queue against the remote authority.

    Args:
        storage: The SQLiteStorage holding notes and the queue.
        remote: Client for the remote authority. Without one every run
            reports offline.
        device_id: Label used in the sync-events log.
        online: Initial connectivity state.
    """

    def __init__(
        self,
        storage: "SQLiteStorage",
        remote: Optional["RemoteClient"] = None,
        device_id: str = "default",
        online: bool = True,
    ):
        self._storage = storage
        self._remote = remote
        self.device_id = device_id
        self._online = online
        self._run_lock = threading.Lock()

    # === Connectivity ===

    @property
    def online(self) -> bool:
        return self._online

    def set_online(self, online: bool):
        """Consume a connectivity signal."""
        if online != self._online:
            logger.info(f"Connectivity changed: {'online' if online else 'offline'}")
        self._online = online

    def check_connectivity(self, timeout: float = 3.0) -> bool:
        """Probe the remote authority and update the online state."""
        if self._remote is None:
            self.set_online(False)
            return False
        health = self._remote.health_check(timeout=timeout)
        self.set_online(bool(health.get("healthy")))
        return self._online

    @property
    def is_running(self) -> bool:
        return self._run_lock.locked()

    # === Run ===

    def sync(self) -> SyncResult:
        """Run once if no other run is in progress."""
        if not self._run_lock.acquire(blocking=False):
            logger.debug("Sync already running, request collapsed into current run")
            return SyncResult(
                state=SyncState.ALREADY_RUNNING,
                remaining=self._storage.get_pending_count(),
            )
        try:
            result = self._run()
        finally:
            self._run_lock.release()

        log_sync(
            self.device_id,
            state=result.state.value,
            pushed=result.pushed,
            remaining=result.remaining,
            errors=len(result.errors),
        )
        return result

    def _run(self) -> SyncResult:
        result = SyncResult()

        if self._remote is None:
            logger.debug("No remote configured, skipping sync")
            result.state = SyncState.OFFLINE
            result.errors.append("No remote configured - changes queued")
            result.remaining = self._storage.get_pending_count()
            return result

        if not self._online:
            logger.info("Offline - sync skipped, changes queued")
            result.state = SyncState.OFFLINE
            result.errors.append("Offline - changes queued")
            result.remaining = self._storage.get_pending_count()
            return result

        snapshot = self._storage.get_operations()
        if not snapshot:
            logger.debug("Nothing to sync")
            self._storage.set_last_sync_time()
            return result

        logger.info(f"Syncing {len(snapshot)} queued operation(s)")

        for queued in snapshot:
            # Re-read: the op may have been cancelled, or had its server id
            # patched by a create earlier in this run
            op = self._storage.get_operation(queued.id)
            if op is None:
                logger.debug(f"Operation {queued.id} left the queue during sync, skipping")
                continue

            try:
                if op.type == OperationType.CREATE:
                    server_id = self._remote.create_note(op)
                    self._storage.complete_create(op, server_id)
                    logger.debug(f"Synced create {op.id}: {op.client_id} -> {server_id}")
                else:
                    if op.server_id is None:
                        result.skipped += 1
                        logger.info(
                            f"Skipping {op.type.value} {op.id} for {op.client_id}: "
                            f"no server id yet"
                        )
                        continue
                    self._remote.apply(op, op.server_id)
                    self._storage.complete_operation(op)
                    logger.debug(f"Synced {op.type.value} {op.id} (server id {op.server_id})")
                result.pushed += 1

            except RemoteError as e:
                attempts = self._storage.record_failure(op.id, str(e))
                logger.warning(
                    f"Failed to sync {op.type.value} {op.id} for {op.client_id}: {e} "
                    f"(attempt {attempts}); stopping run"
                )
                result.errors.append(f"Failed to sync {op.type.value} {op.client_id}: {e}")
                break

            except sqlite3.Error as e:
                logger.error(
                    f"Local store error while syncing {op.type.value} {op.id}: {e}",
                    exc_info=True,
                )
                result.errors.append(f"Local store error on {op.client_id}: {e}")
                break

            except Exception as e:
                error_msg = str(e)[:500]
                attempts = self._storage.record_failure(op.id, error_msg)
                logger.error(
                    f"Error syncing {op.type.value} {op.id} for {op.client_id}: {e} "
                    f"(attempt {attempts}); stopping run",
                    exc_info=True,
                )
                result.errors.append(f"Error syncing {op.type.value} {op.client_id}: {error_msg}")
                break

        result.remaining = self._storage.get_pending_count()
        if result.errors or result.skipped:
            result.state = SyncState.PARTIAL
        else:
            self._storage.set_last_sync_time()

        logger.info(
            f"Sync {result.state.value}: pushed={result.pushed}, "
            f"skipped={result.skipped}, remaining={result.remaining}"
        )
        return result
