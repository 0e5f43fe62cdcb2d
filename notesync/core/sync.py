"""Synchronization operations for NoteSync."""

import logging
from typing import Any, Dict, List

logger = logging.getLogger(__name__)


class SyncMixin:
    """Sync operations for NoteSync."""

    def sync(self) -> Dict[str, Any]:
        """Run the sync engine now.

        Returns:
            Sync results: state, pushed/skipped/remaining counts and errors.
        """
        return self._scheduler.request_sync().to_dict()

    def set_online(self, online: bool) -> None:
        """Feed the connectivity signal; going online starts a background run."""
        self._scheduler.set_online(online)

    def check_connectivity(self) -> bool:
        """Probe the remote authority and feed the result as a connectivity signal."""
        if self._remote is None:
            self._scheduler.set_online(False)
            return False
        healthy = bool(self._remote.health_check().get("healthy"))
        self._scheduler.set_online(healthy)
        return healthy

    def get_pending_count(self) -> int:
        return self._storage.get_pending_count()

    def get_sync_status(self) -> Dict[str, Any]:
        """Get current sync status.

        Returns:
            Pending count, connectivity, running flag and last sync time.
        """
        pending = self._storage.get_pending_count()
        return {
            "pending": pending,
            "synced": pending == 0,
            "online": self._engine.online,
            "running": self._engine.is_running,
            "remote": self._remote.backend_url if self._remote else None,
            "last_sync_time": self._storage.get_last_sync_time(),
        }

    def get_queue(self) -> List[Dict[str, Any]]:
        return [op.to_dict() for op in self._storage.get_operations()]

    def clear_queue(self) -> int:
        """Drop every pending operation. Queued changes will never reach the remote."""
        return self._storage.clear_queue()

    def _after_edit(self) -> None:
        if self._auto_sync:
            self._scheduler.notify_edit()
