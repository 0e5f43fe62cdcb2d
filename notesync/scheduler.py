"""Trigger sources for the sync engine.

SyncScheduler turns external events into sync runs:

* a connectivity transition to online starts a background run,
* a local edit while online arms a short deferred run (re-armed per edit),
* ``request_sync()`` runs immediately in the caller's thread,
* an optional periodic thread runs every ``interval_seconds``.

Triggers may coincide; the engine's run lock collapses them into one run.
"""

import logging
import threading
from typing import Callable, List, Optional, Set

from notesync.storage.sync_engine import SyncEngine
from notesync.types import SyncResult, SyncState
from notesync.utils import get_sync_debounce

logger = logging.getLogger(__name__)


class SyncScheduler:
    """Decides when the sync engine runs.

    Args:
        engine: The SyncEngine to drive.
        debounce_seconds: Delay of the deferred run after a local edit.
            Defaults to ``NOTESYNC_SYNC_DEBOUNCE`` (2s).
        interval_seconds: Period of the background run; None disables it.
    """

    def __init__(
        self,
        engine: SyncEngine,
        debounce_seconds: Optional[float] = None,
        interval_seconds: Optional[float] = None,
    ):
        self._engine = engine
        self._debounce = debounce_seconds if debounce_seconds is not None else get_sync_debounce()
        self._interval = interval_seconds

        self._lock = threading.Lock()
        self._deferred: Optional[threading.Timer] = None
        self._periodic: Optional[threading.Thread] = None
        self._workers: Set[threading.Thread] = set()
        self._stop = threading.Event()

        self._connectivity_callbacks: List[Callable[[bool], None]] = []
        self._result_callbacks: List[Callable[[SyncResult], None]] = []
        self.last_result: Optional[SyncResult] = None

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def start(self) -> None:
        """Start the periodic thread, if an interval is configured."""
        if self._interval is None or self._periodic is not None:
            return
        self._stop.clear()
        self._periodic = threading.Thread(
            target=self._periodic_loop, daemon=True, name="notesync-periodic-sync"
        )
        self._periodic.start()
        logger.info("SyncScheduler started (interval=%.0fs)", self._interval)

    def stop(self) -> None:
        """Stop all triggers and wait for runs they already started.

        After this returns no scheduler thread is inside the engine, so the
        remote and the store can be closed safely.
        """
        self._stop.set()
        with self._lock:
            deferred = self._deferred
            self._deferred = None
            workers = list(self._workers)
        if deferred is not None:
            deferred.cancel()
            workers.append(deferred)
        if self._periodic is not None:
            workers.append(self._periodic)
            self._periodic = None

        current = threading.current_thread()
        for thread in workers:
            # A result callback may stop the scheduler from inside a run
            if thread is not current:
                thread.join()

    # ------------------------------------------------------------------
    # Callbacks
    # ------------------------------------------------------------------

    def on_connectivity_change(self, callback: Callable[[bool], None]) -> None:
        """Register a callback fired on online/offline transitions."""
        self._connectivity_callbacks.append(callback)

    def on_sync_complete(self, callback: Callable[[SyncResult], None]) -> None:
        """Register a callback fired after every triggered run."""
        self._result_callbacks.append(callback)

    # ------------------------------------------------------------------
    # Triggers
    # ------------------------------------------------------------------

    def set_online(self, online: bool) -> None:
        """Consume the connectivity signal."""
        was_online = self._engine.online
        self._engine.set_online(online)
        if online == was_online:
            return

        for cb in self._connectivity_callbacks:
            try:
                cb(online)
            except Exception as exc:
                logger.warning("Connectivity callback failed: %s", exc)

        if online:
            self._run_in_background("connectivity")
        else:
            self._cancel_deferred()

    def notify_edit(self) -> None:
        """Arm (or re-arm) the deferred run that follows a local edit."""
        if not self._engine.online or self._stop.is_set():
            return
        with self._lock:
            if self._stop.is_set():
                return
            self._retire_deferred()
            self._deferred = threading.Timer(self._debounce, self._trigger, args=("edit",))
            self._deferred.daemon = True
            self._deferred.start()

    def request_sync(self) -> SyncResult:
        """Run now, in the caller's thread."""
        return self._trigger("manual")

    @property
    def has_pending_trigger(self) -> bool:
        with self._lock:
            return self._deferred is not None and self._deferred.is_alive()

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _cancel_deferred(self) -> None:
        with self._lock:
            self._retire_deferred()
            self._deferred = None

    def _retire_deferred(self) -> None:
        # Caller holds _lock. A timer that already fired keeps running until
        # its run ends, so it stays tracked for stop() to join.
        if self._deferred is None:
            return
        self._deferred.cancel()
        self._workers = {t for t in self._workers if t.is_alive()}
        if self._deferred.is_alive():
            self._workers.add(self._deferred)

    def _run_in_background(self, reason: str) -> Optional[threading.Thread]:
        thread = threading.Thread(
            target=self._background_run, args=(reason,), daemon=True, name=f"notesync-sync-{reason}"
        )
        with self._lock:
            # Checked under the lock so stop() either sees this thread or we see stop
            if self._stop.is_set():
                return None
            self._workers.add(thread)
            thread.start()
        return thread

    def _background_run(self, reason: str) -> None:
        try:
            self._trigger(reason)
        finally:
            with self._lock:
                self._workers.discard(threading.current_thread())

    def _periodic_loop(self) -> None:
        while not self._stop.wait(self._interval):
            if self._engine.online:
                self._trigger("periodic")

    def _trigger(self, reason: str) -> SyncResult:
        logger.debug(f"Sync triggered by {reason}")
        try:
            result = self._engine.sync()
        except Exception as exc:
            # Runs are never fatal; the queue is intact for the next trigger
            logger.error(f"Sync run triggered by {reason} failed: {exc}", exc_info=True)
            result = SyncResult(state=SyncState.PARTIAL, errors=[str(exc)])

        if result.state != SyncState.ALREADY_RUNNING:
            self.last_result = result
        for cb in self._result_callbacks:
            try:
                cb(result)
            except Exception as exc:
                logger.warning("Sync result callback failed: %s", exc)
        return result
