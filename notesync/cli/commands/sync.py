"""Sync commands for notesync CLI: push queued changes, show status and queue."""

import json
import logging
from typing import TYPE_CHECKING

from notesync.cli.commands.notes import format_timestamp
from notesync.types import SyncState

if TYPE_CHECKING:
    from notesync import NoteSync

logger = logging.getLogger(__name__)


def cmd_sync(args, ns: "NoteSync"):
    """Probe the remote, then replay the queue against it."""
    reachable = ns.check_connectivity()
    if not reachable:
        logger.info("Remote unreachable, sync will report offline")

    result = ns.sync()

    if args.json:
        print(json.dumps(result, indent=2))
        return

    state = result["state"]
    if state == SyncState.SYNCED.value:
        if result["pushed"]:
            print(f"✓ Pushed {result['pushed']} changes")
        else:
            print("✓ No pending changes to push")
    elif state == SyncState.OFFLINE.value:
        print(f"✗ Offline: {result['remaining']} changes queued")
    elif state == SyncState.ALREADY_RUNNING.value:
        print("⚠️  A sync is already running")
    else:
        print(f"⚠️  Pushed {result['pushed']} changes, {result['remaining']} remaining")
        if result["skipped"]:
            print(f"   Skipped {result['skipped']} changes waiting on a create")
        for error in result["errors"]:
            print(f"   ✗ {error}")


def cmd_status(args, ns: "NoteSync"):
    reachable = ns.check_connectivity()
    status = ns.get_sync_status()

    if args.json:
        print(json.dumps(status, indent=2, default=str))
        return

    print("Sync Status")
    print("=" * 50)
    conn_icon = "🟢" if reachable else "🔴"
    print(f"{conn_icon} Remote: {status['remote'] or '(not configured)'}")
    print(f"   Pending operations: {status['pending']}")
    print(f"   Last sync: {format_timestamp(status['last_sync_time'])}")
    if status["synced"]:
        print("✓ All changes synced")


def cmd_queue(args, ns: "NoteSync"):
    """Show or clear the pending operation queue."""
    if getattr(args, "queue_action", None) == "clear":
        if not args.yes:
            print("✗ Refusing to clear the queue without --yes (queued changes are lost)")
            raise SystemExit(1)
        removed = ns.clear_queue()
        print(f"✓ Cleared {removed} queued operations")
        return

    queue = ns.get_queue()
    if args.json:
        print(json.dumps(queue, indent=2))
        return

    if not queue:
        print("✓ Queue is empty")
        return

    for op in queue:
        server = op["serverId"] if op["serverId"] is not None else "-"
        line = f"#{op['id']:<5} {op['type']:<7} {op['clientId']}  server={server}"
        if op["attempts"]:
            line += f"  attempts={op['attempts']}"
        print(line)
        if op["lastError"]:
            print(f"       last error: {op['lastError']}")
