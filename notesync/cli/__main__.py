"""
notesync CLI - Offline-first notes from the command line.

Usage:
    notesync add CONTENT
    notesync edit CLIENT_ID CONTENT
    notesync rm CLIENT_ID
    notesync list [--json]
    notesync show CLIENT_ID [--json]
    notesync sync [--json]
    notesync status [--json]
    notesync queue [--json]
    notesync queue clear --yes
"""

import argparse
import logging
import sys

from notesync import NoteSync
from notesync.cli.commands import (
    cmd_add,
    cmd_edit,
    cmd_list,
    cmd_queue,
    cmd_rm,
    cmd_show,
    cmd_status,
    cmd_sync,
)
from notesync.logging_config import setup_notesync_logging
from notesync.types import NoteNotFoundError

logger = logging.getLogger(__name__)

COMMANDS = {
    "add": cmd_add,
    "edit": cmd_edit,
    "rm": cmd_rm,
    "list": cmd_list,
    "show": cmd_show,
    "sync": cmd_sync,
    "status": cmd_status,
    "queue": cmd_queue,
}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="notesync",
        description="Offline-first notes with queued sync to a remote server",
    )
    parser.add_argument("--db", help="Path to the local SQLite database", default=None)
    parser.add_argument("--backend", help="Remote notes API base URL", default=None)
    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Log level for the notesync log file",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    # add
    p_add = subparsers.add_parser("add", help="Create a note")
    p_add.add_argument("content", help="Note content")

    # edit
    p_edit = subparsers.add_parser("edit", help="Replace a note's content")
    p_edit.add_argument("client_id", help="Note client ID")
    p_edit.add_argument("content", help="New content")

    # rm
    p_rm = subparsers.add_parser("rm", help="Delete a note")
    p_rm.add_argument("client_id", help="Note client ID")

    # list
    p_list = subparsers.add_parser("list", help="List notes")
    p_list.add_argument("--json", "-j", action="store_true")

    # show
    p_show = subparsers.add_parser("show", help="Show one note")
    p_show.add_argument("client_id", help="Note client ID")
    p_show.add_argument("--json", "-j", action="store_true")

    # sync
    p_sync = subparsers.add_parser("sync", help="Push queued changes to the remote")
    p_sync.add_argument("--json", "-j", action="store_true")

    # status
    p_status = subparsers.add_parser("status", help="Show sync status")
    p_status.add_argument("--json", "-j", action="store_true")

    # queue
    p_queue = subparsers.add_parser("queue", help="Show pending operations")
    p_queue.add_argument("--json", "-j", action="store_true")
    queue_sub = p_queue.add_subparsers(dest="queue_action")
    q_clear = queue_sub.add_parser("clear", help="Drop every pending operation")
    q_clear.add_argument("--yes", "-y", action="store_true", help="Confirm data loss")

    return parser


def build_notesync(args) -> NoteSync:
    # One-shot process: no deferred sync timers.
    return NoteSync(db_path=args.db, backend_url=args.backend, auto_sync=False)


def main(argv=None):
    parser = build_parser()
    args = parser.parse_args(argv)

    setup_notesync_logging(args.log_level)

    try:
        ns = build_notesync(args)
    except (ValueError, TypeError) as e:
        logger.error(f"Failed to initialize notesync: {e}")
        print(f"✗ {e}")
        sys.exit(1)

    try:
        COMMANDS[args.command](args, ns)
    except NoteNotFoundError as e:
        print(f"✗ {e}")
        sys.exit(1)
    except (ValueError, TypeError) as e:
        logger.error(f"Input validation error: {e}")
        print(f"✗ {e}")
        sys.exit(1)
    finally:
        ns.close()


if __name__ == "__main__":
    main()
