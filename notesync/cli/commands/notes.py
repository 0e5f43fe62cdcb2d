"""Note commands for notesync CLI (add, edit, rm, list, show)."""

import json
from datetime import datetime
from typing import TYPE_CHECKING

from notesync.types import Note, NoteNotFoundError

if TYPE_CHECKING:
    from notesync import NoteSync


def format_timestamp(ms) -> str:
    if ms is None:
        return "never"
    return datetime.fromtimestamp(ms / 1000).strftime("%Y-%m-%d %H:%M:%S")


def _preview(content: str, width: int = 60) -> str:
    first_line = content.splitlines()[0] if content else ""
    if len(first_line) > width or "\n" in content:
        return first_line[: width - 3] + "..."
    return first_line


def _sync_marker(note: Note) -> str:
    return "✓" if note.synced else "○"


def cmd_add(args, ns: "NoteSync"):
    note = ns.create_note(args.content)
    print(f"✓ Note saved: {note.client_id}")


def cmd_edit(args, ns: "NoteSync"):
    note = ns.update_note(args.client_id, args.content)
    print(f"✓ Note updated: {note.client_id}")


def cmd_rm(args, ns: "NoteSync"):
    queued = ns.delete_note(args.client_id)
    if queued:
        print(f"✓ Note deleted: {args.client_id} (remote delete queued)")
    else:
        print(f"✓ Note deleted: {args.client_id}")


def cmd_list(args, ns: "NoteSync"):
    """List notes, most recently updated first."""
    notes = ns.list_notes()

    if args.json:
        print(json.dumps([n.to_dict() for n in notes], indent=2))
        return

    if not notes:
        print("No notes yet.")
        return

    for note in notes:
        print(
            f"{_sync_marker(note)} {note.client_id}  "
            f"{format_timestamp(note.updated)}  {_preview(note.content)}"
        )
    pending = sum(1 for n in notes if not n.synced)
    print()
    print(f"{len(notes)} notes, {pending} pending sync")


def cmd_show(args, ns: "NoteSync"):
    note = ns.get_note(args.client_id)
    if note is None:
        raise NoteNotFoundError(args.client_id)

    if args.json:
        print(json.dumps(note.to_dict(), indent=2))
        return

    print(f"Note {note.client_id}")
    print("=" * 50)
    print(f"Server ID: {note.server_id if note.server_id is not None else '(not synced)'}")
    print(f"Created:   {format_timestamp(note.created)}")
    print(f"Updated:   {format_timestamp(note.updated)}")
    print(f"Synced:    {'yes' if note.synced else 'no'}")
    print()
    print(note.content)
