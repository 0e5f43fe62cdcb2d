"""CLI command modules for notesync.

Each module contains related command handlers used by __main__.py.
"""

from notesync.cli.commands.notes import cmd_add, cmd_edit, cmd_list, cmd_rm, cmd_show
from notesync.cli.commands.sync import cmd_queue, cmd_status, cmd_sync

__all__ = [
    "cmd_add",
    "cmd_edit",
    "cmd_list",
    "cmd_queue",
    "cmd_rm",
    "cmd_show",
    "cmd_status",
    "cmd_sync",
]
