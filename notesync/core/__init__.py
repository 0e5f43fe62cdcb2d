"""notesync core: the NoteSync facade and its operation mixins."""

from notesync.core.notesync_class import NoteSync

__all__ = ["NoteSync"]
