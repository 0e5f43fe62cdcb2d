"""Note operations for NoteSync."""

import logging
from typing import Any, Dict, List, Optional

from notesync.logging_config import log_note_change
from notesync.types import Note

logger = logging.getLogger(__name__)


class NotesMixin:
    """Create, edit, delete and read notes.

    Each mutation lands in the local store together with its queued
    operation, then arms the deferred sync when auto-sync is enabled.
    """

    def create_note(self, content: str) -> Note:
        content = self._validate_content(content)
        note = self._storage.add_note(content)
        log_note_change(self.device_id, "create", note.client_id)
        self._after_edit()
        return note

    def update_note(self, client_id: str, content: str) -> Note:
        """Replace a note's content.

        Raises:
            NoteNotFoundError: If the note does not exist locally.
        """
        client_id = self._validate_client_id(client_id)
        content = self._validate_content(content)
        note = self._storage.update_note(client_id, content)
        log_note_change(self.device_id, "update", client_id)
        self._after_edit()
        return note

    def delete_note(self, client_id: str) -> bool:
        """Delete a note locally; a remote delete is queued if it was synced.

        Returns:
            True if a remote delete was queued.

        Raises:
            NoteNotFoundError: If the note does not exist locally.
        """
        client_id = self._validate_client_id(client_id)
        operation = self._storage.delete_note(client_id)
        log_note_change(self.device_id, "delete", client_id)
        if operation is not None:
            self._after_edit()
        return operation is not None

    def get_note(self, client_id: str) -> Optional[Note]:
        return self._storage.get_note(client_id)

    def get_note_by_server_id(self, server_id: int) -> Optional[Note]:
        return self._storage.get_note_by_server_id(server_id)

    def list_notes(self) -> List[Note]:
        """All notes, most recently updated first."""
        return self._storage.list_notes()

    def export_notes(self) -> List[Dict[str, Any]]:
        return [note.to_dict() for note in self.list_notes()]
