"""Tests for the NoteSync facade."""

import threading

import pytest

from notesync import NoteSync, NoteNotFoundError
from notesync.storage import RemoteClient, SQLiteStorage


@pytest.fixture
def notesync(storage, remote):
    ns = NoteSync(device_id="laptop", storage=storage, remote=remote, auto_sync=False)
    yield ns
    ns.close()


class TestInitialization:
    def test_defaults(self, notesync_home):
        ns = NoteSync()
        try:
            assert ns.device_id == "default"
            assert isinstance(ns.storage, SQLiteStorage)
            assert ns.storage.db_path == (notesync_home / "notes.db").resolve()
            assert ns.get_sync_status()["remote"] == "http://localhost:3000/api"
            assert ns._auto_sync is True
        finally:
            ns.close()

    def test_device_id_from_environment(self, monkeypatch, storage, remote):
        monkeypatch.setenv("NOTESYNC_DEVICE_ID", "phone")
        ns = NoteSync(storage=storage, remote=remote)
        assert ns.device_id == "phone"
        ns.close()

    def test_invalid_device_id(self, storage, remote):
        with pytest.raises(ValueError):
            NoteSync(device_id="../etc", storage=storage, remote=remote)

    def test_invalid_backend_url(self, storage):
        with pytest.raises(ValueError, match="Invalid backend URL"):
            NoteSync(storage=storage, backend_url="http://notes.example.com/api")

    def test_auto_sync_from_environment(self, monkeypatch, storage, remote):
        monkeypatch.setenv("NOTESYNC_AUTO_SYNC", "false")
        ns = NoteSync(storage=storage, remote=remote)
        assert ns._auto_sync is False
        ns.close()

    def test_explicit_auto_sync_wins(self, monkeypatch, storage, remote):
        monkeypatch.setenv("NOTESYNC_AUTO_SYNC", "false")
        ns = NoteSync(storage=storage, remote=remote, auto_sync=True)
        assert ns._auto_sync is True
        ns.close()

    def test_context_manager_closes(self, storage, remote):
        with NoteSync(storage=storage, remote=remote, auto_sync=False) as ns:
            ns.create_note("x")
        assert ns.get_pending_count() == 1


class TestNotes:
    def test_create_note(self, notesync):
        note = notesync.create_note("  Buy milk  ")
        assert note.content == "Buy milk"
        assert notesync.get_note(note.client_id).synced is False
        assert notesync.get_pending_count() == 1

    def test_create_rejects_empty(self, notesync):
        with pytest.raises(ValueError):
            notesync.create_note("")

    def test_update_note(self, notesync):
        note = notesync.create_note("v1")
        updated = notesync.update_note(note.client_id, "v2")
        assert updated.content == "v2"
        assert notesync.get_pending_count() == 2

    def test_update_missing(self, notesync):
        with pytest.raises(NoteNotFoundError):
            notesync.update_note("client_0_nope", "x")

    def test_delete_unsynced_note(self, notesync):
        note = notesync.create_note("draft")
        assert notesync.delete_note(note.client_id) is False
        assert notesync.get_note(note.client_id) is None
        assert notesync.get_pending_count() == 0

    def test_delete_synced_note(self, notesync, remote_authority):
        note = notesync.create_note("keep for a bit")
        notesync.sync()
        assert notesync.delete_note(note.client_id) is True
        notesync.sync()
        assert remote_authority.notes == {}

    def test_export_notes(self, notesync):
        note = notesync.create_note("x")
        exported = notesync.export_notes()
        assert exported == [note.to_dict()]

    def test_note_changes_are_logged(self, notesync, notesync_home):
        note = notesync.create_note("x")
        log = next((notesync_home / "logs").glob("sync-events-*.log"))
        content = log.read_text()
        assert "device=laptop" in content
        assert f"change=create, id=...{note.client_id[-9:]}" in content


class TestSync:
    def test_sync_returns_dict(self, notesync, remote_authority):
        remote_authority.next_id = 42
        note = notesync.create_note("Buy milk")

        result = notesync.sync()

        assert result["state"] == "synced"
        assert result["pushed"] == 1
        assert result["success"] is True
        assert notesync.get_note_by_server_id(42).client_id == note.client_id

    def test_status(self, notesync):
        notesync.create_note("x")
        status = notesync.get_sync_status()
        assert status["pending"] == 1
        assert status["synced"] is False
        assert status["online"] is True
        assert status["running"] is False
        assert status["last_sync_time"] is None

        notesync.sync()
        status = notesync.get_sync_status()
        assert status["synced"] is True
        assert status["last_sync_time"] is not None

    def test_offline_then_online(self, notesync, remote_authority):
        notesync.set_online(False)
        notesync.create_note("queued")
        assert notesync.sync()["state"] == "offline"
        assert remote_authority.requests == []

    def test_check_connectivity(self, notesync, remote_authority):
        remote_authority.down = True
        assert notesync.check_connectivity() is False
        assert notesync.get_sync_status()["online"] is False

    def test_queue_listing_and_clear(self, notesync):
        note = notesync.create_note("x")
        queue = notesync.get_queue()
        assert [(op["type"], op["clientId"]) for op in queue] == [("create", note.client_id)]

        assert notesync.clear_queue() == 1
        assert notesync.get_queue() == []


class TestAutoSync:
    def test_edit_triggers_deferred_sync(self, storage, remote, remote_authority):
        ns = NoteSync(storage=storage, remote=remote, auto_sync=True, debounce_seconds=0.05)
        done = threading.Event()
        ns.scheduler.on_sync_complete(lambda result: done.set())
        try:
            note = ns.create_note("auto")
            assert done.wait(5)
            assert ns.get_note(note.client_id).synced is True
            assert len(remote_authority.notes) == 1
        finally:
            ns.close()

    def test_disabled_auto_sync_arms_nothing(self, notesync):
        notesync.create_note("manual only")
        assert notesync.scheduler.has_pending_trigger is False


class TestClose:
    def test_close_waits_for_reconnect_run(self, storage, remote_authority, notesync_home):
        remote = remote_authority.client()
        ns = NoteSync(storage=storage, remote=remote, online=False, auto_sync=False)
        ns.create_note("first")
        ns.create_note("second")

        running_at_close = []
        real_close = remote.close

        def recording_close():
            running_at_close.append(ns.engine.is_running)
            real_close()

        remote.close = recording_close
        remote_authority.gate = threading.Event()

        ns.set_online(True)
        assert remote_authority.entered.wait(5)

        closer = threading.Thread(target=ns.close)
        closer.start()
        closer.join(0.2)
        assert closer.is_alive()

        remote_authority.gate.set()
        closer.join(5)

        assert not closer.is_alive()
        assert running_at_close == [False]
        assert len(remote_authority.notes) == 2
        assert storage.get_pending_count() == 0
        log = next((notesync_home / "logs").glob("sync-events-*.log"))
        assert "state=synced, pushed=2, remaining=0, errors=0" in log.read_text()


def test_remote_client_is_shared_with_engine(storage):
    remote = RemoteClient("https://notes.example.com/api")
    ns = NoteSync(storage=storage, remote=remote, auto_sync=False)
    assert ns.engine._remote is remote
    ns.close()
