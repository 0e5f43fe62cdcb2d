"""Tests for the remote authority client."""

import json

import httpx
import pytest

from notesync.storage import (
    Operation,
    OperationType,
    RemoteClient,
    RemoteError,
    RemoteNotFoundError,
    resolve_backend_url,
)
from notesync.utils import DEFAULT_BACKEND_URL

BACKEND_URL = "http://localhost:3000/api"


def _client(handler) -> RemoteClient:
    return RemoteClient(BACKEND_URL, client=httpx.Client(transport=httpx.MockTransport(handler)))


def _create_op(content="hello"):
    return Operation(
        type=OperationType.CREATE, client_id="client_1_abc", content=content, created=1, updated=1
    )


class TestResolveBackendUrl:
    def test_default(self):
        assert resolve_backend_url() == DEFAULT_BACKEND_URL

    def test_explicit_wins(self, monkeypatch):
        monkeypatch.setenv("NOTESYNC_BACKEND_URL", "https://env.example.com/api")
        assert resolve_backend_url("https://arg.example.com/api") == "https://arg.example.com/api"

    def test_environment(self, monkeypatch):
        monkeypatch.setenv("NOTESYNC_BACKEND_URL", "https://env.example.com/api/")
        assert resolve_backend_url() == "https://env.example.com/api"

    def test_config_file(self, notesync_home):
        notesync_home.mkdir(parents=True)
        (notesync_home / "config.json").write_text(
            json.dumps({"backend_url": "https://config.example.com/api"})
        )
        assert resolve_backend_url() == "https://config.example.com/api"

    def test_unreadable_config_falls_back_to_default(self, notesync_home):
        notesync_home.mkdir(parents=True)
        (notesync_home / "config.json").write_text("{not json")
        assert resolve_backend_url() == DEFAULT_BACKEND_URL

    def test_rejects_remote_http(self):
        assert resolve_backend_url("http://notes.example.com/api") is None

    def test_client_rejects_invalid_url(self):
        with pytest.raises(ValueError, match="Invalid backend URL"):
            RemoteClient("ftp://example.com")


class TestTimeout:
    def test_default_timeout(self):
        assert RemoteClient(BACKEND_URL).timeout == 10.0

    def test_timeout_from_environment(self, monkeypatch):
        monkeypatch.setenv("NOTESYNC_TIMEOUT", "2.5")
        assert RemoteClient(BACKEND_URL).timeout == 2.5

    def test_non_numeric_timeout_ignored(self, monkeypatch):
        monkeypatch.setenv("NOTESYNC_TIMEOUT", "soon")
        assert RemoteClient(BACKEND_URL).timeout == 10.0


class TestCreate:
    def test_returns_server_id(self, remote, remote_authority):
        remote_authority.next_id = 42
        assert remote.create_note(_create_op()) == 42

    def test_accepts_server_id_field(self):
        client = _client(lambda request: httpx.Response(201, json={"serverId": 9}))
        assert client.create_note(_create_op()) == 9

    def test_missing_id_is_error(self):
        client = _client(lambda request: httpx.Response(201, json={"content": "hello"}))
        with pytest.raises(RemoteError, match="server id"):
            client.create_note(_create_op())

    @pytest.mark.parametrize("server_id", ["abc", [1], True, 1.5, {"id": 3}, "-4"])
    def test_malformed_id_is_error(self, server_id):
        client = _client(lambda request: httpx.Response(201, json={"id": server_id}))
        with pytest.raises(RemoteError, match="invalid server id"):
            client.create_note(_create_op())

    def test_digit_string_id_is_converted(self):
        client = _client(lambda request: httpx.Response(201, json={"id": "17"}))
        assert client.create_note(_create_op()) == 17

    def test_closed_client_is_remote_error(self):
        client = _client(lambda request: httpx.Response(201, json={"id": 1}))
        client._client.close()
        with pytest.raises(RemoteError, match="closed"):
            client.create_note(_create_op())

    def test_invalid_json_is_error(self):
        client = _client(lambda request: httpx.Response(201, text="<html>oops</html>"))
        with pytest.raises(RemoteError, match="invalid JSON"):
            client.create_note(_create_op())

    def test_server_error(self):
        client = _client(lambda request: httpx.Response(500, json={"error": "boom"}))
        with pytest.raises(RemoteError) as exc_info:
            client.create_note(_create_op())
        assert exc_info.value.status_code == 500


class TestUpdateAndDelete:
    def test_update_sends_content(self, remote, remote_authority):
        server_id = remote.create_note(_create_op("v1"))
        op = Operation(type=OperationType.UPDATE, client_id="c", content="v2", updated=5)

        remote.update_note(op, server_id)

        method, path, body = remote_authority.requests[-1]
        assert (method, path) == ("PUT", f"/api/notes/{server_id}")
        assert body == {"content": "v2", "updated": 5}

    def test_update_missing_note(self, remote):
        op = Operation(type=OperationType.UPDATE, client_id="c", content="v2")
        with pytest.raises(RemoteNotFoundError):
            remote.update_note(op, 404)

    def test_delete_missing_note(self, remote):
        with pytest.raises(RemoteNotFoundError):
            remote.delete_note(404)


class TestApply:
    def test_create(self, remote):
        assert remote.apply(_create_op()) == 1

    def test_delete_absent_note_is_success(self, remote, remote_authority):
        op = Operation(type=OperationType.DELETE, client_id="c", server_id=404)
        assert remote.apply(op) is None
        assert remote_authority.methods == ["DELETE"]

    def test_update_without_server_id(self, remote):
        op = Operation(type=OperationType.UPDATE, client_id="c", content="x")
        with pytest.raises(RemoteError, match="No server id"):
            remote.apply(op)

    def test_explicit_server_id_wins(self, remote, remote_authority):
        server_id = remote.create_note(_create_op())
        op = Operation(type=OperationType.DELETE, client_id="c", server_id=999)
        remote.apply(op, server_id)
        assert remote_authority.notes == {}


class TestHealthCheck:
    def test_healthy(self, remote):
        health = remote.health_check()
        assert health["healthy"] is True
        assert "latency_ms" in health

    def test_connection_refused(self, remote, remote_authority):
        remote_authority.down = True
        health = remote.health_check()
        assert health["healthy"] is False
        assert "Connection failed" in health["error"]

    def test_unhealthy_status(self):
        client = _client(lambda request: httpx.Response(503))
        assert client.health_check() == {"healthy": False, "error": "HTTP 503"}
