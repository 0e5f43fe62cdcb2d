"""
Pytest fixtures and test configuration for notesync tests.
"""

import json
import logging
import re
import threading
from typing import Any, Dict, List, Optional, Tuple

import httpx
import pytest

from notesync.storage import RemoteClient, SQLiteStorage, SyncEngine

BACKEND_URL = "http://localhost:3000/api"

_NOTE_PATH = re.compile(r"/api/notes/(\d+)")


class FakeRemoteAuthority:
    """In-memory stand-in for the remote notes API, served over httpx.MockTransport.

    Mirrors the real server: POST /notes assigns incrementing ids,
    PUT/DELETE /notes/{id} answer 404 for unknown ids, GET /health is 200.
    """

    def __init__(self, first_id: int = 1):
        self.notes: Dict[int, Dict[str, Any]] = {}
        self.next_id = first_id
        self.requests: List[Tuple[str, str, Optional[Dict[str, Any]]]] = []
        self.down = False
        self.timeout = False
        self._failures: Dict[int, int] = {}

        # Set `gate` to hold note requests until the test releases it
        self.gate: Optional[threading.Event] = None
        self.entered = threading.Event()

    # === Failure injection ===

    def fail_request(self, number: int, status_code: int = 500):
        """Answer the ``number``-th note request (1-based, counted from now on) with an error."""
        self._failures[len(self.requests) + number] = status_code

    # === Helpers ===

    @property
    def methods(self) -> List[str]:
        return [method for method, _, _ in self.requests]

    def client(self, **kwargs) -> RemoteClient:
        http = httpx.Client(transport=httpx.MockTransport(self.handler))
        return RemoteClient(BACKEND_URL, client=http, **kwargs)

    # === Transport ===

    def handler(self, request: httpx.Request) -> httpx.Response:
        if self.down:
            raise httpx.ConnectError("Connection refused", request=request)
        if self.timeout:
            raise httpx.ReadTimeout("timed out", request=request)

        path = request.url.path
        if path == "/api/health":
            return httpx.Response(200, json={"status": "ok"})

        body = json.loads(request.content) if request.content else None
        self.requests.append((request.method, path, body))

        if self.gate is not None:
            self.entered.set()
            self.gate.wait(5)

        status = self._failures.pop(len(self.requests), None)
        if status is not None:
            return httpx.Response(status, json={"error": "Injected failure"})

        if request.method == "POST" and path == "/api/notes":
            server_id = self.next_id
            self.next_id += 1
            self.notes[server_id] = {
                "id": server_id,
                "content": body["content"],
                "created": body.get("created"),
                "updated": body.get("updated"),
            }
            return httpx.Response(201, json=self.notes[server_id])

        match = _NOTE_PATH.fullmatch(path)
        if match:
            server_id = int(match.group(1))
            if server_id not in self.notes:
                return httpx.Response(404, json={"error": "Note not found"})
            if request.method == "PUT":
                self.notes[server_id].update(content=body["content"], updated=body.get("updated"))
                return httpx.Response(200, json=self.notes[server_id])
            if request.method == "DELETE":
                del self.notes[server_id]
                return httpx.Response(200, json={"message": "Note deleted"})

        return httpx.Response(404, json={"error": "Not found"})


@pytest.fixture(autouse=True)
def notesync_home(tmp_path, monkeypatch):
    """Point NOTESYNC_DATA_DIR at a temp dir and clear notesync env/logging state."""
    home = tmp_path / "notesync-home"
    monkeypatch.setenv("NOTESYNC_DATA_DIR", str(home))
    for var in (
        "NOTESYNC_BACKEND_URL",
        "NOTESYNC_AUTO_SYNC",
        "NOTESYNC_DEVICE_ID",
        "NOTESYNC_TIMEOUT",
        "NOTESYNC_SYNC_DEBOUNCE",
    ):
        monkeypatch.delenv(var, raising=False)

    logger = logging.getLogger("notesync")
    logger.handlers.clear()
    yield home
    for handler in logger.handlers:
        handler.close()
    logger.handlers.clear()
    logger.setLevel(logging.NOTSET)


@pytest.fixture
def temp_db(tmp_path):
    """Create a temporary database path."""
    return tmp_path / "notes.db"


@pytest.fixture
def storage(temp_db):
    """Create a SQLiteStorage instance for testing."""
    storage = SQLiteStorage(db_path=temp_db)
    yield storage
    storage.close()


@pytest.fixture
def remote_authority():
    return FakeRemoteAuthority()


@pytest.fixture
def remote(remote_authority):
    client = remote_authority.client()
    yield client
    client.close()


@pytest.fixture
def engine(storage, remote):
    return SyncEngine(storage, remote, device_id="test-device")
