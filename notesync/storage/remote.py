"""Remote authority client for notesync.

Translates one queued operation into one HTTP request against the notes API
and its response into success, an assigned server id, or a RemoteError.
No retries or backoff live here; retry timing belongs to the sync engine
and its triggers.
"""

import logging
import os
import time
from typing import Any, Dict, Optional

import httpx

from notesync.core.validation import validate_backend_url
from notesync.types import Operation, OperationType, RemoteError, RemoteNotFoundError
from notesync.utils import DEFAULT_BACKEND_URL, get_timeout, load_config

logger = logging.getLogger(__name__)


def resolve_backend_url(backend_url: Optional[str] = None) -> Optional[str]:
    """Resolve the remote base URL.

    Priority:
    1. Explicit argument
    2. ``NOTESYNC_BACKEND_URL`` environment variable
    3. ``backend_url`` in ``~/.notesync/config.json``
    4. ``DEFAULT_BACKEND_URL``

    Returns:
        The validated URL without a trailing slash, or None if rejected.
    """
    url = (
        backend_url
        or os.environ.get("NOTESYNC_BACKEND_URL")
        or load_config().get("backend_url")
        or DEFAULT_BACKEND_URL
    )
    url = validate_backend_url(url)
    return url.rstrip("/") if url else None


class RemoteClient:
    """HTTP client for the remote notes authority.

    Args:
        backend_url: Base URL of the notes API (e.g. ``http://localhost:3000/api``).
            Resolved from the environment/config when omitted.
        timeout: Per-call deadline in seconds. Exceeding it is a normal failure.
        client: Optional pre-built ``httpx.Client`` (used by tests).
    """

    def __init__(
        self,
        backend_url: Optional[str] = None,
        timeout: Optional[float] = None,
        client: Optional[httpx.Client] = None,
    ):
        resolved = resolve_backend_url(backend_url)
        if not resolved:
            raise ValueError(f"Invalid backend URL: {backend_url!r}")
        self.backend_url = resolved
        self.timeout = timeout if timeout is not None else get_timeout()
        self._client = client or httpx.Client(timeout=self.timeout)
        self._owns_client = client is None

    def close(self):
        if self._owns_client:
            self._client.close()

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.close()

    # === Transport ===

    def _request(self, method: str, path: str, payload: Optional[Dict[str, Any]] = None):
        url = f"{self.backend_url}{path}"
        try:
            return self._client.request(method, url, json=payload, timeout=self.timeout)
        except httpx.TimeoutException as e:
            raise RemoteError(f"{method} {path} timed out after {self.timeout}s") from e
        except httpx.HTTPError as e:
            raise RemoteError(f"{method} {path} failed: {e}") from e
        except RuntimeError as e:
            # httpx raises RuntimeError once the client has been closed
            raise RemoteError(f"{method} {path} failed: {e}") from e

    @staticmethod
    def _parse_server_id(value: Any) -> Optional[int]:
        if isinstance(value, bool):
            return None
        if isinstance(value, int):
            return value
        if isinstance(value, str) and value.isascii() and value.isdigit():
            return int(value)
        return None

    @staticmethod
    def _ensure_success(response: httpx.Response, method: str, path: str):
        if not response.is_success:
            raise RemoteError(
                f"{method} {path} returned HTTP {response.status_code}",
                status_code=response.status_code,
            )

    # === Operations ===

    def create_note(self, operation: Operation) -> int:
        """Create the note remotely and return the assigned server id."""
        payload = {
            "content": operation.content,
            "clientId": operation.client_id,
            "created": operation.created,
            "updated": operation.updated,
        }
        response = self._request("POST", "/notes", payload)
        self._ensure_success(response, "POST", "/notes")

        try:
            body = response.json()
        except ValueError as e:
            raise RemoteError(f"POST /notes returned invalid JSON: {e}") from e

        server_id = body.get("id") if isinstance(body, dict) else None
        if server_id is None and isinstance(body, dict):
            server_id = body.get("serverId")
        if server_id is None:
            raise RemoteError("POST /notes response did not include a server id")

        parsed = self._parse_server_id(server_id)
        if parsed is None:
            raise RemoteError(f"POST /notes returned an invalid server id: {server_id!r}")
        return parsed

    def update_note(self, operation: Operation, server_id: int) -> None:
        payload = {"content": operation.content, "updated": operation.updated}
        path = f"/notes/{server_id}"
        response = self._request("PUT", path, payload)
        if response.status_code == 404:
            raise RemoteNotFoundError(server_id)
        self._ensure_success(response, "PUT", path)

    def delete_note(self, server_id: int) -> None:
        """Delete the remote note. Raises RemoteNotFoundError on HTTP 404."""
        path = f"/notes/{server_id}"
        response = self._request("DELETE", path)
        if response.status_code == 404:
            raise RemoteNotFoundError(server_id)
        self._ensure_success(response, "DELETE", path)

    def apply(self, operation: Operation, server_id: Optional[int] = None) -> Optional[int]:
        """Apply one queued operation.

        Returns:
            The assigned server id for ``create``; None otherwise. A delete
            whose target is already gone counts as success.
        """
        if operation.type == OperationType.CREATE:
            return self.create_note(operation)

        target = server_id if server_id is not None else operation.server_id
        if target is None:
            raise RemoteError(f"No server id for {operation.type.value} of {operation.client_id}")

        if operation.type == OperationType.UPDATE:
            self.update_note(operation, target)
        elif operation.type == OperationType.DELETE:
            try:
                self.delete_note(target)
            except RemoteNotFoundError:
                logger.debug(f"Remote note {target} already absent, treating delete as done")
        return None

    # === Connectivity ===

    def health_check(self, timeout: float = 3.0) -> Dict[str, Any]:
        """Probe the remote authority.

        Returns:
            Dict with 'healthy' and either 'latency_ms' or 'error'.
        """
        start = time.monotonic()
        try:
            response = self._client.get(f"{self.backend_url}/health", timeout=timeout)
        except (httpx.HTTPError, RuntimeError) as e:
            logger.debug("Health check failed: %s", e)
            return {"healthy": False, "error": f"Connection failed: {e}"}

        latency_ms = (time.monotonic() - start) * 1000
        if response.status_code == 200:
            return {"healthy": True, "latency_ms": round(latency_ms, 2)}
        return {"healthy": False, "error": f"HTTP {response.status_code}"}
