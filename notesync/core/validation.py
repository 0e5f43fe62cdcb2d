"""Input validation for notesync."""

import logging
import re
from typing import Optional
from urllib.parse import urlparse

logger = logging.getLogger(__name__)

MAX_CONTENT_LENGTH = 100_000

# Control characters except tab, newline and carriage return
_CONTROL_CHARS = re.compile(r"[\x00-\x08\x0b\x0c\x0e-\x1f\x7f]")


def validate_content(content: str, max_length: int = MAX_CONTENT_LENGTH) -> str:
    """Validate and normalize note content.

    Strips surrounding whitespace and control characters.

    Raises:
        ValueError: If content is not a string, is empty after stripping,
            or exceeds ``max_length``.
    """
    if not isinstance(content, str):
        raise ValueError("Content must be a string")

    sanitized = _CONTROL_CHARS.sub("", content).strip()
    if not sanitized:
        raise ValueError("Content is required")
    if len(sanitized) > max_length:
        raise ValueError(f"Content too long (max {max_length} characters)")
    return sanitized


def validate_client_id(client_id: str) -> str:
    """Validate a client id passed in from outside (CLI, callers)."""
    if not isinstance(client_id, str) or not client_id.strip():
        raise ValueError("Client ID cannot be empty")
    return client_id.strip()


def validate_backend_url(url: str, *, allow_localhost_http: bool = True) -> Optional[str]:
    """Validate a remote authority base URL.

    Rejects non-http/https schemes, URLs with no host, and remote HTTP
    endpoints (only localhost/127.0.0.1 are allowed over plaintext HTTP).

    Returns:
        The URL unchanged if valid, or ``None`` if rejected (with a
        warning logged for each rejection reason).
    """
    if not url:
        return None

    parsed = urlparse(url)
    if parsed.scheme not in {"https", "http"}:
        logger.warning("Invalid backend_url scheme; only http/https allowed.")
        return None
    if not parsed.netloc:
        logger.warning("Invalid backend_url; missing host.")
        return None
    if parsed.scheme == "http":
        if not allow_localhost_http:
            logger.warning("HTTP not allowed in this context.")
            return None
        host = parsed.hostname or ""
        if host not in {"localhost", "127.0.0.1"}:
            logger.warning("Refusing non-local http backend_url.")
            return None
    return url


class ValidationMixin:
    """Input validation operations for NoteSync."""

    @staticmethod
    def _validate_content(content: str) -> str:
        return validate_content(content)

    @staticmethod
    def _validate_client_id(client_id: str) -> str:
        return validate_client_id(client_id)

    @staticmethod
    def _validate_device_id(device_id: str) -> str:
        """Validate the device id used to label logs."""
        if not device_id or not device_id.strip():
            raise ValueError("Device ID cannot be empty")
        if "/" in device_id or "\\" in device_id:
            raise ValueError("Device ID must not contain path separators")
        return device_id.strip()
