"""Filesystem and environment helpers for notesync."""

import json
import logging
import os
from pathlib import Path
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)

DEFAULT_BACKEND_URL = "http://localhost:3000/api"
DEFAULT_TIMEOUT = 10.0
DEFAULT_SYNC_DEBOUNCE = 2.0


def get_notesync_home() -> Path:
    """Return the notesync data directory.

    Uses ``NOTESYNC_DATA_DIR`` when set, otherwise ``~/.notesync``.
    """
    override = os.environ.get("NOTESYNC_DATA_DIR")
    if override:
        return Path(override).expanduser()
    return Path.home() / ".notesync"


def load_config() -> Dict[str, Any]:
    """Load ``config.json`` from the notesync home, or an empty dict."""
    config_path = get_notesync_home() / "config.json"
    if not config_path.exists():
        return {}
    try:
        with open(config_path) as f:
            data = json.load(f)
    except (json.JSONDecodeError, OSError) as e:
        logger.debug(f"Failed to load config file: {e}")
        return {}
    return data if isinstance(data, dict) else {}


def _env_float(name: str, default: float) -> float:
    raw = os.environ.get(name)
    if raw is None or raw == "":
        return default
    try:
        return float(raw)
    except ValueError:
        logger.warning(f"Ignoring non-numeric {name}={raw!r}, using {default}")
        return default


def get_timeout() -> float:
    """Per-call deadline for remote requests, in seconds."""
    return _env_float("NOTESYNC_TIMEOUT", DEFAULT_TIMEOUT)


def get_sync_debounce() -> float:
    """Delay before the deferred sync that follows a local edit."""
    return _env_float("NOTESYNC_SYNC_DEBOUNCE", DEFAULT_SYNC_DEBOUNCE)


def parse_bool_env(name: str) -> Optional[bool]:
    """Parse a boolean environment variable; None when unset or unrecognised."""
    value = os.environ.get(name, "").lower()
    if value in ("true", "1", "yes", "on"):
        return True
    if value in ("false", "0", "no", "off"):
        return False
    return None
