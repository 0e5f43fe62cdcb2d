"""Logging setup for notesync.

Two outputs:
- ``logs/local-YYYY-MM-DD.log``: the regular ``notesync`` logger output.
- ``logs/sync-events-YYYY-MM-DD.log``: one line per note change or sync run,
  appended directly so it survives logger reconfiguration.
"""

import logging
from datetime import datetime, timezone
from pathlib import Path

from notesync.utils import get_notesync_home

LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"

_LEVELS = {
    "DEBUG": logging.DEBUG,
    "INFO": logging.INFO,
    "WARNING": logging.WARNING,
    "ERROR": logging.ERROR,
}


def _log_dir() -> Path:
    log_dir = get_notesync_home() / "logs"
    log_dir.mkdir(parents=True, exist_ok=True)
    return log_dir


def _today() -> str:
    return datetime.now(timezone.utc).strftime("%Y-%m-%d")


def setup_notesync_logging(level: str = "INFO") -> logging.Logger:
    """Configure the ``notesync`` logger with a dated file handler.

    Safe to call more than once; handlers are only added the first time.
    A console handler is added at DEBUG level.
    """
    logger = logging.getLogger("notesync")
    log_level = _LEVELS.get(str(level).upper(), logging.INFO)
    logger.setLevel(log_level)

    if any(isinstance(h, logging.FileHandler) for h in logger.handlers):
        return logger

    formatter = logging.Formatter(LOG_FORMAT)
    file_handler = logging.FileHandler(_log_dir() / f"local-{_today()}.log")
    file_handler.setFormatter(formatter)
    logger.addHandler(file_handler)

    if log_level == logging.DEBUG:
        console = logging.StreamHandler()
        console.setFormatter(formatter)
        logger.addHandler(console)

    return logger


def log_sync_event(event_type: str, details: str, device_id: str = "default") -> None:
    """Append one line to the daily sync-events log."""
    timestamp = datetime.now(timezone.utc).isoformat()
    path = _log_dir() / f"sync-events-{_today()}.log"
    try:
        with open(path, "a") as f:
            f.write(f"{timestamp} | {event_type} | device={device_id} | {details}\n")
    except OSError as e:
        logging.getLogger(__name__).debug(f"Could not write sync event log: {e}")


def log_note_change(device_id: str, change: str, client_id: str) -> None:
    """Record a local note mutation."""
    short_id = client_id[-9:] if len(client_id) > 9 else client_id
    log_sync_event("note", f"change={change}, id=...{short_id}", device_id=device_id)


def log_sync(
    device_id: str, state: str, pushed: int, remaining: int, errors: int = 0
) -> None:
    """Record the outcome of a sync run."""
    log_sync_event(
        "sync",
        f"state={state}, pushed={pushed}, remaining={remaining}, errors={errors}",
        device_id=device_id,
    )
