"""Database schema and migration logic for notesync SQLite storage.

Contains:
- Schema DDL (SCHEMA)
- Schema version tracking (SCHEMA_VERSION)
- Table allowlist (ALLOWED_TABLES, validate_table_name)
- Database initialization (init_db)
- Schema migration (migrate_schema)
"""

import logging
import os
import sqlite3
from pathlib import Path

logger = logging.getLogger(__name__)

# v2: retry bookkeeping columns on sync_queue
SCHEMA_VERSION = 2

# Allowed table names for SQL queries built with f-strings
ALLOWED_TABLES = frozenset(
    {
        "notes",
        "sync_queue",
        "sync_meta",
        "schema_version",
    }
)


def validate_table_name(table: str) -> str:
    """Validate table name against allowlist to prevent SQL injection.

    Raises:
        ValueError: If table name is not in allowlist
    """
    if table not in ALLOWED_TABLES:
        raise ValueError(f"Invalid table name: {table}")
    return table


SCHEMA = """
-- Schema version tracking
CREATE TABLE IF NOT EXISTS schema_version (
    version INTEGER PRIMARY KEY
);

-- Notes keyed by the locally generated client id
CREATE TABLE IF NOT EXISTS notes (
    client_id TEXT PRIMARY KEY,
    server_id INTEGER,  -- NULL until the remote authority has created it
    content TEXT NOT NULL,
    created INTEGER NOT NULL,  -- epoch ms, immutable
    updated INTEGER NOT NULL   -- epoch ms, bumped on every local mutation
);
CREATE INDEX IF NOT EXISTS idx_notes_server_id ON notes(server_id);
CREATE INDEX IF NOT EXISTS idx_notes_updated ON notes(updated);

-- Operation queue: pending mutations in FIFO order
CREATE TABLE IF NOT EXISTS sync_queue (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    type TEXT NOT NULL,  -- create, update, delete
    client_id TEXT NOT NULL,
    server_id INTEGER,  -- snapshot at enqueue, patched when the create lands
    content TEXT,
    created INTEGER,
    updated INTEGER,
    timestamp INTEGER NOT NULL,  -- enqueue time, informational
    -- Retry bookkeeping (v2)
    attempts INTEGER DEFAULT 0,
    last_error TEXT,
    last_attempt_at INTEGER
);
CREATE INDEX IF NOT EXISTS idx_sync_queue_client ON sync_queue(client_id);

-- Sync metadata (last sync time and similar)
CREATE TABLE IF NOT EXISTS sync_meta (
    key TEXT PRIMARY KEY,
    value TEXT NOT NULL,
    updated_at INTEGER NOT NULL
);
"""


def init_db(conn: sqlite3.Connection, db_path: Path) -> None:
    """Initialize the database schema.

    Args:
        conn: Database connection.
        db_path: Path to the database file (for permissions).
    """
    # Run migrations first so CREATE INDEX statements see the new columns
    migrate_schema(conn)

    conn.executescript(SCHEMA)

    row = conn.execute("SELECT version FROM schema_version LIMIT 1").fetchone()
    if row is None:
        conn.execute("INSERT INTO schema_version (version) VALUES (?)", (SCHEMA_VERSION,))
    else:
        conn.execute("UPDATE schema_version SET version = ?", (SCHEMA_VERSION,))

    conn.commit()

    # Owner read/write only
    try:
        os.chmod(db_path, 0o600)
    except OSError as e:
        logger.warning(f"Could not set secure permissions: {e}")


def migrate_schema(conn: sqlite3.Connection) -> None:
    """Run schema migrations for existing databases.

    Handles adding new columns to existing tables.
    """
    tables = conn.execute("SELECT name FROM sqlite_master WHERE type='table'").fetchall()
    table_names = {t[0] for t in tables}

    if "sync_queue" not in table_names:
        # Fresh database, no migration needed
        return

    def get_columns(table: str) -> set:
        validate_table_name(table)
        cols = conn.execute(f"PRAGMA table_info({table})").fetchall()
        return {c[1] for c in cols}

    migrations = []

    sync_cols = get_columns("sync_queue")
    if "attempts" not in sync_cols:
        migrations.append("ALTER TABLE sync_queue ADD COLUMN attempts INTEGER DEFAULT 0")
    if "last_error" not in sync_cols:
        migrations.append("ALTER TABLE sync_queue ADD COLUMN last_error TEXT")
    if "last_attempt_at" not in sync_cols:
        migrations.append("ALTER TABLE sync_queue ADD COLUMN last_attempt_at INTEGER")

    for migration in migrations:
        try:
            conn.execute(migration)
            logger.info(f"Migration: {migration}")
        except sqlite3.OperationalError as e:
            if "duplicate column" not in str(e).lower():
                logger.warning(f"Migration failed: {e}")

    if migrations:
        conn.commit()
