"""Tables of the annotation store."""

from __future__ import annotations

import logging
import sqlite3

logger = logging.getLogger(__name__)

CURRENT_SCHEMA_VERSION = 1

# One row per indexed image, keyed by its absolute path.
FILES_TABLE = """
CREATE TABLE IF NOT EXISTS files (
    path TEXT PRIMARY KEY,
    last_modified REAL NOT NULL,
    size INTEGER NOT NULL DEFAULT 0,
    indexed_at REAL
)
"""

ANNOTATIONS_TABLE = """
CREATE TABLE IF NOT EXISTS annotations (
    path TEXT NOT NULL REFERENCES files(path) ON DELETE CASCADE,
    term TEXT NOT NULL,
    PRIMARY KEY (path, term)
)
"""

INDEXES = ("CREATE INDEX IF NOT EXISTS idx_annotations_term ON annotations(term)",)


def schema_version(conn: sqlite3.Connection) -> int:
    row = conn.execute("PRAGMA user_version").fetchone()
    return int(row[0]) if row else 0


def ensure_schema(conn: sqlite3.Connection) -> None:
    """Create missing tables and indexes and stamp the schema version.

    A database written by a newer release is left untouched apart from
    missing tables; its version is never lowered.
    """
    found = schema_version(conn)
    with conn:
        conn.execute(FILES_TABLE)
        conn.execute(ANNOTATIONS_TABLE)
        for statement in INDEXES:
            conn.execute(statement)
        if found < CURRENT_SCHEMA_VERSION:
            conn.execute(f"PRAGMA user_version = {CURRENT_SCHEMA_VERSION}")
    if found > CURRENT_SCHEMA_VERSION:
        logger.warning(
            "Annotation database schema version %d is newer than supported version %d",
            found,
            CURRENT_SCHEMA_VERSION,
        )


__all__ = ["CURRENT_SCHEMA_VERSION", "ensure_schema", "schema_version"]
