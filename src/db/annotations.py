"""SQLite-backed storage of per-image annotation records."""

from __future__ import annotations

import logging
import os
import sqlite3
import time
from pathlib import Path
from threading import Lock

from core.records import ImageRecord
from db.connection import get_conn

logger = logging.getLogger(__name__)


class AnnotationStore:
    """Persist :class:`ImageRecord` objects keyed by file path.

    Every write replaces the whole record for a path, so the stored
    annotation set always comes from a single annotation pass.
    """

    def __init__(self, db_path: str | Path = ":memory:") -> None:
        self._db_path = db_path
        self._conn: sqlite3.Connection | None = get_conn(db_path)
        self._lock = Lock()

    def _connection(self) -> sqlite3.Connection:
        if self._conn is None:
            raise RuntimeError("AnnotationStore is closed")
        return self._conn

    def close(self) -> None:
        with self._lock:
            if self._conn is not None:
                self._conn.close()
                self._conn = None

    def insert(self, record: ImageRecord) -> None:
        """Replace any stored record for ``record.path`` with ``record``."""
        path = str(record.path)
        terms = sorted(record.annotations)
        with self._lock:
            conn = self._connection()
            with conn:
                conn.execute("DELETE FROM files WHERE path = ?", (path,))
                conn.execute(
                    "INSERT INTO files (path, last_modified, size, indexed_at) VALUES (?, ?, ?, ?)",
                    (path, float(record.last_modified), int(record.size_bytes), time.time()),
                )
                if terms:
                    conn.executemany(
                        "INSERT OR IGNORE INTO annotations (path, term) VALUES (?, ?)",
                        [(path, term) for term in terms],
                    )
        logger.debug("Stored %d annotation(s) for %s", len(terms), path)

    def remove(self, path: str | Path) -> None:
        with self._lock:
            conn = self._connection()
            with conn:
                cursor = conn.execute("DELETE FROM files WHERE path = ?", (str(path),))
        if cursor.rowcount:
            logger.debug("Removed record for %s", path)

    def get_last_modified_time(self, path: str | Path) -> float | None:
        """Return the modification time recorded for ``path`` or ``None``."""
        with self._lock:
            row = self._connection().execute(
                "SELECT last_modified FROM files WHERE path = ?",
                (str(path),),
            ).fetchone()
        return None if row is None else float(row[0])

    def get_all_files(self) -> list[Path]:
        with self._lock:
            rows = self._connection().execute("SELECT path FROM files ORDER BY path ASC").fetchall()
        return [Path(row[0]) for row in rows]

    def search_by_directory(self, directory: str | Path) -> list[Path]:
        """Return every indexed path located anywhere below ``directory``."""
        prefix = str(directory).rstrip(os.sep) + os.sep
        # case-sensitive prefix match
        with self._lock:
            rows = self._connection().execute(
                "SELECT path FROM files WHERE substr(path, 1, ?) = ? ORDER BY path ASC",
                (len(prefix), prefix),
            ).fetchall()
        return [Path(row[0]) for row in rows]

    def get_annotations(self, path: str | Path) -> set[str]:
        with self._lock:
            rows = self._connection().execute(
                "SELECT term FROM annotations WHERE path = ?",
                (str(path),),
            ).fetchall()
        return {str(row[0]) for row in rows}

    def get_record(self, path: str | Path) -> ImageRecord | None:
        with self._lock:
            row = self._connection().execute(
                "SELECT path, last_modified, size FROM files WHERE path = ?",
                (str(path),),
            ).fetchone()
        if row is None:
            return None
        return ImageRecord(
            path=Path(row["path"]),
            last_modified=float(row["last_modified"]),
            size_bytes=int(row["size"]),
            annotations=self.get_annotations(path),
        )

    def find_by_annotation(self, term: str) -> list[Path]:
        """Return the paths annotated with exactly ``term`` (case-insensitive)."""
        with self._lock:
            rows = self._connection().execute(
                "SELECT path FROM annotations WHERE term = ? ORDER BY path ASC",
                (term.strip().lower(),),
            ).fetchall()
        return [Path(row[0]) for row in rows]

    def count(self) -> int:
        with self._lock:
            row = self._connection().execute("SELECT COUNT(*) FROM files").fetchone()
        return int(row[0]) if row else 0


__all__ = ["AnnotationStore"]
