"""Opening the lensmark SQLite database."""

from __future__ import annotations

import logging
import sqlite3
from pathlib import Path

from db.schema import ensure_schema

logger = logging.getLogger(__name__)

_MEMORY_TARGETS = frozenset({":memory:", ":memory"})


def _is_memory(target: str) -> bool:
    return target in _MEMORY_TARGETS or target.startswith("file::memory:") or "mode=memory" in target


def _file_target(db_path: str | Path) -> Path:
    candidate = Path(db_path).expanduser()
    try:
        return candidate.resolve(strict=False)
    except OSError:
        return candidate.absolute()


def get_conn(db_path: str | Path, *, timeout: float = 30.0) -> sqlite3.Connection:
    """Return a connection with pragmas applied and the schema up to date.

    The connection may be used from any thread; callers serialise access
    themselves (the annotation store holds a lock around it).
    """
    text = str(db_path)
    uri = text.startswith("file:")
    memory = _is_memory(text)
    if memory and not uri:
        target = ":memory:"
    elif uri:
        target = text
    else:
        location = _file_target(db_path)
        location.parent.mkdir(parents=True, exist_ok=True)
        target = str(location)

    conn = sqlite3.connect(target, timeout=timeout, uri=uri, check_same_thread=False)
    conn.row_factory = sqlite3.Row
    conn.execute(f"PRAGMA busy_timeout = {int(timeout * 1000)}")
    conn.execute("PRAGMA foreign_keys = ON")
    if not memory:
        conn.execute("PRAGMA journal_mode = WAL")
    conn.execute("PRAGMA synchronous = NORMAL")
    ensure_schema(conn)
    logger.debug("Opened annotation database %s", target)
    return conn


__all__ = ["get_conn"]
