"""Filesystem helpers shared across lensmark modules."""

from __future__ import annotations

import os
import stat
from pathlib import Path

WINDOWS = os.name == "nt"
LONG_PATH_PREFIX = "\\\\?\\"


def absolute_path(path: str | Path) -> Path:
    """Return ``path`` user-expanded, absolute and with symlinks resolved.

    Watchdog reports resolved paths, so every path used as a store key or an
    exclusion prefix goes through here first.
    """
    candidate = Path(path).expanduser()
    try:
        return candidate.resolve(strict=False)
    except (OSError, RuntimeError):
        return candidate.absolute()


def to_system_path(path: Path) -> str:
    """Return a string suitable for low-level filesystem APIs (handles long paths)."""
    path_str = str(absolute_path(path))
    if not WINDOWS:
        return path_str

    if path_str.startswith(LONG_PATH_PREFIX):
        return path_str

    if len(path_str) >= 248:
        return f"{LONG_PATH_PREFIX}{path_str}"

    return path_str


def from_system_path(path: str | bytes) -> Path:
    """Convert a system path string back into a Path object."""
    if isinstance(path, bytes):
        path = os.fsdecode(path)
    if WINDOWS and path.startswith(LONG_PATH_PREFIX):
        return Path(path[len(LONG_PATH_PREFIX) :])
    return Path(path)


def safe_stat(path: Path) -> os.stat_result | None:
    """Return ``os.stat`` for ``path`` or ``None`` when it cannot be read."""
    try:
        return os.stat(path)
    except (OSError, ValueError):
        return None


def is_directory(info: os.stat_result) -> bool:
    return stat.S_ISDIR(info.st_mode)


def is_regular_file(info: os.stat_result) -> bool:
    return stat.S_ISREG(info.st_mode)


def list_children(directory: Path) -> list[Path]:
    """Return the immediate children of ``directory`` sorted by name.

    Listing errors yield an empty list; the directory is then treated as
    having nothing to index.
    """
    try:
        with os.scandir(directory) as entries:
            names = sorted(entry.name for entry in entries)
    except OSError:
        return []
    return [Path(directory) / name for name in names]


def path_exists(path: Path) -> bool:
    try:
        return Path(path).exists()
    except (OSError, ValueError):
        return False


__all__ = [
    "WINDOWS",
    "LONG_PATH_PREFIX",
    "absolute_path",
    "from_system_path",
    "is_directory",
    "is_regular_file",
    "list_children",
    "path_exists",
    "safe_stat",
    "to_system_path",
]
