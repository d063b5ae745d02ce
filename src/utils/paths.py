"""Process-wide :class:`AppPaths` and shortcuts to the directories it resolves."""

from __future__ import annotations

from pathlib import Path

from core.config.paths import AppPaths

_APP_PATHS = AppPaths()


def get_app_paths() -> AppPaths:
    return _APP_PATHS


def set_app_paths(app_paths: AppPaths) -> None:
    """Replace the shared instance, e.g. to point tests at a temporary directory."""
    global _APP_PATHS
    _APP_PATHS = app_paths


def get_data_dir() -> Path:
    return _APP_PATHS.data_dir()


def get_db_path() -> Path:
    return _APP_PATHS.db_path()


def get_log_dir() -> Path:
    return _APP_PATHS.log_dir()


def get_models_dir() -> Path:
    return _APP_PATHS.models_dir()


def ensure_dirs() -> None:
    _APP_PATHS.ensure_data_dirs()


__all__ = [
    "ensure_dirs",
    "get_app_paths",
    "get_data_dir",
    "get_db_path",
    "get_log_dir",
    "get_models_dir",
    "set_app_paths",
]
