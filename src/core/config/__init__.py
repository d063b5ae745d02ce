"""Settings model, file locations and the shared settings service."""

from __future__ import annotations

from pathlib import Path

from .paths import AppPaths
from .schema import ClassifierSettings, IndexerSettings, OcrSettings
from .service import SettingsService

_APP_PATHS = AppPaths()
_SERVICE = SettingsService(_APP_PATHS)


def configure(app_paths: AppPaths, *, path: Path | None = None) -> None:
    """Point the module-level helpers at ``app_paths`` (and optionally a settings file)."""
    global _APP_PATHS, _SERVICE
    _APP_PATHS = app_paths
    _SERVICE = SettingsService(app_paths, path=path)


def config_path() -> Path:
    return _SERVICE.config_path


def load_settings() -> IndexerSettings:
    return _SERVICE.load()


def save_settings(settings: IndexerSettings) -> None:
    _SERVICE.save(settings)


__all__ = [
    "AppPaths",
    "ClassifierSettings",
    "IndexerSettings",
    "OcrSettings",
    "SettingsService",
    "config_path",
    "configure",
    "load_settings",
    "save_settings",
]
