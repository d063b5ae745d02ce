"""Reading and writing the YAML settings file."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

import yaml

from .paths import AppPaths
from .schema import IndexerSettings

logger = logging.getLogger(__name__)


class SettingsService:
    """Own the location of the settings file and convert it to :class:`IndexerSettings`.

    An unreadable or malformed file never stops the worker; it is logged and
    the defaults are used instead.
    """

    def __init__(
        self,
        app_paths: AppPaths,
        *,
        filename: str = "config.yaml",
        path: Path | None = None,
    ) -> None:
        self._app_paths = app_paths
        self._filename = filename
        self._override = Path(path).expanduser() if path is not None else None

    @property
    def config_path(self) -> Path:
        target = self._override or self._app_paths.config_path(self._filename)
        target.parent.mkdir(parents=True, exist_ok=True)
        return target

    def _read_document(self, target: Path) -> Any:
        try:
            return yaml.safe_load(target.read_text(encoding="utf-8"))
        except OSError as exc:
            logger.warning("Unable to read settings from %s: %s", target, exc)
        except yaml.YAMLError as exc:
            logger.warning("Invalid YAML in %s: %s", target, exc)
        return None

    def load(self) -> IndexerSettings:
        target = self.config_path
        if not target.is_file():
            logger.debug("No settings file at %s; using defaults", target)
            return IndexerSettings()
        document = self._read_document(target)
        if document is not None and not isinstance(document, dict):
            logger.warning("Ignoring settings in %s: expected a mapping, got %s", target, type(document).__name__)
        return IndexerSettings.from_mapping(document)

    def save(self, settings: IndexerSettings) -> None:
        """Write ``settings`` to the settings file; I/O errors propagate."""
        target = self.config_path
        text = yaml.safe_dump(settings.to_mapping(), sort_keys=False)
        try:
            target.write_text(text, encoding="utf-8")
        except OSError:
            logger.exception("Failed to write settings to %s", target)
            raise
        logger.info("Saved settings to %s", target)


__all__ = ["SettingsService"]
