"""Locations of lensmark's settings, database, logs and installed models."""

from __future__ import annotations

import logging
import os
from pathlib import Path
from types import MappingProxyType
from typing import Callable, Mapping

from platformdirs import PlatformDirs

logger = logging.getLogger(__name__)

DATA_DIR_ENV = "LENSMARK_DATA_DIR"
CONFIG_DIR_ENV = "LENSMARK_CONFIG_DIR"

CLASSIFIER_MODEL_FILENAME = "classifier.onnx"
CLASSIFIER_LABELS_FILENAME = "classifier_labels.csv"


class AppPaths:
    """Resolve per-user directories; environment overrides win over platformdirs.

    ``env`` is captured once at construction so tests can pass a plain dict.
    """

    def __init__(
        self,
        env: Mapping[str, str] | None = None,
        *,
        app_name: str = "lensmark",
        env_var: str = DATA_DIR_ENV,
        config_env_var: str = CONFIG_DIR_ENV,
        platform_dirs_factory: Callable[[str], PlatformDirs] | None = None,
    ) -> None:
        self._env = MappingProxyType(dict(env) if env is not None else dict(os.environ))
        self._app_name = app_name
        self._env_var = env_var
        self._config_env_var = config_env_var
        self._platform_dirs_factory = platform_dirs_factory or self._default_platform_dirs

    @staticmethod
    def _default_platform_dirs(app_name: str) -> PlatformDirs:
        return PlatformDirs(appname=app_name, appauthor=False, roaming=True)

    def _override(self, name: str) -> Path | None:
        value = self._env.get(name)
        return Path(value).expanduser() if value else None

    def data_dir(self) -> Path:
        override = self._override(self._env_var)
        if override is not None:
            return override
        return Path(self._platform_dirs_factory(self._app_name).user_data_dir)

    def config_dir(self) -> Path:
        override = self._override(self._config_env_var)
        if override is not None:
            return override
        return Path(self._platform_dirs_factory(self._app_name).user_config_dir)

    def config_path(self, filename: str = "config.yaml") -> Path:
        return self.config_dir() / filename

    def db_path(self) -> Path:
        """SQLite file holding the annotation records."""
        return self.data_dir() / "annotations.db"

    def log_dir(self) -> Path:
        return self.data_dir() / "logs"

    def models_dir(self) -> Path:
        """Directory the classifier model and its labels are installed into."""
        return self.data_dir() / "models"

    def default_classifier_files(self) -> tuple[Path, Path]:
        models = self.models_dir()
        return models / CLASSIFIER_MODEL_FILENAME, models / CLASSIFIER_LABELS_FILENAME

    def ensure_data_dirs(self) -> None:
        for directory in (self.data_dir(), self.log_dir(), self.models_dir()):
            directory.mkdir(parents=True, exist_ok=True)
        logger.debug("Data directories ready under %s", self.data_dir())


__all__ = [
    "AppPaths",
    "CLASSIFIER_LABELS_FILENAME",
    "CLASSIFIER_MODEL_FILENAME",
    "CONFIG_DIR_ENV",
    "DATA_DIR_ENV",
]
