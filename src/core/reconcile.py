"""Startup sweep dropping index entries whose files disappeared."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Callable

from core.contracts import AnnotationStoreLike
from core.runner import TaskRunner
from utils.fs import path_exists

logger = logging.getLogger(__name__)


def find_missing(paths: list[Path], exists: Callable[[Path], bool] = path_exists) -> list[Path]:
    return [path for path in paths if not exists(path)]


class ReconciliationSweep:
    """Remove records for files deleted while the worker was not running.

    The store is read and written on the sequence; the existence checks run in
    the background pool.
    """

    def __init__(
        self,
        runner: TaskRunner,
        store: AnnotationStoreLike,
        *,
        exists: Callable[[Path], bool] = path_exists,
        on_finished: Callable[[list[Path]], None] | None = None,
    ) -> None:
        self._runner = runner
        self._store = store
        self._exists = exists
        self._on_finished = on_finished
        self._started = False
        self.removed: list[Path] = []

    def run(self) -> None:
        if self._started:
            return
        self._started = True
        indexed = self._store.get_all_files()
        logger.debug("Checking %d indexed file(s) for deletion", len(indexed))
        self._runner.run_in_background(
            lambda: find_missing(indexed, self._exists),
            self._on_missing,
            self._on_error,
        )

    def _on_missing(self, missing: list[Path]) -> None:
        for path in missing:
            self._store.remove(path)
        self.removed = list(missing)
        if missing:
            logger.info("Removed %d index entries for deleted files", len(missing))
        if self._on_finished is not None:
            self._on_finished(self.removed)

    def _on_error(self, exc: BaseException) -> None:
        logger.error("Deleted-file sweep failed", exc_info=exc)
        if self._on_finished is not None:
            self._on_finished([])


__all__ = ["ReconciliationSweep", "find_missing"]
