"""Single-flight FIFO that classifies and processes one path at a time."""

from __future__ import annotations

import logging
from collections import deque
from pathlib import Path
from typing import Callable, Iterable

from core.annotation import AnnotationPipeline
from core.contracts import AnnotationStoreLike
from core.runner import TaskRunner
from core.sniffer import ImageKind, classify
from core.stats import WorkerStats
from utils.fs import is_directory, is_regular_file, list_children, safe_stat

logger = logging.getLogger(__name__)


class Scheduler:
    """Drain admitted paths strictly in order, never two at once.

    The path being processed stays at the front of the queue until
    :meth:`advance` is called with it, so a late completion for an item that
    already finished is recognised and ignored. All methods must run on the
    runner's sequence.
    """

    def __init__(
        self,
        runner: TaskRunner,
        store: AnnotationStoreLike,
        pipeline: AnnotationPipeline,
        *,
        excluded: Iterable[str | Path] = (),
        stats: WorkerStats | None = None,
        on_drained: Callable[[], None] | None = None,
    ) -> None:
        self._runner = runner
        self._store = store
        self._pipeline = pipeline
        self._excluded = tuple(str(prefix) for prefix in excluded if str(prefix))
        self._stats = stats or WorkerStats()
        self._on_drained = on_drained
        self._queue: deque[Path] = deque()
        self._in_flight: Path | None = None
        self._pump_pending = False
        self._stopped = False

    @property
    def in_flight(self) -> Path | None:
        return self._in_flight

    def pending(self) -> list[Path]:
        return list(self._queue)

    def is_idle(self) -> bool:
        return not self._queue and self._in_flight is None

    def is_excluded(self, path: str | Path) -> bool:
        text = str(path)
        return any(text.startswith(prefix) for prefix in self._excluded)

    def on_file_change(self, path: str | Path, error: bool = False) -> None:
        """Admit ``path`` unless the event carries an error or the path is excluded."""
        if self._stopped:
            return
        if error:
            logger.warning("Dropping change event with error for %s", path)
            return
        if self.is_excluded(path):
            logger.debug("Ignoring excluded path %s", path)
            return

        was_empty = not self._queue
        self._queue.append(Path(path))
        self._stats.record_queue_size(len(self._queue))
        if was_empty:
            self._stats.drain_started()
            self._kick()

    def advance(self, path: Path) -> None:
        """Mark ``path`` done and move on; stale completions are no-ops."""
        if not self._queue or self._queue[0] != Path(path):
            logger.debug("Ignoring completion for %s; not at the queue front", path)
            return
        self._queue.popleft()
        self._in_flight = None
        self._stats.record_queue_size(len(self._queue))
        if self._queue:
            self._kick()
        else:
            self._drained()

    def stop(self) -> None:
        """Forget queued work and abandon the image in progress."""
        self._stopped = True
        self._pipeline.cancel()
        self._queue.clear()
        self._in_flight = None

    def _kick(self) -> None:
        if self._pump_pending or self._in_flight is not None or self._stopped:
            return
        self._pump_pending = True
        self._runner.post(self._process_next)

    def _process_next(self) -> None:
        self._pump_pending = False
        if self._in_flight is not None or self._stopped:
            return
        if not self._queue:
            return
        path = self._queue[0]
        self._in_flight = path
        self._classify(path)

    def _classify(self, path: Path) -> None:
        info = safe_stat(path)
        if info is not None and is_directory(info):
            children = list_children(path)
            logger.debug("Expanding %s (%d entries)", path, len(children))
            for child in children:
                self.on_file_change(child, False)
            self.advance(path)
            return

        if info is not None:
            if is_regular_file(info) and classify(path) is not ImageKind.NOT_IMAGE:
                self._pipeline.run(path, self.advance)
                return
            self.advance(path)
            return

        if not path.suffix:
            # Most likely a removed directory; purge everything indexed under it.
            indexed = self._store.search_by_directory(path)
            logger.debug("Purging %d indexed file(s) under removed %s", len(indexed), path)
            for child in indexed:
                self.on_file_change(child, False)
        else:
            self._store.remove(path)
        self.advance(path)

    def _drained(self) -> None:
        self._stats.drain_finished()
        if self._on_drained is not None:
            self._on_drained()


__all__ = ["Scheduler"]
