"""Compose the annotation worker from settings, backends and a store."""

from __future__ import annotations

import logging
import threading
from pathlib import Path
from typing import Callable

from watchdog.observers import Observer

from annotators.base import ContentClassifier, OcrBackend
from annotators.resolver import resolve_classifier, resolve_ocr
from core.annotation import AnnotationPipeline, build_stages
from core.config import IndexerSettings
from core.contracts import AnnotationStoreLike, Decoder
from core.readiness import ReadinessGate
from core.reconcile import ReconciliationSweep
from core.records import IndexingBudget
from core.runner import SequencedTaskRunner, TaskRunner
from core.scheduler import Scheduler
from core.stats import Status, WorkerStats
from core.watcher import WatchAdapter
from utils.fs import absolute_path
from utils.image_io import decode_image_file

logger = logging.getLogger(__name__)


class AnnotationWorker:
    """Background worker keeping the annotation store in sync with ``root``.

    Nothing is indexed until the readiness gate arms. Arming starts the watcher
    (when enabled), admits the whole root and runs the deleted-file sweep.
    ``drained`` is set each time the queue empties and cleared on new work.
    """

    def __init__(
        self,
        root: str | Path,
        store: AnnotationStoreLike,
        *,
        runner: TaskRunner,
        ocr: OcrBackend | None = None,
        classifier: ContentClassifier | None = None,
        settings: IndexerSettings | None = None,
        decoder: Decoder = decode_image_file,
        observer_factory: Callable[[], Observer] | None = None,
        use_file_watchers: bool | None = None,
        gate_initial_delay: float | None = None,
    ) -> None:
        self.settings = settings or IndexerSettings()
        self.root = absolute_path(root)
        self.store = store
        self.runner = runner
        self.ocr = ocr
        self.classifier = classifier
        self.stats = WorkerStats()
        self.budget = IndexingBudget(
            limit=self.settings.indexing_limit,
            enabled=self.settings.indexing_limit_enabled,
        )
        self.drained = threading.Event()
        self.swept = threading.Event()
        self.gate_failed = threading.Event()
        self._use_watchers = self.settings.use_file_watchers if use_file_watchers is None else use_file_watchers

        stop_words = set(self.settings.stop_words) if self.settings.stop_words is not None else None
        self.pipeline = AnnotationPipeline(
            runner,
            store,
            stages=build_stages(
                ocr=ocr,
                classifier=classifier,
                confidence_threshold=self.settings.confidence_threshold,
                stop_words=stop_words,
            ),
            budget=self.budget,
            stats=self.stats,
            decoder=decoder,
            max_file_size=self.settings.max_file_size,
            timeout=self.settings.image_timeout,
        )
        self.scheduler = Scheduler(
            runner,
            store,
            self.pipeline,
            excluded=[absolute_path(prefix) for prefix in self.settings.excluded],
            stats=self.stats,
            on_drained=self._on_drained,
        )
        self.watcher = WatchAdapter(
            self.root,
            runner,
            self._on_file_change,
            observer_factory=observer_factory,
        )
        self.sweep = ReconciliationSweep(runner, store, on_finished=lambda _removed: self.swept.set())
        gate_kwargs = {}
        if gate_initial_delay is not None:
            gate_kwargs["initial_delay"] = gate_initial_delay
        self.gate = ReadinessGate(
            runner,
            ocr=ocr,
            classifier=classifier,
            on_armed=self._on_armed,
            on_failed=self._on_gate_failed,
            stats=self.stats,
            **gate_kwargs,
        )

    @classmethod
    def from_settings(
        cls,
        settings: IndexerSettings,
        store: AnnotationStoreLike,
        *,
        root: str | Path | None = None,
        runner: TaskRunner | None = None,
        **kwargs,
    ) -> "AnnotationWorker":
        target = root if root is not None else settings.root
        if not target:
            raise ValueError("No root directory configured")
        return cls(
            target,
            store,
            runner=runner or SequencedTaskRunner(),
            ocr=resolve_ocr(settings),
            classifier=resolve_classifier(settings),
            settings=settings,
            **kwargs,
        )

    def start(self) -> None:
        if isinstance(self.runner, SequencedTaskRunner):
            self.runner.start()
        logger.info(
            "Starting annotation worker for %s (ocr=%s, classifier=%s)",
            self.root,
            self.ocr is not None,
            self.classifier is not None,
        )
        self.runner.post(self.gate.start)

    def stop(self) -> None:
        done = threading.Event()

        def _shutdown() -> None:
            self.gate.stop()
            self.scheduler.stop()
            self._disconnect_backends()
            done.set()

        self.watcher.stop()
        if isinstance(self.runner, SequencedTaskRunner):
            if self.runner.is_running():
                self.runner.post(_shutdown)
                done.wait(timeout=5.0)
            self.runner.stop()
        else:
            _shutdown()
        logger.info("Annotation worker stopped")

    def _on_armed(self) -> None:
        if self._use_watchers:
            self.watcher.start()
        self.stats.record_status(Status.OK)
        self._on_file_change(self.root, False)
        self.sweep.run()

    def _on_gate_failed(self) -> None:
        logger.error("Annotation backends never became ready; nothing will be indexed")
        self.gate_failed.set()

    def _on_file_change(self, path: Path, error: bool) -> None:
        if not error and not self.scheduler.is_excluded(path):
            self.drained.clear()
        self.scheduler.on_file_change(path, error)

    def _on_drained(self) -> None:
        self._disconnect_backends()
        self.drained.set()

    def _disconnect_backends(self) -> None:
        if self.ocr is not None:
            self.ocr.disconnect()
        if self.classifier is not None:
            self.classifier.disconnect()


__all__ = ["AnnotationWorker"]
