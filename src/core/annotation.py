"""Per-image annotation: validate, decode, run the backend stages, persist."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import AbstractSet, Callable, Protocol, Sequence

from PIL import Image

from annotators.base import ClassifierStatus, ContentClassifier, OcrBackend
from core.contracts import AnnotationStoreLike, Decoder
from core.records import ImageRecord, IndexingBudget
from core.runner import Cancellable, TaskRunner
from core.sniffer import is_supported_image
from core.stats import IndexingStatus, Status, WorkerStats
from core.words import extract_from_lines, extract_words
from utils.fs import is_regular_file, safe_stat
from utils.image_io import decode_image_file

logger = logging.getLogger(__name__)

DEFAULT_MAX_FILE_SIZE = 20_000_000
DEFAULT_TIMEOUT = 120.0


@dataclass
class StageOutput:
    words: set[str] = field(default_factory=set)
    succeeded: bool = True


class AnnotationStage(Protocol):
    """One backend step contributing words to the shared record."""

    name: str
    requires_decode: bool
    start_status: IndexingStatus | None
    success_status: IndexingStatus | None

    def annotate(self, path: Path, image: Image.Image | None) -> StageOutput:
        """Run the backend; called off the scheduling sequence."""


class OcrStage:
    name = "ocr"
    requires_decode = True
    start_status = IndexingStatus.OCR_START
    success_status = IndexingStatus.OCR_SUCCEED

    def __init__(self, backend: OcrBackend, *, stop_words: AbstractSet[str] | None = None) -> None:
        self._backend = backend
        self._stop_words = stop_words

    @property
    def backend(self) -> OcrBackend:
        return self._backend

    def annotate(self, path: Path, image: Image.Image | None) -> StageOutput:
        if image is None:
            return StageOutput(succeeded=False)
        result = self._backend.perform_ocr(image)
        words = extract_from_lines((line.text for line in result.lines), self._stop_words)
        return StageOutput(words=words)


class ClassifierStage:
    name = "classifier"
    # the decoded bitmap is not used, but a failed decode still rejects the file
    requires_decode = True
    start_status = IndexingStatus.CLASSIFIER_START
    success_status = IndexingStatus.CLASSIFIER_SUCCEED

    def __init__(
        self,
        backend: ContentClassifier,
        *,
        confidence_threshold: int,
        stop_words: AbstractSet[str] | None = None,
    ) -> None:
        self._backend = backend
        self._threshold = int(confidence_threshold)
        self._stop_words = stop_words

    @property
    def backend(self) -> ContentClassifier:
        return self._backend

    def annotate(self, path: Path, image: Image.Image | None) -> StageOutput:
        result = self._backend.annotate_encoded_image(path)
        logger.debug("Classifier status %s with %d label(s) for %s", result.status.name, len(result.annotations), path)
        words: set[str] = set()
        for label in result.annotations:
            if label.confidence < self._threshold or not label.name:
                continue
            words |= extract_words(label.name, self._stop_words)
        return StageOutput(words=words, succeeded=result.status is ClassifierStatus.OK)


class FileNameStage:
    """Fallback annotator used when no backend is configured."""

    name = "file-name"
    requires_decode = False
    start_status = None
    success_status = None

    def annotate(self, path: Path, image: Image.Image | None) -> StageOutput:
        return StageOutput(words={Path(path).stem.lower()})


def build_stages(
    *,
    ocr: OcrBackend | None,
    classifier: ContentClassifier | None,
    confidence_threshold: int,
    stop_words: AbstractSet[str] | None = None,
) -> list[AnnotationStage]:
    """Return the ordered stage list: OCR first, classifier last."""
    stages: list[AnnotationStage] = []
    if ocr is not None:
        stages.append(OcrStage(ocr, stop_words=stop_words))
    if classifier is not None:
        stages.append(ClassifierStage(classifier, confidence_threshold=confidence_threshold, stop_words=stop_words))
    if not stages:
        logger.warning("No annotation backend enabled; indexing file names only")
        stages.append(FileNameStage())
    return stages


@dataclass
class _ImageJob:
    record: ImageRecord
    generation: int
    on_done: Callable[[Path], None]
    image: Image.Image | None = None
    timer: Cancellable | None = None
    stage_index: int = 0


class AnnotationPipeline:
    """Drive a single image through decode, the stage list and persistence.

    At most one image is in progress; :meth:`run` must only be called by the
    scheduler after the previous image reported completion.
    """

    def __init__(
        self,
        runner: TaskRunner,
        store: AnnotationStoreLike,
        *,
        stages: Sequence[AnnotationStage],
        budget: IndexingBudget,
        stats: WorkerStats | None = None,
        decoder: Decoder = decode_image_file,
        max_file_size: int = DEFAULT_MAX_FILE_SIZE,
        timeout: float = DEFAULT_TIMEOUT,
    ) -> None:
        if not stages:
            raise ValueError("AnnotationPipeline requires at least one stage")
        self._runner = runner
        self._store = store
        self._stages = list(stages)
        self._budget = budget
        self._stats = stats or WorkerStats()
        self._decoder = decoder
        self._max_file_size = int(max_file_size)
        self._timeout = float(timeout)
        self._generation = 0
        self._current: _ImageJob | None = None

    @property
    def stages(self) -> list[AnnotationStage]:
        return list(self._stages)

    @property
    def busy(self) -> bool:
        return self._current is not None

    def run(self, path: Path, on_done: Callable[[Path], None]) -> None:
        """Annotate ``path`` and call ``on_done(path)`` exactly once when finished."""
        info = safe_stat(path)
        if (
            info is None
            or not is_regular_file(info)
            or info.st_size == 0
            or info.st_size > self._max_file_size
            or not is_supported_image(path)
        ):
            logger.debug("Not an indexable image: %s", path)
            self._store.remove(path)
            on_done(path)
            return

        # Unchanged since the last pass; the stored annotations are current.
        if self._store.get_last_modified_time(path) == info.st_mtime:
            logger.debug("Unchanged since last indexed: %s", path)
            on_done(path)
            return

        logger.debug("Processing new %s (mtime=%s)", path, info.st_mtime)
        self._store.remove(path)

        if not self._budget.try_consume():
            logger.debug("Indexing limit %d reached; skipping %s", self._budget.limit, path)
            on_done(path)
            return

        self._stats.record_indexing(IndexingStatus.START)
        self._generation += 1
        job = _ImageJob(
            record=ImageRecord(path=Path(path), last_modified=info.st_mtime, size_bytes=info.st_size),
            generation=self._generation,
            on_done=on_done,
        )
        self._current = job

        if any(stage.requires_decode for stage in self._stages):
            self._runner.run_in_background(
                lambda: self._decoder(job.record.path),
                lambda image: self._on_decoded(job, image),
                lambda exc: self._on_decode_error(job, exc),
            )
        else:
            self._start_stages(job)

    def cancel(self) -> None:
        """Abandon the image in progress without reporting completion."""
        job = self._current
        if job is None:
            return
        if job.timer is not None:
            job.timer.cancel()
        self._current = None
        self._generation += 1

    def _is_stale(self, job: _ImageJob) -> bool:
        return self._current is not job or job.generation != self._generation

    def _on_decode_error(self, job: _ImageJob, exc: BaseException) -> None:
        logger.warning("Decoder raised for %s: %s", job.record.path, exc)
        self._on_decoded(job, None)

    def _on_decoded(self, job: _ImageJob, image: Image.Image | None) -> None:
        if self._is_stale(job):
            return
        if image is None or not image.width or not image.height:
            logger.error("Failed to decode image %s", job.record.path)
            self._stats.record_status(Status.FAILED_TO_DECODE_IMAGE)
            self._finish(job)
            return
        job.image = image
        self._start_stages(job)

    def _start_stages(self, job: _ImageJob) -> None:
        job.timer = self._runner.post_delayed(self._timeout, lambda: self._on_timeout(job))
        self._run_next_stage(job)

    def _run_next_stage(self, job: _ImageJob) -> None:
        if job.stage_index >= len(self._stages):
            # Written even without annotations so the mtime is remembered.
            self._store.insert(job.record)
            logger.debug("Indexed %s with %d annotation(s)", job.record.path, len(job.record.annotations))
            self._finish(job)
            return

        stage = self._stages[job.stage_index]
        if stage.start_status is not None:
            self._stats.record_indexing(stage.start_status)
        path = job.record.path
        image = job.image
        self._runner.run_in_background(
            lambda: stage.annotate(path, image),
            lambda output: self._on_stage_done(job, stage, output),
            lambda exc: self._on_stage_error(job, stage, exc),
        )

    def _on_stage_done(self, job: _ImageJob, stage: AnnotationStage, output: StageOutput) -> None:
        if self._is_stale(job):
            logger.debug("Ignoring late %s result for %s", stage.name, job.record.path)
            return
        if output.succeeded and stage.success_status is not None:
            self._stats.record_indexing(stage.success_status)
        job.record.annotations |= output.words
        job.stage_index += 1
        self._run_next_stage(job)

    def _on_stage_error(self, job: _ImageJob, stage: AnnotationStage, exc: BaseException) -> None:
        if self._is_stale(job):
            return
        logger.error("%s stage failed for %s", stage.name, job.record.path, exc_info=exc)
        job.stage_index += 1
        self._run_next_stage(job)

    def _on_timeout(self, job: _ImageJob) -> None:
        if self._is_stale(job):
            return
        logger.error("Annotators timed out after %.0fs for %s", self._timeout, job.record.path)
        self._stats.record_status(Status.IMAGE_PROCESSING_TIMEOUT)
        job.timer = None
        self._finish(job)

    def _finish(self, job: _ImageJob) -> None:
        if job.timer is not None:
            job.timer.cancel()
            job.timer = None
        job.image = None
        self._current = None
        self._generation += 1
        job.on_done(job.record.path)


__all__ = [
    "AnnotationPipeline",
    "AnnotationStage",
    "ClassifierStage",
    "FileNameStage",
    "OcrStage",
    "StageOutput",
    "build_stages",
]
