"""Status and counter bookkeeping for the annotation worker."""

from __future__ import annotations

import logging
import time
from collections import Counter
from dataclasses import dataclass, field
from enum import Enum

logger = logging.getLogger(__name__)


class Status(Enum):
    OK = 0
    FAILED_TO_INITIALIZE_CLASSIFIER = 1
    FAILED_TO_INITIALIZE_OCR = 2
    FAILED_TO_DECODE_IMAGE = 3
    IMAGE_PROCESSING_TIMEOUT = 4


class IndexingStatus(Enum):
    START = 0
    OCR_START = 1
    OCR_SUCCEED = 2
    CLASSIFIER_START = 3
    CLASSIFIER_SUCCEED = 4


@dataclass
class WorkerStats:
    """Counters describing one worker lifetime."""

    statuses: Counter = field(default_factory=Counter)
    indexing: Counter = field(default_factory=Counter)
    last_queue_size: int = 0
    max_queue_size: int = 0
    drains: int = 0
    last_drain_seconds: float | None = None
    _drain_started: float | None = None

    def record_status(self, status: Status) -> None:
        self.statuses[status] += 1
        if status is Status.OK:
            logger.debug("Worker status: %s", status.name)
        else:
            logger.info("Worker status: %s", status.name)

    def record_indexing(self, status: IndexingStatus) -> None:
        self.indexing[status] += 1

    def record_queue_size(self, size: int) -> None:
        self.last_queue_size = size
        self.max_queue_size = max(self.max_queue_size, size)

    def drain_started(self) -> None:
        self._drain_started = time.perf_counter()

    def drain_finished(self) -> float:
        started = self._drain_started
        elapsed = 0.0 if started is None else time.perf_counter() - started
        self._drain_started = None
        self.drains += 1
        self.last_drain_seconds = elapsed
        logger.info("Annotation queue drained in %.2fs (peak size %d)", elapsed, self.max_queue_size)
        return elapsed

    def count(self, status: Status | IndexingStatus) -> int:
        if isinstance(status, Status):
            return self.statuses[status]
        return self.indexing[status]


__all__ = ["IndexingStatus", "Status", "WorkerStats"]
