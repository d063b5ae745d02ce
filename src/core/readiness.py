"""Wait for the annotation backends to finish installing before indexing."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Callable

from annotators.base import ContentClassifier, OcrBackend
from core.runner import Cancellable, TaskRunner
from core.stats import Status, WorkerStats

logger = logging.getLogger(__name__)

DEFAULT_INITIAL_DELAY = 1.0
DEFAULT_BASE_DELAY = 2.0
# 2 ** 12 seconds brings the total wait past two hours
DEFAULT_MAX_RETRIES = 12


class GateState(Enum):
    IDLE = "idle"
    WAITING = "waiting"
    ARMED = "armed"
    FAILED = "failed"
    STOPPED = "stopped"


@dataclass
class RetryState:
    attempts: int = 0
    next_delay: float = 0.0


class ReadinessGate:
    """Poll backend readiness with exponential backoff until ready or out of retries."""

    def __init__(
        self,
        runner: TaskRunner,
        *,
        ocr: OcrBackend | None,
        classifier: ContentClassifier | None,
        on_armed: Callable[[], None],
        on_failed: Callable[[], None] | None = None,
        stats: WorkerStats | None = None,
        initial_delay: float = DEFAULT_INITIAL_DELAY,
        base_delay: float = DEFAULT_BASE_DELAY,
        max_retries: int = DEFAULT_MAX_RETRIES,
    ) -> None:
        self._runner = runner
        self._ocr = ocr
        self._classifier = classifier
        self._on_armed = on_armed
        self._on_failed = on_failed
        self._stats = stats or WorkerStats()
        self._initial_delay = float(initial_delay)
        self._base_delay = float(base_delay)
        self._max_retries = int(max_retries)
        self.retry = RetryState()
        self.state = GateState.IDLE
        self._pending: Cancellable | None = None

    def start(self) -> None:
        """Schedule the first readiness poll."""
        if self.state is not GateState.IDLE:
            return
        self.state = GateState.WAITING
        if self._classifier is not None:
            logger.debug("Connecting content classifier")
            self._classifier.ensure_connected()
        self._pending = self._runner.post_delayed(self._initial_delay, self.poll)

    def stop(self) -> None:
        if self._pending is not None:
            self._pending.cancel()
            self._pending = None
        if self.state is GateState.WAITING:
            self.state = GateState.STOPPED

    def _missing(self) -> list[str]:
        missing: list[str] = []
        if self._ocr is not None and not self._ocr.is_ready():
            missing.append("ocr")
        if self._classifier is not None and not self._classifier.is_ready():
            missing.append("classifier")
        return missing

    def poll(self) -> None:
        """Check readiness once; arm, give up, or schedule the next poll."""
        self._pending = None
        if self.state is not GateState.WAITING:
            return

        missing = self._missing()
        if not missing:
            logger.info("Annotation backends ready after %d retries", self.retry.attempts)
            self.state = GateState.ARMED
            self._on_armed()
            return

        logger.debug("Backends not ready (%s); attempt %d", ", ".join(missing), self.retry.attempts)
        if self.retry.attempts > self._max_retries:
            self.state = GateState.FAILED
            if "classifier" in missing:
                logger.error("Failed to initialize the content classifier.")
                self._stats.record_status(Status.FAILED_TO_INITIALIZE_CLASSIFIER)
            if "ocr" in missing:
                logger.error("Failed to initialize OCR.")
                self._stats.record_status(Status.FAILED_TO_INITIALIZE_OCR)
            if self._on_failed is not None:
                self._on_failed()
            return

        delay = self._base_delay ** self.retry.attempts
        self.retry.next_delay = delay
        self._pending = self._runner.post_delayed(delay, self.poll)
        self.retry.attempts += 1
        if self._classifier is not None:
            self._classifier.set_num_retries_passed(self.retry.attempts)


__all__ = [
    "DEFAULT_BASE_DELAY",
    "DEFAULT_INITIAL_DELAY",
    "DEFAULT_MAX_RETRIES",
    "GateState",
    "ReadinessGate",
    "RetryState",
]
