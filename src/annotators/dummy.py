"""Dummy annotators returning fixed outputs."""

from __future__ import annotations

from pathlib import Path
from typing import Sequence

from PIL import Image

from annotators.base import (
    ClassifierResult,
    ClassifierStatus,
    ContentClassifier,
    LabelAnnotation,
    OcrBackend,
    OcrLine,
    VisualAnnotation,
)


class DummyOcr(OcrBackend):
    """OCR stand-in used for tests and offline modes."""

    _DEFAULT_LINES = ("sample text",)

    def __init__(self, lines: Sequence[str] | None = None, *, ready: bool = True) -> None:
        self._lines = tuple(lines) if lines is not None else self._DEFAULT_LINES
        self._ready = ready
        self.calls = 0

    def is_ready(self) -> bool:
        return self._ready

    def perform_ocr(self, image: Image.Image) -> VisualAnnotation:
        self.calls += 1
        return VisualAnnotation(lines=[OcrLine(text=line) for line in self._lines])

    def disconnect(self) -> None:
        pass


class DummyClassifier(ContentClassifier):
    """Content classifier stand-in returning a fixed label."""

    _DEFAULT_LABELS = (LabelAnnotation(name="photo", confidence=255, id=1, mid="/m/dummy"),)

    def __init__(self, labels: Sequence[LabelAnnotation] | None = None, *, ready: bool = True) -> None:
        self._labels = tuple(labels) if labels is not None else self._DEFAULT_LABELS
        self._ready = ready
        self.connected = False
        self.retries_passed = 0
        self.calls = 0

    def ensure_connected(self) -> None:
        self.connected = True

    def is_ready(self) -> bool:
        return self._ready

    def set_num_retries_passed(self, retries: int) -> None:
        self.retries_passed = retries

    def annotate_encoded_image(self, path: Path) -> ClassifierResult:
        self.ensure_connected()
        self.calls += 1
        return ClassifierResult(status=ClassifierStatus.OK, annotations=list(self._labels))

    def disconnect(self) -> None:
        self.connected = False


__all__ = ["DummyClassifier", "DummyOcr"]
