"""Contracts implemented by the annotation backends."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Protocol, Sequence, runtime_checkable

from PIL import Image


@dataclass(frozen=True)
class OcrLine:
    """Single recognised line of text."""

    text: str


@dataclass
class VisualAnnotation:
    """Text recognised in one image."""

    lines: list[OcrLine] = field(default_factory=list)


class ClassifierStatus(Enum):
    OK = "ok"
    ERROR = "error"


@dataclass(frozen=True)
class LabelAnnotation:
    """Single label produced by the content classifier.

    ``confidence`` uses the classifier's 0..255 scale.
    """

    name: str | None
    confidence: int
    id: int = 0
    mid: str = ""


@dataclass
class ClassifierResult:
    status: ClassifierStatus
    annotations: Sequence[LabelAnnotation] = field(default_factory=list)


@runtime_checkable
class OcrBackend(Protocol):
    """Interface all OCR implementations must satisfy."""

    def is_ready(self) -> bool:
        """Return whether the recogniser is installed and initialised."""

    def perform_ocr(self, image: Image.Image) -> VisualAnnotation:
        """Recognise text lines in a decoded image."""

    def disconnect(self) -> None:
        """Release resources; the next call reconnects on demand."""


@runtime_checkable
class ContentClassifier(Protocol):
    """Interface all image content classifiers must satisfy."""

    def ensure_connected(self) -> None:
        """Start loading the model if it is not loaded yet."""

    def is_ready(self) -> bool:
        """Return whether the model is installed and initialised."""

    def set_num_retries_passed(self, retries: int) -> None:
        """Receive the readiness gate's retry count."""

    def annotate_encoded_image(self, path: Path) -> ClassifierResult:
        """Classify the encoded image stored at ``path``."""

    def disconnect(self) -> None:
        """Release resources; the next call reconnects on demand."""


__all__ = [
    "ClassifierResult",
    "ClassifierStatus",
    "ContentClassifier",
    "LabelAnnotation",
    "OcrBackend",
    "OcrLine",
    "VisualAnnotation",
]
