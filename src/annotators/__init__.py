"""Annotation backends for lensmark."""

from .base import (
    ClassifierResult,
    ClassifierStatus,
    ContentClassifier,
    LabelAnnotation,
    OcrBackend,
    OcrLine,
    VisualAnnotation,
)

__all__ = [
    "ClassifierResult",
    "ClassifierStatus",
    "ContentClassifier",
    "LabelAnnotation",
    "OcrBackend",
    "OcrLine",
    "VisualAnnotation",
]
