"""Construct annotation backends from settings."""

from __future__ import annotations

import logging

from annotators.base import ContentClassifier, OcrBackend
from core.config import IndexerSettings
from utils.paths import get_app_paths

logger = logging.getLogger(__name__)


def resolve_ocr(settings: IndexerSettings, override: OcrBackend | None = None) -> OcrBackend | None:
    """Return the OCR backend named by ``settings`` or ``None`` when OCR is off."""
    if not settings.use_ocr:
        return None
    if override is not None:
        logger.info("OCR backend in use: %s (override)", type(override).__name__)
        return override

    name = settings.ocr.name
    if name == "dummy":
        from annotators.dummy import DummyOcr

        backend: OcrBackend = DummyOcr()
    elif name == "tesseract":
        from annotators.tesseract import TesseractOcr

        backend = TesseractOcr(lang=settings.ocr.lang, tesseract_cmd=settings.ocr.tesseract_cmd)
    else:
        raise ValueError(f"Unknown OCR backend '{settings.ocr.name}'")

    logger.info("OCR backend in use: %s, lang=%s", name, settings.ocr.lang)
    return backend


def resolve_classifier(
    settings: IndexerSettings,
    override: ContentClassifier | None = None,
) -> ContentClassifier | None:
    """Return the content classifier named by ``settings`` or ``None`` when disabled."""
    if not settings.use_classifier:
        return None
    if override is not None:
        logger.info("Classifier backend in use: %s (override)", type(override).__name__)
        return override

    cfg = settings.classifier
    model_path = cfg.model_path
    labels_csv = cfg.labels_csv
    if cfg.name == "dummy":
        from annotators.dummy import DummyClassifier

        backend: ContentClassifier = DummyClassifier()
    elif cfg.name == "onnx":
        default_model, default_labels = get_app_paths().default_classifier_files()
        model_path = cfg.model_path or default_model
        labels_csv = cfg.labels_csv or default_labels
        from annotators.onnx_classifier import OnnxContentClassifier

        backend = OnnxContentClassifier(model_path, labels_csv, input_size=cfg.input_size)
    else:
        raise ValueError(f"Unknown classifier '{cfg.name}'")

    logger.info(
        "Classifier backend in use: %s, model=%s, labels=%s, threshold=%d",
        cfg.name,
        model_path,
        labels_csv,
        settings.confidence_threshold,
    )
    return backend


__all__ = ["resolve_classifier", "resolve_ocr"]
