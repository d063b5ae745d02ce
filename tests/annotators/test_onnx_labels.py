"""Tests for the ONNX classifier helpers that do not need a model."""

from __future__ import annotations

from pathlib import Path

import numpy as np
import pytest

pytest.importorskip("onnxruntime")

from annotators.base import ClassifierStatus
from annotators.onnx_classifier import OnnxContentClassifier, load_labels, scores_to_confidence


def test_load_labels_with_header(tmp_path: Path) -> None:
    csv_path = tmp_path / "labels.csv"
    csv_path.write_text("mid,name\n/m/01,Cat\n/m/02,Dog\n", encoding="utf-8")

    labels = load_labels(csv_path)

    assert [label.name for label in labels] == ["Cat", "Dog"]
    assert [label.mid for label in labels] == ["/m/01", "/m/02"]


def test_load_labels_without_header(tmp_path: Path) -> None:
    csv_path = tmp_path / "labels.csv"
    csv_path.write_text("beach\nsunset\n", encoding="utf-8")

    assert [label.name for label in load_labels(csv_path)] == ["beach", "sunset"]


def test_scores_to_confidence_scale() -> None:
    confidences = scores_to_confidence(np.array([0.0, 0.5, 1.0, 1.7, -0.2]))
    assert confidences.tolist() == [0, 128, 255, 255, 0]


def test_missing_model_reports_not_ready(tmp_path: Path) -> None:
    classifier = OnnxContentClassifier(tmp_path / "model.onnx", tmp_path / "labels.csv")

    classifier.ensure_connected()

    assert classifier.is_ready() is False
    assert classifier.annotate_encoded_image(tmp_path / "a.jpg").status is ClassifierStatus.ERROR
