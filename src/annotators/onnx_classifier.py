"""ONNX Runtime implementation of the image content classifier."""

from __future__ import annotations

import csv
import logging
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable

import numpy as np
import onnxruntime as ort
from PIL import Image

from annotators.base import (
    ClassifierResult,
    ClassifierStatus,
    ContentClassifier,
    LabelAnnotation,
)
from core.config.schema import MAX_CONFIDENCE

logger = logging.getLogger(__name__)

_CUDA_PROVIDER = "CUDAExecutionProvider"
_CPU_PROVIDER = "CPUExecutionProvider"
_DEFAULT_TOP_K = 32


@dataclass(frozen=True)
class _Label:
    name: str
    mid: str = ""


def _sigmoid(x: np.ndarray) -> np.ndarray:
    return 1.0 / (1.0 + np.exp(-x))


def load_labels(csv_path: Path) -> list[_Label]:
    """Read label names (and optional ``mid`` identifiers) from ``csv_path``.

    Accepts a headered CSV with a ``name`` column, or a header-less file whose
    first column is the label name.
    """
    with csv_path.open("r", encoding="utf-8-sig", newline="") as handle:
        rows = [row for row in csv.reader(handle) if row]
    if not rows:
        return []
    header = [cell.strip().lower() for cell in rows[0]]
    if "name" in header:
        name_idx = header.index("name")
        mid_idx = header.index("mid") if "mid" in header else None
        body = rows[1:]
    else:
        name_idx, mid_idx, body = 0, None, rows
    labels: list[_Label] = []
    for row in body:
        name = row[name_idx].strip() if len(row) > name_idx else ""
        mid = row[mid_idx].strip() if mid_idx is not None and len(row) > mid_idx else ""
        labels.append(_Label(name=name, mid=mid))
    return labels


def scores_to_confidence(scores: np.ndarray) -> np.ndarray:
    """Map probabilities in ``[0, 1]`` onto the 0..255 confidence scale."""
    clipped = np.clip(scores.astype(np.float32), 0.0, 1.0)
    return np.rint(clipped * MAX_CONFIDENCE).astype(np.int32)


class OnnxContentClassifier(ContentClassifier):
    """Multi-label image classifier backed by an ONNX model and a labels CSV."""

    def __init__(
        self,
        model_path: str | Path,
        labels_csv: str | Path,
        *,
        input_size: int = 224,
        providers: Iterable[str] | None = None,
        top_k: int = _DEFAULT_TOP_K,
    ) -> None:
        self._model_path = Path(model_path)
        self._labels_path = Path(labels_csv)
        self._input_size = int(input_size)
        self._providers = list(providers) if providers is not None else None
        self._top_k = max(1, int(top_k))
        self._labels: list[_Label] = []
        self._session: ort.InferenceSession | None = None
        self._input_name = ""
        self._channels_first = False
        self._lock = threading.Lock()
        self._retries_passed = 0

    @property
    def model_path(self) -> Path:
        return self._model_path

    def is_ready(self) -> bool:
        return self._model_path.is_file() and self._labels_path.is_file()

    def set_num_retries_passed(self, retries: int) -> None:
        self._retries_passed = int(retries)

    def _choose_providers(self) -> list[str]:
        if self._providers is not None:
            return self._providers
        available = list(ort.get_available_providers())
        if _CUDA_PROVIDER in available:
            return [_CUDA_PROVIDER, _CPU_PROVIDER]
        return [_CPU_PROVIDER]

    def ensure_connected(self) -> None:
        with self._lock:
            if self._session is not None:
                return
            if not self.is_ready():
                logger.info(
                    "Classifier model not installed yet (model=%s, labels=%s, retries=%d)",
                    self._model_path,
                    self._labels_path,
                    self._retries_passed,
                )
                return
            self._labels = load_labels(self._labels_path)
            providers = self._choose_providers()
            session = ort.InferenceSession(str(self._model_path), providers=providers)
            model_input = session.get_inputs()[0]
            shape = list(model_input.shape)
            # NCHW models put the channel axis second
            self._channels_first = len(shape) == 4 and shape[1] == 3
            self._input_name = model_input.name
            self._session = session
            logger.info(
                "Classifier loaded %s with %d labels (providers=%s, layout=%s)",
                self._model_path,
                len(self._labels),
                providers,
                "NCHW" if self._channels_first else "NHWC",
            )

    def disconnect(self) -> None:
        with self._lock:
            if self._session is not None:
                logger.debug("Classifier session released")
            self._session = None

    def _preprocess(self, path: Path) -> np.ndarray:
        with Image.open(path) as img:
            rgb = img.convert("RGB").resize((self._input_size, self._input_size), Image.Resampling.BILINEAR)
            arr = np.asarray(rgb, dtype=np.float32) / 255.0
        if self._channels_first:
            arr = np.transpose(arr, (2, 0, 1))
        return arr[np.newaxis, ...]

    def _postprocess(self, logits: np.ndarray) -> list[LabelAnnotation]:
        scores = np.asarray(logits, dtype=np.float32).reshape(-1)
        if scores.size and (scores.min() < 0.0 or scores.max() > 1.0):
            scores = _sigmoid(scores)
        count = min(scores.size, len(self._labels))
        if count == 0:
            return []
        scores = scores[:count]
        order = np.argsort(-scores)[: self._top_k]
        confidences = scores_to_confidence(scores[order])
        annotations: list[LabelAnnotation] = []
        for index, confidence in zip(order.tolist(), confidences.tolist()):
            label = self._labels[index]
            annotations.append(
                LabelAnnotation(name=label.name or None, confidence=int(confidence), id=int(index), mid=label.mid)
            )
        return annotations

    def annotate_encoded_image(self, path: Path) -> ClassifierResult:
        self.ensure_connected()
        with self._lock:
            session = self._session
        if session is None:
            return ClassifierResult(status=ClassifierStatus.ERROR)
        try:
            batch = self._preprocess(Path(path))
        except OSError as exc:
            logger.warning("Classifier could not read %s: %s", path, exc)
            return ClassifierResult(status=ClassifierStatus.ERROR)
        outputs = session.run(None, {self._input_name: batch})
        return ClassifierResult(status=ClassifierStatus.OK, annotations=self._postprocess(outputs[0]))


__all__ = ["OnnxContentClassifier", "load_labels", "scores_to_confidence"]
