"""Pydantic schemas for indexer configuration."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Mapping

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from utils.env import safe_int
from utils.fs import absolute_path

DEFAULT_INDEXING_LIMIT = 500
# 79 of 255 (the classifier's maximum confidence), roughly 31%
DEFAULT_CONFIDENCE_THRESHOLD = 79
MAX_CONFIDENCE = 255
DEFAULT_MAX_FILE_SIZE = 20_000_000
DEFAULT_IMAGE_TIMEOUT = 120.0


def _normalise_path(value: str | Path) -> str:
    return str(Path(value).expanduser())


def _normalise_optional_path(value: Any) -> str | None:
    if value in (None, ""):
        return None
    return _normalise_path(str(value))


class OcrSettings(BaseModel):
    """Settings used to construct the OCR backend."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    name: str = "tesseract"
    lang: str = "eng"
    tesseract_cmd: str | None = None

    @field_validator("tesseract_cmd", mode="before")
    @classmethod
    def _validate_cmd(cls, value: Any) -> str | None:
        return _normalise_optional_path(value)

    @field_validator("name", mode="before")
    @classmethod
    def _validate_name(cls, value: Any) -> str:
        text = str(value or "").strip().lower()
        return text or "tesseract"


class ClassifierSettings(BaseModel):
    """Settings used to construct the image content classifier backend."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    name: str = "onnx"
    model_path: str | None = None
    labels_csv: str | None = None
    input_size: int = 224

    @field_validator("model_path", "labels_csv", mode="before")
    @classmethod
    def _validate_optional_path(cls, value: Any) -> str | None:
        return _normalise_optional_path(value)

    @field_validator("name", mode="before")
    @classmethod
    def _validate_name(cls, value: Any) -> str:
        text = str(value or "").strip().lower()
        return text or "onnx"

    @field_validator("input_size", mode="before")
    @classmethod
    def _coerce_input_size(cls, value: Any) -> int:
        return safe_int(value, 224, min_value=1)


class IndexerSettings(BaseModel):
    """Validated configuration used to run the annotation worker."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    root: str | None = None
    excluded: list[str] = Field(default_factory=list)
    use_ocr: bool = True
    use_classifier: bool = True
    use_file_watchers: bool = True
    indexing_limit_enabled: bool = True
    indexing_limit: int = DEFAULT_INDEXING_LIMIT
    confidence_threshold: int = DEFAULT_CONFIDENCE_THRESHOLD
    max_file_size: int = DEFAULT_MAX_FILE_SIZE
    image_timeout: float = DEFAULT_IMAGE_TIMEOUT
    stop_words: list[str] | None = None
    ocr: OcrSettings = Field(default_factory=OcrSettings)
    classifier: ClassifierSettings = Field(default_factory=ClassifierSettings)

    @model_validator(mode="before")
    @classmethod
    def _prepare_data(cls, data: Any) -> Any:
        if isinstance(data, Mapping):
            prepared = dict(data)
            if "excluded" not in prepared and "excludes" in prepared:
                prepared["excluded"] = prepared["excludes"]
            if "use_classifier" not in prepared and "use_ica" in prepared:
                prepared["use_classifier"] = prepared["use_ica"]
            return prepared
        return data

    @field_validator("root", mode="before")
    @classmethod
    def _normalise_root(cls, value: Any) -> str | None:
        if value in (None, ""):
            return None
        return str(absolute_path(str(value)))

    @field_validator("excluded", mode="before")
    @classmethod
    def _normalise_excluded(cls, value: Any) -> list[str]:
        if not value:
            return []
        if isinstance(value, (str, Path)):
            value = [value]
        return [str(absolute_path(str(item))) for item in value if item]

    @field_validator("indexing_limit", mode="before")
    @classmethod
    def _coerce_limit(cls, value: Any) -> int:
        return safe_int(value, DEFAULT_INDEXING_LIMIT, min_value=0)

    @field_validator("confidence_threshold", mode="before")
    @classmethod
    def _coerce_confidence(cls, value: Any) -> int:
        return safe_int(value, DEFAULT_CONFIDENCE_THRESHOLD, min_value=0, max_value=MAX_CONFIDENCE)

    @field_validator("max_file_size", mode="before")
    @classmethod
    def _coerce_max_file_size(cls, value: Any) -> int:
        return safe_int(value, DEFAULT_MAX_FILE_SIZE, min_value=1)

    @field_validator("image_timeout", mode="before")
    @classmethod
    def _coerce_timeout(cls, value: Any) -> float:
        try:
            timeout = float(value)
        except (TypeError, ValueError):
            return DEFAULT_IMAGE_TIMEOUT
        return timeout if timeout > 0 else DEFAULT_IMAGE_TIMEOUT

    @field_validator("stop_words", mode="before")
    @classmethod
    def _normalise_stop_words(cls, value: Any) -> list[str] | None:
        if value is None:
            return None
        if isinstance(value, str):
            value = value.split()
        return sorted({str(word).strip().lower() for word in value if str(word).strip()})

    @property
    def has_backends(self) -> bool:
        return self.use_ocr or self.use_classifier

    def to_mapping(self) -> dict[str, Any]:
        """Return a serialisable representation of the configuration."""

        payload = self.model_dump()
        payload["excluded"] = [str(Path(path)) for path in self.excluded]
        return payload

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any] | None) -> "IndexerSettings":
        if not isinstance(data, Mapping):
            data = {}
        return cls.model_validate(data)


__all__ = [
    "DEFAULT_CONFIDENCE_THRESHOLD",
    "DEFAULT_IMAGE_TIMEOUT",
    "DEFAULT_INDEXING_LIMIT",
    "DEFAULT_MAX_FILE_SIZE",
    "MAX_CONFIDENCE",
    "ClassifierSettings",
    "IndexerSettings",
    "OcrSettings",
]
