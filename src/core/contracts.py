"""Collaborator contracts consumed by the annotation worker."""

from __future__ import annotations

from pathlib import Path
from typing import Callable, Protocol

from PIL import Image

from core.records import ImageRecord

Decoder = Callable[[Path], "Image.Image | None"]


class AnnotationStoreLike(Protocol):
    """Interface implemented by persistent annotation stores."""

    def insert(self, record: ImageRecord) -> None:
        """Replace any stored record for ``record.path``."""

    def remove(self, path: Path) -> None:
        """Drop the record for ``path`` if one exists."""

    def get_last_modified_time(self, path: Path) -> float | None:
        """Return the modification time recorded for ``path``."""

    def get_all_files(self) -> list[Path]:
        """Return every indexed path."""

    def search_by_directory(self, directory: Path) -> list[Path]:
        """Return every indexed path below ``directory``."""


__all__ = ["AnnotationStoreLike", "Decoder"]
