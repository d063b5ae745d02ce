"""Data transfer objects shared between the worker and the annotation store."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path


@dataclass
class ImageRecord:
    """Annotations extracted for a single image file.

    ``last_modified`` is the file's ``st_mtime`` at the time it was read; the
    store keeps it so unchanged files are not annotated again.
    """

    path: Path
    last_modified: float
    size_bytes: int
    annotations: set[str] = field(default_factory=set)


@dataclass
class IndexingBudget:
    """Per-session cap on how many images reach the annotation backends."""

    limit: int
    enabled: bool = True
    count_this_session: int = 0

    def try_consume(self) -> bool:
        """Reserve one slot, returning False when the budget is used up."""
        if not self.enabled:
            return True
        if self.count_this_session >= self.limit:
            return False
        self.count_this_session += 1
        return True


__all__ = ["ImageRecord", "IndexingBudget"]
