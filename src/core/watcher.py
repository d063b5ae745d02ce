"""Watchdog-based monitoring of the indexed root."""

from __future__ import annotations

import logging
from pathlib import Path
from threading import Lock
from typing import Callable, Literal

from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer

from core.runner import TaskRunner
from utils.fs import from_system_path, to_system_path

FileEventType = Literal["created", "modified", "deleted", "moved"]
ChangeCallback = Callable[[Path, bool], None]

logger = logging.getLogger(__name__)


class _ChangeEventHandler(FileSystemEventHandler):
    """Dispatch file system events to the owning adapter."""

    def __init__(self, adapter: "WatchAdapter") -> None:
        super().__init__()
        self._adapter = adapter

    def on_created(self, event: FileSystemEvent) -> None:
        self._adapter.process_event(event, "created")

    def on_modified(self, event: FileSystemEvent) -> None:
        self._adapter.process_event(event, "modified")

    def on_deleted(self, event: FileSystemEvent) -> None:
        self._adapter.process_event(event, "deleted")

    def on_moved(self, event: FileSystemEvent) -> None:
        self._adapter.process_event(event, "moved")


class WatchAdapter:
    """Turn watchdog notifications into ``(path, error)`` calls on the sequence.

    Events arrive on the observer thread; each one is re-posted to ``runner`` so
    the callback always runs on the scheduling sequence. Directory events are
    forwarded too, the scheduler expands or purges them.
    """

    def __init__(
        self,
        root: str | Path,
        runner: TaskRunner,
        callback: ChangeCallback,
        *,
        recursive: bool = True,
        observer_factory: Callable[[], Observer] | None = None,
    ) -> None:
        self._root = Path(root).expanduser()
        self._runner = runner
        self._callback = callback
        self._recursive = recursive
        self._observer_factory = observer_factory or Observer
        self._observer: Observer | None = None
        self._running = False
        self._state_lock = Lock()

    @property
    def root(self) -> Path:
        return self._root

    def start(self) -> bool:
        """Start watching the root; report failure as an error event."""
        with self._state_lock:
            if self._running:
                return True
            observer = self._observer_factory()
            handler = _ChangeEventHandler(self)
            try:
                observer.schedule(handler, to_system_path(self._root), recursive=self._recursive)
                observer.start()
            except (OSError, RuntimeError) as exc:
                logger.error("Failed to watch %s: %s", self._root, exc)
                self._runner.post(lambda: self._callback(self._root, True))
                return False
            self._observer = observer
            self._running = True
        logger.info("Watching %s (recursive=%s)", self._root, self._recursive)
        return True

    def stop(self) -> None:
        with self._state_lock:
            if not self._running:
                return
            observer = self._observer
            self._observer = None
            self._running = False
        if observer is None:
            return
        try:
            observer.stop()
            observer.join()
        except RuntimeError:
            logger.warning("Failed to stop observer for %s", self._root, exc_info=True)

    def is_running(self) -> bool:
        with self._state_lock:
            return self._running

    def process_event(self, event: FileSystemEvent, event_type: FileEventType) -> None:
        """Handle a watchdog event coming from the observer thread."""
        paths = [event.src_path]
        if event_type == "moved":
            dest_path = getattr(event, "dest_path", None)
            if dest_path:
                paths.append(dest_path)
        for raw in paths:
            if not raw:
                continue
            self.notify_path(from_system_path(raw))

    def notify_path(self, path: Path, error: bool = False) -> None:
        """Forward ``path`` to the callback on the sequence."""
        candidate = Path(path)
        self._runner.post(lambda: self._callback(candidate, error))


__all__ = ["ChangeCallback", "FileEventType", "WatchAdapter"]
