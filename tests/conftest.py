"""Shared pytest fixtures."""

from __future__ import annotations

from collections import deque
from pathlib import Path
from types import SimpleNamespace
from typing import Any, Callable

import pytest
from PIL import Image

from db.annotations import AnnotationStore


class _ManualDelayed:
    def __init__(self, due: float, order: int, task: Callable[[], None]) -> None:
        self.due = due
        self.order = order
        self.task = task
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True


class ManualTaskRunner:
    """Deterministic runner: tasks run only when the test drives them.

    ``now`` is a fake clock moved by :meth:`advance`. Background work is run
    inline by :meth:`run_until_idle` unless ``hold_background`` is set, in
    which case it waits for :meth:`release_background`.
    """

    def __init__(self) -> None:
        self.now = 0.0
        self.hold_background = False
        self.delays: list[float] = []
        self._tasks: deque[Callable[[], None]] = deque()
        self._delayed: list[_ManualDelayed] = []
        self._background: deque[tuple[Callable[[], Any], Callable[[Any], None], Any]] = deque()
        self._order = 0

    def post(self, task: Callable[[], None]) -> None:
        self._tasks.append(task)

    def post_delayed(self, delay: float, task: Callable[[], None]) -> _ManualDelayed:
        self._order += 1
        delayed = _ManualDelayed(self.now + float(delay), self._order, task)
        self._delayed.append(delayed)
        self.delays.append(float(delay))
        return delayed

    def run_in_background(self, fn, reply, on_error=None) -> None:
        self._background.append((fn, reply, on_error))

    @property
    def background_pending(self) -> int:
        return len(self._background)

    def pending_delayed(self) -> list[_ManualDelayed]:
        return [item for item in self._delayed if not item.cancelled]

    def _run_one_background(self) -> None:
        fn, reply, on_error = self._background.popleft()
        try:
            result = fn()
        except Exception as exc:
            if on_error is None:
                raise
            self.post(lambda error=exc: on_error(error))
            return
        self.post(lambda value=result: reply(value))

    def release_background(self, count: int | None = None) -> None:
        released = 0
        while self._background and (count is None or released < count):
            self._run_one_background()
            released += 1

    def run_until_idle(self) -> None:
        while self._tasks or (self._background and not self.hold_background):
            if self._tasks:
                self._tasks.popleft()()
            else:
                self._run_one_background()

    def advance(self, seconds: float) -> None:
        target = self.now + float(seconds)
        while True:
            self.run_until_idle()
            due = [item for item in self.pending_delayed() if item.due <= target]
            if not due:
                break
            item = min(due, key=lambda candidate: (candidate.due, candidate.order))
            self._delayed.remove(item)
            self.now = item.due
            item.task()
        self.now = target
        self.run_until_idle()


def write_jpeg(path: Path, size: tuple[int, int] = (16, 16), color: str = "red") -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    Image.new("RGB", size, color).save(path, format="JPEG")
    return path


def write_png(path: Path, size: tuple[int, int] = (16, 16), color: str = "blue") -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    Image.new("RGB", size, color).save(path, format="PNG")
    return path


def webp_header(flags: int) -> bytes:
    """Return a minimal RIFF/WEBP header carrying a VP8X chunk with ``flags``."""
    return b"RIFF" + b"\x00" * 4 + b"WEBP" + b"VP8X" + b"\x0a\x00\x00\x00" + bytes([flags]) + b"\x00" * 9


@pytest.fixture()
def runner() -> ManualTaskRunner:
    return ManualTaskRunner()


@pytest.fixture()
def store():
    annotation_store = AnnotationStore(":memory:")
    try:
        yield annotation_store
    finally:
        annotation_store.close()


class _DummyObserver:
    """Minimal watchdog observer stub used for unit tests."""

    def __init__(self) -> None:
        self.handler = None
        self.args = None
        self.started = False

    def schedule(self, handler, path: str, recursive: bool) -> None:
        self.handler = handler
        self.args = (path, recursive)

    def start(self) -> None:
        self.started = True

    def stop(self) -> None:
        self.started = False

    def join(self, timeout: float | None = None) -> None:
        return None


@pytest.fixture()
def observer_factory() -> tuple[Callable[[], _DummyObserver], list[_DummyObserver]]:
    created: list[_DummyObserver] = []

    def factory() -> _DummyObserver:
        observer = _DummyObserver()
        created.append(observer)
        return observer

    return factory, created


@pytest.fixture()
def images() -> SimpleNamespace:
    """Helpers writing small real image files."""
    return SimpleNamespace(jpeg=write_jpeg, png=write_png, webp_header=webp_header)
