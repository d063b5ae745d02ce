"""Tests for the watchdog adapter."""

from __future__ import annotations

from pathlib import Path

from watchdog.events import DirCreatedEvent, FileDeletedEvent, FileModifiedEvent, FileMovedEvent

from core.watcher import WatchAdapter


def _adapter(tmp_path: Path, runner, observer_factory):
    factory, created = observer_factory
    events: list[tuple[Path, bool]] = []
    adapter = WatchAdapter(tmp_path, runner, lambda path, error: events.append((path, error)), observer_factory=factory)
    return adapter, created, events


def test_start_schedules_recursive_watch(tmp_path: Path, runner, observer_factory) -> None:
    adapter, created, _events = _adapter(tmp_path, runner, observer_factory)

    assert adapter.start() is True
    assert adapter.is_running()
    assert len(created) == 1
    assert created[0].started
    assert created[0].args == (str(tmp_path.resolve()), True)

    adapter.stop()
    assert not adapter.is_running()
    assert not created[0].started


def test_events_are_delivered_on_the_sequence(tmp_path: Path, runner, observer_factory) -> None:
    adapter, created, events = _adapter(tmp_path, runner, observer_factory)
    adapter.start()
    handler = created[0].handler
    image = tmp_path / "a.jpg"

    handler.dispatch(FileModifiedEvent(str(image)))
    assert events == []

    runner.run_until_idle()
    assert events == [(image, False)]


def test_all_event_kinds_are_forwarded(tmp_path: Path, runner, observer_factory) -> None:
    adapter, created, events = _adapter(tmp_path, runner, observer_factory)
    adapter.start()
    handler = created[0].handler

    handler.dispatch(DirCreatedEvent(str(tmp_path / "album")))
    handler.dispatch(FileDeletedEvent(str(tmp_path / "old.jpg")))
    handler.dispatch(FileMovedEvent(str(tmp_path / "src.jpg"), str(tmp_path / "dst.jpg")))
    runner.run_until_idle()

    assert [path for path, _error in events] == [
        tmp_path / "album",
        tmp_path / "old.jpg",
        tmp_path / "src.jpg",
        tmp_path / "dst.jpg",
    ]


def test_failed_start_reports_error_event(tmp_path: Path, runner) -> None:
    class _FailingObserver:
        def schedule(self, handler, path: str, recursive: bool) -> None:
            raise OSError("inotify limit reached")

    events: list[tuple[Path, bool]] = []
    adapter = WatchAdapter(
        tmp_path,
        runner,
        lambda path, error: events.append((path, error)),
        observer_factory=_FailingObserver,
    )

    assert adapter.start() is False
    runner.run_until_idle()

    assert events == [(tmp_path, True)]
    assert not adapter.is_running()
