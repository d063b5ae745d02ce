"""Tests for the deleted-file sweep."""

from __future__ import annotations

from pathlib import Path

from core.reconcile import ReconciliationSweep, find_missing
from core.records import ImageRecord


def test_sweep_removes_records_of_deleted_files(tmp_path: Path, runner, store, images) -> None:
    present = images.jpeg(tmp_path / "present.jpg")
    deleted = tmp_path / "deleted.jpg"
    for path in (present, deleted):
        store.insert(ImageRecord(path=path, last_modified=1.0, size_bytes=1))
    finished: list[list[Path]] = []
    sweep = ReconciliationSweep(runner, store, on_finished=finished.append)

    sweep.run()
    runner.run_until_idle()

    assert store.get_all_files() == [present]
    assert finished == [[deleted]]


def test_existence_checks_run_in_background(tmp_path: Path, runner, store) -> None:
    store.insert(ImageRecord(path=tmp_path / "gone.jpg", last_modified=1.0, size_bytes=1))
    sweep = ReconciliationSweep(runner, store)
    runner.hold_background = True

    sweep.run()
    runner.run_until_idle()

    assert runner.background_pending == 1
    assert store.count() == 1

    runner.release_background()
    runner.run_until_idle()

    assert store.count() == 0


def test_sweep_runs_once(tmp_path: Path, runner, store) -> None:
    checked: list[Path] = []

    def exists(path: Path) -> bool:
        checked.append(path)
        return True

    store.insert(ImageRecord(path=tmp_path / "a.jpg", last_modified=1.0, size_bytes=1))
    sweep = ReconciliationSweep(runner, store, exists=exists)

    sweep.run()
    sweep.run()
    runner.run_until_idle()

    assert checked == [tmp_path / "a.jpg"]


def test_find_missing() -> None:
    present = {Path("/a"), Path("/c")}
    assert find_missing([Path("/a"), Path("/b"), Path("/c")], present.__contains__) == [Path("/b")]
