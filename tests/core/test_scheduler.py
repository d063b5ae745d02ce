"""Tests for the single-flight work queue."""

from __future__ import annotations

from pathlib import Path

from PIL import Image

from annotators.dummy import DummyOcr
from core.annotation import AnnotationPipeline, build_stages
from core.records import ImageRecord, IndexingBudget
from core.scheduler import Scheduler
from core.stats import WorkerStats


def _make_scheduler(runner, store, *, ocr=None, excluded=(), limit=500, on_drained=None, stats=None):
    stats = stats or WorkerStats()
    pipeline = AnnotationPipeline(
        runner,
        store,
        stages=build_stages(ocr=ocr or DummyOcr(), classifier=None, confidence_threshold=79),
        budget=IndexingBudget(limit=limit),
        stats=stats,
    )
    return Scheduler(runner, store, pipeline, excluded=excluded, stats=stats, on_drained=on_drained)


def test_paths_are_processed_one_at_a_time_in_order(tmp_path: Path, runner, store, images) -> None:
    paths = [images.jpeg(tmp_path / f"img{i}.jpg") for i in range(3)]
    order: list[Path] = []

    def decoder(path: Path):
        order.append(path)
        return Image.new("RGB", (4, 4))

    pipeline = AnnotationPipeline(
        runner,
        store,
        stages=build_stages(ocr=DummyOcr(), classifier=None, confidence_threshold=79),
        budget=IndexingBudget(limit=500),
        decoder=decoder,
    )
    scheduler = Scheduler(runner, store, pipeline)
    runner.hold_background = True

    for path in paths:
        scheduler.on_file_change(path, False)
    runner.run_until_idle()

    assert scheduler.in_flight == paths[0]
    assert runner.background_pending == 1

    while runner.background_pending:
        assert runner.background_pending == 1
        runner.release_background(1)
        runner.run_until_idle()

    assert order == paths
    assert scheduler.is_idle()
    assert store.get_all_files() == sorted(paths)


def test_directory_is_expanded_recursively(tmp_path: Path, runner, store, images) -> None:
    root = tmp_path / "root"
    top = images.jpeg(root / "a.jpg")
    nested = images.png(root / "sub" / "b.png")
    (root / "notes.txt").write_text("skip me", encoding="utf-8")
    scheduler = _make_scheduler(runner, store)

    scheduler.on_file_change(root, False)
    runner.run_until_idle()

    assert store.get_all_files() == [top, nested]
    assert store.get_annotations(top) == {"sample", "text"}


def test_missing_file_removes_its_record(tmp_path: Path, runner, store) -> None:
    gone = tmp_path / "gone.jpg"
    store.insert(ImageRecord(path=gone, last_modified=1.0, size_bytes=10, annotations={"old"}))
    scheduler = _make_scheduler(runner, store)

    scheduler.on_file_change(gone, False)
    runner.run_until_idle()

    assert store.get_all_files() == []


def test_missing_directory_purges_everything_below(tmp_path: Path, runner, store) -> None:
    removed_dir = tmp_path / "album"
    keep = tmp_path / "albums" / "keep.jpg"
    for path in (removed_dir / "a.jpg", removed_dir / "deep" / "b.jpg", keep):
        store.insert(ImageRecord(path=path, last_modified=1.0, size_bytes=10))
    scheduler = _make_scheduler(runner, store)

    scheduler.on_file_change(removed_dir, False)
    runner.run_until_idle()

    assert store.get_all_files() == [keep]


def test_excluded_and_errored_events_are_dropped(tmp_path: Path, runner, store, images) -> None:
    private = images.jpeg(tmp_path / "private" / "a.jpg")
    public = images.jpeg(tmp_path / "public" / "b.jpg")
    scheduler = _make_scheduler(runner, store, excluded=[str(tmp_path / "private")])

    scheduler.on_file_change(private, False)
    scheduler.on_file_change(public, True)
    runner.run_until_idle()

    assert scheduler.pending() == []
    assert store.get_all_files() == []

    scheduler.on_file_change(tmp_path, False)
    runner.run_until_idle()

    assert store.get_all_files() == [public]


def test_exclusion_is_case_sensitive_prefix(tmp_path: Path, runner, store) -> None:
    scheduler = _make_scheduler(runner, store, excluded=["/data/Private"])

    assert scheduler.is_excluded("/data/Private/a.jpg")
    assert scheduler.is_excluded("/data/PrivateStuff/a.jpg")
    assert not scheduler.is_excluded("/data/private/a.jpg")


def test_stale_completion_is_ignored(tmp_path: Path, runner, store, images) -> None:
    first = images.jpeg(tmp_path / "first.jpg")
    second = images.jpeg(tmp_path / "second.jpg")
    scheduler = _make_scheduler(runner, store)
    runner.hold_background = True

    scheduler.on_file_change(first, False)
    scheduler.on_file_change(second, False)
    runner.run_until_idle()

    scheduler.advance(second)

    assert scheduler.pending() == [first, second]
    assert scheduler.in_flight == first


def test_drain_reports_once_per_empty_queue(tmp_path: Path, runner, store, images) -> None:
    drains: list[int] = []
    stats = WorkerStats()
    images.jpeg(tmp_path / "a.jpg")
    images.jpeg(tmp_path / "b.jpg")
    scheduler = _make_scheduler(runner, store, on_drained=lambda: drains.append(1), stats=stats)

    scheduler.on_file_change(tmp_path, False)
    runner.run_until_idle()

    assert drains == [1]
    assert stats.drains == 1
    assert stats.max_queue_size >= 2

    scheduler.on_file_change(tmp_path / "a.jpg", False)
    runner.run_until_idle()

    assert drains == [1, 1]


def test_unchanged_files_are_not_reannotated(tmp_path: Path, runner, store, images) -> None:
    ocr = DummyOcr()
    images.jpeg(tmp_path / "a.jpg")
    scheduler = _make_scheduler(runner, store, ocr=ocr)

    scheduler.on_file_change(tmp_path, False)
    runner.run_until_idle()
    scheduler.on_file_change(tmp_path, False)
    runner.run_until_idle()

    assert ocr.calls == 1


def test_exhausted_budget_still_completes_images_and_deletions(tmp_path: Path, runner, store, images) -> None:
    first = images.jpeg(tmp_path / "first.jpg")
    second = images.jpeg(tmp_path / "second.jpg")
    deleted = tmp_path / "deleted.jpg"
    store.insert(ImageRecord(path=deleted, last_modified=1.0, size_bytes=10, annotations={"old"}))
    ocr = DummyOcr()
    drained: list[bool] = []
    scheduler = _make_scheduler(runner, store, ocr=ocr, limit=1, on_drained=lambda: drained.append(True))

    for path in (first, second, deleted):
        scheduler.on_file_change(path, False)
    runner.run_until_idle()

    assert ocr.calls == 1
    assert store.get_all_files() == [first]
    assert store.get_last_modified_time(second) is None
    assert store.get_last_modified_time(deleted) is None
    assert scheduler.is_idle()
    assert drained == [True]
