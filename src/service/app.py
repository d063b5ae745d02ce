"""Command line entry point running the lensmark annotation worker."""

from __future__ import annotations

import argparse
import logging
import os
import signal
import sys
import threading
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Sequence

from core.config import configure, load_settings
from core.worker import AnnotationWorker
from db.annotations import AnnotationStore
from utils.paths import get_app_paths

logger = logging.getLogger(__name__)


def _resolve_log_level(value: str | None) -> int:
    if not value:
        return logging.INFO
    level = logging.getLevelName(value.upper())
    if isinstance(level, int):
        return level
    return logging.INFO


def setup_logging() -> None:
    """Configure logging to stdout and a rotating application log file."""

    level = _resolve_log_level(os.environ.get("LENSMARK_LOG_LEVEL"))
    root_logger = logging.getLogger()

    for handler in list(root_logger.handlers):
        root_logger.removeHandler(handler)
        handler.close()

    root_logger.setLevel(level)

    formatter = logging.Formatter(
        "%(asctime)s %(levelname)s [%(name)s] %(message)s",
        "%Y-%m-%d %H:%M:%S",
    )

    stream_handler = logging.StreamHandler(sys.stdout)
    stream_handler.setLevel(level)
    stream_handler.setFormatter(formatter)
    root_logger.addHandler(stream_handler)

    log_dir = get_app_paths().log_dir()
    log_dir.mkdir(parents=True, exist_ok=True)
    file_handler = RotatingFileHandler(
        log_dir / "lensmark.log",
        maxBytes=5 * 1024 * 1024,
        backupCount=5,
        encoding="utf-8",
    )
    file_handler.setLevel(level)
    file_handler.setFormatter(formatter)
    root_logger.addHandler(file_handler)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="lensmark", description="Index image annotations below a directory.")
    parser.add_argument("--root", type=Path, help="Directory to index (overrides the configured root)")
    parser.add_argument("--config", type=Path, help="Path to a YAML settings file")
    parser.add_argument("--once", action="store_true", help="Exit after the first full pass")
    parser.add_argument("--no-watch", action="store_true", help="Do not watch the root for changes")
    parser.add_argument("--search", metavar="TERM", help="Print files annotated with TERM and exit")
    return parser


def _print_matches(store: AnnotationStore, term: str) -> None:
    for path in store.find_by_annotation(term):
        print(path)


def main(argv: Sequence[str] | None = None) -> int:
    args = build_parser().parse_args(argv)

    app_paths = get_app_paths()
    app_paths.ensure_data_dirs()
    setup_logging()

    configure(app_paths, path=args.config)
    settings = load_settings()
    db_path = app_paths.db_path()
    logger.info("Annotation store at %s", db_path)
    store = AnnotationStore(db_path)

    if args.search:
        _print_matches(store, args.search)
        store.close()
        return 0

    try:
        worker = AnnotationWorker.from_settings(
            settings,
            store,
            root=args.root,
            use_file_watchers=False if (args.no_watch or args.once) else None,
        )
    except ValueError as exc:
        logger.error("Cannot start worker: %s", exc)
        store.close()
        return 2

    stop_requested = threading.Event()

    def _request_stop(signum, frame) -> None:
        logger.info("Received signal %s; shutting down", signum)
        stop_requested.set()

    previous_handlers = {signum: signal.signal(signum, _request_stop) for signum in (signal.SIGINT, signal.SIGTERM)}

    worker.start()
    exit_code = 0
    try:
        while not stop_requested.is_set():
            if worker.gate_failed.is_set():
                exit_code = 1
                break
            if args.once and worker.drained.is_set() and worker.swept.is_set():
                break
            stop_requested.wait(0.5)
    finally:
        worker.stop()
        logger.info(
            "Annotated %d image(s) this session; %d file(s) indexed",
            worker.budget.count_this_session,
            store.count(),
        )
        store.close()
        for signum, handler in previous_handlers.items():
            signal.signal(signum, handler)
    return exit_code


if __name__ == "__main__":
    sys.exit(main())
