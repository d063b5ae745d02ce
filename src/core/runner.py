"""A single logical sequence on which all worker state is mutated.

Scheduler, readiness gate and annotation pipeline never touch their state
from any thread other than the runner's own. Blocking work (decoding,
backend inference, existence checks) runs on a small thread pool and hands
its result back to the sequence through :meth:`SequencedTaskRunner.run_in_background`.
"""

from __future__ import annotations

import logging
import queue
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Any, Callable, Protocol, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")

Task = Callable[[], None]


class Cancellable(Protocol):
    def cancel(self) -> None:
        """Prevent the task from running if it has not started yet."""


class TaskRunner(Protocol):
    """Interface shared by the threaded runner and test runners."""

    def post(self, task: Task) -> None:
        """Run ``task`` on the sequence after everything already posted."""

    def post_delayed(self, delay: float, task: Task) -> Cancellable:
        """Run ``task`` on the sequence once ``delay`` seconds have elapsed."""

    def run_in_background(
        self,
        fn: Callable[[], T],
        reply: Callable[[T], None],
        on_error: Callable[[BaseException], None] | None = None,
    ) -> None:
        """Run ``fn`` off the sequence and deliver its result back onto it."""


class _DelayedTask:
    def __init__(self, task: Task) -> None:
        self._task = task
        self._timer: threading.Timer | None = None
        self.cancelled = False

    def run(self) -> None:
        if not self.cancelled:
            self._task()

    def cancel(self) -> None:
        self.cancelled = True
        if self._timer is not None:
            self._timer.cancel()


_STOP = object()


class SequencedTaskRunner:
    """Thread-backed :class:`TaskRunner` executing tasks strictly in order."""

    def __init__(self, *, name: str = "lensmark-sequence", background_workers: int = 1) -> None:
        self._name = name
        self._queue: "queue.Queue[Any]" = queue.Queue()
        self._thread = threading.Thread(target=self._thread_main, name=name, daemon=True)
        # a single worker keeps backend calls serial even after an image times out
        self._executor = ThreadPoolExecutor(max_workers=max(1, background_workers), thread_name_prefix=f"{name}-bg")
        self._timers: set[_DelayedTask] = set()
        self._timers_lock = threading.Lock()
        self._stopped = threading.Event()

    def start(self) -> None:
        if not self._thread.is_alive():
            self._thread.start()

    def stop(self, *, wait: bool = True, timeout: float | None = 5.0) -> None:
        """Cancel pending timers, finish already queued tasks and stop the thread."""
        if self._stopped.is_set():
            return
        self._stopped.set()
        with self._timers_lock:
            timers = list(self._timers)
            self._timers.clear()
        for delayed in timers:
            delayed.cancel()
        self._queue.put(_STOP)
        if wait and self._thread.is_alive() and threading.current_thread() is not self._thread:
            self._thread.join(timeout)
        self._executor.shutdown(wait=False, cancel_futures=True)

    def is_running(self) -> bool:
        return self._thread.is_alive() and not self._stopped.is_set()

    def post(self, task: Task) -> None:
        if self._stopped.is_set():
            logger.debug("%s: dropping task posted after stop", self._name)
            return
        self._queue.put(task)

    def post_delayed(self, delay: float, task: Task) -> Cancellable:
        delayed = _DelayedTask(task)
        if self._stopped.is_set():
            delayed.cancelled = True
            return delayed

        def _fire() -> None:
            with self._timers_lock:
                self._timers.discard(delayed)
            self.post(delayed.run)

        timer = threading.Timer(max(0.0, float(delay)), _fire)
        timer.daemon = True
        delayed._timer = timer
        with self._timers_lock:
            self._timers.add(delayed)
        timer.start()
        return delayed

    def run_in_background(
        self,
        fn: Callable[[], T],
        reply: Callable[[T], None],
        on_error: Callable[[BaseException], None] | None = None,
    ) -> None:
        try:
            future = self._executor.submit(fn)
        except RuntimeError:
            logger.debug("%s: background pool already shut down", self._name)
            return

        def _done(fut: Future) -> None:
            if fut.cancelled():
                return
            exc = fut.exception()
            if exc is None:
                result = fut.result()
                self.post(lambda: reply(result))
            elif on_error is not None:
                self.post(lambda: on_error(exc))
            else:
                logger.error("%s: background task failed", self._name, exc_info=exc)

        future.add_done_callback(_done)

    def _thread_main(self) -> None:
        while True:
            task = self._queue.get()
            if task is _STOP:
                break
            try:
                task()
            except Exception:
                logger.exception("%s: task raised", self._name)


__all__ = ["Cancellable", "SequencedTaskRunner", "Task", "TaskRunner"]
