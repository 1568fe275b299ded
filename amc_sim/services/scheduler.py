"""Interval scheduling on a shared thread pool."""
from __future__ import annotations

import threading
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from datetime import datetime
from typing import Callable

from amc_sim.core.log import get_logger, log_context

LOGGER = get_logger(__name__)


@dataclass
class TaskStats:
    ticks: int = 0
    failures: int = 0
    skipped: int = 0
    last_started_at: datetime | None = None
    last_error: str | None = None


class RecurringTask:
    """Fire ``callback`` every ``interval`` seconds until cancelled.

    A lightweight timer thread waits on an event and hands every firing to
    the shared executor, so a slow tick never delays the timer. Firings of the
    same task may overlap unless ``skip_if_running`` is set, in which case a
    firing is skipped while the previous one is still in flight. Cancelling
    stops future firings only; a running tick completes normally.
    """

    def __init__(
        self,
        name: str,
        interval: float,
        callback: Callable[[], object],
        *,
        executor: ThreadPoolExecutor,
        skip_if_running: bool = True,
    ) -> None:
        if interval <= 0:
            raise ValueError(f"Interval for {name} must be positive, got {interval}")
        self.name = name
        self.interval = interval
        self.stats = TaskStats()
        self._callback = callback
        self._executor = executor
        self._skip_if_running = skip_if_running
        self._cancelled = threading.Event()
        self._in_flight = threading.Lock()
        self._thread: threading.Thread | None = None

    @property
    def is_scheduled(self) -> bool:
        return self._thread is not None and not self._cancelled.is_set()

    @property
    def is_running(self) -> bool:
        return self._in_flight.locked()

    def start(self) -> None:
        if self._thread is not None:
            return
        self._thread = threading.Thread(target=self._loop, name=f"timer-{self.name}", daemon=True)
        self._thread.start()

    def cancel(self) -> None:
        self._cancelled.set()

    def _loop(self) -> None:
        while not self._cancelled.wait(self.interval):
            self.fire()

    def fire(self) -> None:
        """Submit one execution of the callback to the pool."""

        if self._skip_if_running and not self._in_flight.acquire(blocking=False):
            self.stats.skipped += 1
            LOGGER.debug("Skipping %s tick; previous run still in flight", self.name)
            return
        try:
            self._executor.submit(self._run)
        except RuntimeError:
            # Pool already shut down.
            self._release()
            self.cancel()

    def _run(self) -> None:
        self.stats.ticks += 1
        self.stats.last_started_at = datetime.now()
        try:
            with log_context.bound(task=self.name):
                self._callback()
        except Exception as exc:
            self.stats.failures += 1
            self.stats.last_error = str(exc)
            LOGGER.exception("Task %s tick failed", self.name)
        finally:
            self._release()

    def _release(self) -> None:
        if self._skip_if_running:
            self._in_flight.release()


class TaskScheduler:
    """Registry of named recurring tasks sharing one worker pool."""

    def __init__(self, *, max_workers: int = 4, skip_overlapping: bool = True) -> None:
        self._executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="sim-worker")
        self._skip_overlapping = skip_overlapping
        self._tasks: dict[str, RecurringTask] = {}
        self._lock = threading.Lock()

    def schedule(self, name: str, interval: float, callback: Callable[[], object]) -> RecurringTask:
        task = RecurringTask(
            name,
            interval,
            callback,
            executor=self._executor,
            skip_if_running=self._skip_overlapping,
        )
        with self._lock:
            previous = self._tasks.pop(name, None)
            if previous is not None:
                previous.cancel()
            self._tasks[name] = task
        task.start()
        LOGGER.debug("Scheduled %s every %ss", name, interval)
        return task

    def cancel_all(self) -> list[str]:
        """Cancel and forget every task; returns the names that were registered."""

        with self._lock:
            tasks = list(self._tasks.values())
            self._tasks.clear()
        for task in tasks:
            task.cancel()
        return [task.name for task in tasks]

    @property
    def task_names(self) -> list[str]:
        with self._lock:
            return list(self._tasks)

    def get(self, name: str) -> RecurringTask | None:
        with self._lock:
            return self._tasks.get(name)

    def shutdown(self, *, wait: bool = False) -> None:
        self.cancel_all()
        self._executor.shutdown(wait=wait)
