"""Periodic task scheduling for background refreshes.

Stores consume the small ``Scheduler`` protocol: schedule a callback on
a fixed delay and get a handle back that can be cancelled. The default
``ThreadScheduler`` runs each task on its own daemon thread.
"""

from __future__ import annotations

import itertools
import logging
import math
import threading
from collections.abc import Callable
from typing import Protocol, runtime_checkable

logger = logging.getLogger(__name__)

_task_ids = itertools.count(1)


class ScheduledTask:
    """Cancellation handle for a periodic task.

    Cancelling prevents future runs; a run already in progress completes.
    """

    def __init__(self, task: Callable[[], None], initial_delay: float, period: float):
        self.task = task
        self.initial_delay = initial_delay
        self.period = period
        self.task_id = next(_task_ids)
        self.runs = 0
        self.failures = 0
        self._cancelled = threading.Event()
        self._thread: threading.Thread | None = None

    @property
    def cancelled(self) -> bool:
        return self._cancelled.is_set()

    def cancel(self) -> bool:
        """Stop future runs. Return False if already cancelled."""
        if self._cancelled.is_set():
            return False
        self._cancelled.set()
        return True

    def wait(self, timeout: float | None = None) -> bool:
        """Wait for the worker thread to exit after cancellation."""
        thread = self._thread
        if thread is None or thread is threading.current_thread():
            return True
        thread.join(timeout)
        return not thread.is_alive()

    def __repr__(self) -> str:
        state = "cancelled" if self.cancelled else "active"
        return f"<ScheduledTask #{self.task_id} every {self.period}s {state}>"


@runtime_checkable
class Scheduler(Protocol):
    """Runs callbacks periodically on its own execution context."""

    def schedule(
        self, task: Callable[[], None], initial_delay: float, period: float
    ) -> ScheduledTask: ...

    def cancel(self, handle: ScheduledTask | None) -> None: ...


class ThreadScheduler:
    """Scheduler with one daemon thread per scheduled task.

    Tasks run on a fixed delay: the wait for the next run starts after the
    previous run returns, so runs of one task never overlap. An exception
    raised by a run is logged and handed to ``error_handler``; the task
    stays scheduled.
    """

    def __init__(
        self,
        error_handler: Callable[[ScheduledTask, BaseException], None] | None = None,
        name: str = "propman-scheduler",
    ):
        self.error_handler = error_handler
        self.name = name
        self._tasks: list[ScheduledTask] = []
        self._lock = threading.Lock()
        self._shutdown = False

    def schedule(
        self, task: Callable[[], None], initial_delay: float, period: float
    ) -> ScheduledTask:
        """Run ``task`` after ``initial_delay`` seconds, then every ``period``."""
        for name, value in (("period", period), ("initial_delay", initial_delay)):
            if not math.isfinite(value) or value > threading.TIMEOUT_MAX:
                raise ValueError(f"{name} is out of range, got {value}")
        if period <= 0:
            raise ValueError(f"period must be positive, got {period}")
        if initial_delay < 0:
            raise ValueError(f"initial_delay must not be negative, got {initial_delay}")

        handle = ScheduledTask(task, initial_delay, period)
        with self._lock:
            if self._shutdown:
                raise RuntimeError("Scheduler has been shut down")
            self._tasks.append(handle)

        thread = threading.Thread(
            target=self._run,
            args=(handle,),
            name=f"{self.name}-{handle.task_id}",
            daemon=True,
        )
        handle._thread = thread
        thread.start()
        logger.debug(f"Scheduled {handle!r}")
        return handle

    def cancel(self, handle: ScheduledTask | None) -> None:
        """Cancel a handle. Safe on None and on cancelled handles."""
        if handle is None:
            return
        if handle.cancel():
            logger.debug(f"Cancelled {handle!r}")
        with self._lock:
            if handle in self._tasks:
                self._tasks.remove(handle)

    def shutdown(self, wait: bool = False, timeout: float | None = None) -> None:
        """Cancel every task; optionally wait for worker threads to exit."""
        with self._lock:
            self._shutdown = True
            tasks = list(self._tasks)
            self._tasks.clear()

        for handle in tasks:
            handle.cancel()
        if wait:
            for handle in tasks:
                handle.wait(timeout)

    @property
    def active_tasks(self) -> list[ScheduledTask]:
        with self._lock:
            return [t for t in self._tasks if not t.cancelled]

    def __enter__(self) -> ThreadScheduler:
        return self

    def __exit__(self, *exc_info) -> None:
        self.shutdown(wait=True)

    def _run(self, handle: ScheduledTask) -> None:
        delay = handle.initial_delay
        while not handle._cancelled.wait(delay):
            delay = handle.period
            try:
                handle.task()
            except Exception as e:
                handle.failures += 1
                logger.exception(f"Scheduled task #{handle.task_id} failed")
                self._report(handle, e)
            finally:
                handle.runs += 1

    def _report(self, handle: ScheduledTask, error: BaseException) -> None:
        if self.error_handler is None:
            return
        try:
            self.error_handler(handle, error)
        except Exception:
            logger.exception("Scheduler error handler failed")
