"""Single-threaded delayed task executor."""

from __future__ import annotations

import heapq
import itertools
import logging
import math
import threading
import time
from dataclasses import dataclass, field
from typing import Callable


logger = logging.getLogger(__name__)

# Longest single condition wait; longer delays are waited out in slices
MAX_WAIT_SLICE_SECONDS = 60.0


class RejectedExecution(RuntimeError):
    """Raised when a task is submitted to an executor that has been shut down."""


@dataclass(order=True)
class _Entry:
    run_at: float
    seq: int
    task: Callable[[], None] = field(compare=False)


@dataclass
class DelayedTaskExecutor:
    """
    Runs tasks after a delay on one background worker thread.

    Tasks run one at a time in order of their due time. The worker thread is
    started on first use and is a daemon, so an executor that is never shut
    down does not keep the process alive.

    Lifecycle:
    - shutdown(): refuse new tasks; tasks already queued still run when due
    - shutdown_now(): refuse new tasks and discard queued ones (returned to caller)
    - await_termination(timeout): wait for the worker to finish
    """
    name: str = "telemetry-delivery"

    _queue: list[_Entry] = field(default_factory=list, init=False)
    _cond: threading.Condition = field(default_factory=threading.Condition, init=False)
    _thread: threading.Thread | None = field(default=None, init=False)
    _shutdown: bool = field(default=False, init=False)
    _seq: itertools.count = field(default_factory=itertools.count, init=False)

    def schedule(self, task: Callable[[], None], delay_seconds: float = 0.0) -> None:
        """
        Queue a task to run after `delay_seconds`.

        Negative delays run immediately and delays beyond threading.TIMEOUT_MAX
        are capped. Raises ValueError for NaN and RejectedExecution after shutdown.
        """
        if math.isnan(delay_seconds):
            raise ValueError("delay_seconds must be a number, got NaN")
        delay_seconds = min(max(delay_seconds, 0.0), threading.TIMEOUT_MAX)
        with self._cond:
            if self._shutdown:
                raise RejectedExecution(f"Executor {self.name} has been shut down")
            if self._thread is None:
                self._thread = threading.Thread(target=self._run, name=self.name, daemon=True)
                self._thread.start()
            run_at = time.monotonic() + delay_seconds
            heapq.heappush(self._queue, _Entry(run_at, next(self._seq), task))
            self._cond.notify()

    def _next_due(self) -> _Entry | None:
        """Block until a task is due; None once shut down with nothing left (caller holds lock)."""
        while True:
            if not self._queue:
                if self._shutdown:
                    return None
                self._cond.wait()
                continue
            remaining = self._queue[0].run_at - time.monotonic()
            if remaining <= 0:
                return heapq.heappop(self._queue)
            self._cond.wait(min(remaining, MAX_WAIT_SLICE_SECONDS))

    def _run(self) -> None:
        logger.debug(f"Executor {self.name} worker started")
        while True:
            with self._cond:
                entry = self._next_due()
            if entry is None:
                break
            try:
                entry.task()
            except Exception as e:
                logger.error(f"Task failed on executor {self.name}: {e}")
        logger.debug(f"Executor {self.name} worker stopped")

    def shutdown(self) -> None:
        """Stop accepting tasks; queued tasks still run."""
        with self._cond:
            self._shutdown = True
            self._cond.notify_all()

    def shutdown_now(self) -> list[Callable[[], None]]:
        """Stop accepting tasks and discard queued ones. Returns the discarded tasks."""
        with self._cond:
            self._shutdown = True
            pending = [entry.task for entry in sorted(self._queue)]
            self._queue.clear()
            self._cond.notify_all()
        if pending:
            logger.info(f"Executor {self.name} discarded {len(pending)} queued tasks")
        return pending

    def await_termination(self, timeout: float | None = None) -> bool:
        """Wait up to `timeout` seconds for the worker to exit. True if terminated."""
        with self._cond:
            thread = self._thread
        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout)
        return self.is_terminated()

    def is_terminated(self) -> bool:
        with self._cond:
            if not self._shutdown:
                return False
            return self._thread is None or not self._thread.is_alive()

    def is_shutdown(self) -> bool:
        with self._cond:
            return self._shutdown

    @property
    def queue_depth(self) -> int:
        with self._cond:
            return len(self._queue)
