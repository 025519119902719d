"""Admission-controlled scheduling of delivery tasks."""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from typing import Callable, Protocol

from .executor import DelayedTaskExecutor, RejectedExecution


logger = logging.getLogger(__name__)


class TaskExecutor(Protocol):
    """What the scheduler needs from the underlying delayed-task facility."""

    def schedule(self, task: Callable[[], None], delay_seconds: float = 0.0) -> None: ...

    def shutdown(self) -> None: ...

    def shutdown_now(self) -> list[Callable[[], None]]: ...

    def await_termination(self, timeout: float | None = None) -> bool: ...

    def is_terminated(self) -> bool: ...


class _AdmittedTask:
    """Runs a task and gives its admitted size back exactly once, even if it is never run."""

    __slots__ = ("_task", "_release", "_released", "_lock")

    def __init__(self, task: Callable[[], None], release: Callable[[], None]):
        self._task = task
        self._release = release
        self._released = False
        self._lock = threading.Lock()

    def __call__(self) -> None:
        try:
            self._task()
        finally:
            self.release()

    def release(self) -> None:
        with self._lock:
            if self._released:
                return
            self._released = True
        self._release()


@dataclass
class LimitingScheduler:
    """
    Bounds the total size of tasks that are queued or running.

    schedule() never blocks: work that would push the in-flight total past
    `max_in_flight` is refused (and logged), and the caller drops it.

    Thread-safe. The in-flight counter is mutated only under `_lock` and
    always satisfies 0 <= in_flight <= max_in_flight.
    """
    max_in_flight: int = 1_000_000
    executor: TaskExecutor = field(default_factory=DelayedTaskExecutor)

    _in_flight: int = field(default=0, init=False)
    _lock: threading.Lock = field(default_factory=threading.Lock, init=False)
    _stats: dict = field(default_factory=dict, init=False)

    def __post_init__(self):
        if self.max_in_flight < 0:
            raise ValueError(f"max_in_flight must be >= 0, got {self.max_in_flight}")
        self._stats = {
            "admitted": 0,
            "rejected": 0,
        }

    def schedule(self, size: int, task: Callable[[], None], delay_seconds: float = 0.0) -> bool:
        """
        Admit `task` at a cost of `size` and run it after `delay_seconds`.

        Returns True once the task is queued (not once it has run), False if it
        was refused because of the in-flight limit or because the executor is
        shut down. Never raises for either case.
        """
        if size < 0:
            raise ValueError(f"size must be >= 0, got {size}")

        with self._lock:
            if self._in_flight + size > self.max_in_flight:
                available = self.max_in_flight - self._in_flight
                self._stats["rejected"] += 1
                logger.warning(
                    f"Refusing to schedule batch of size {size} "
                    f"(would put us over max size {self.max_in_flight}, available = {available})"
                )
                logger.warning("DATA IS BEING LOST!")
                return False
            self._in_flight += size
            self._stats["admitted"] += 1

        admitted = _AdmittedTask(task, lambda: self._release(size))
        try:
            self.executor.schedule(admitted, delay_seconds)
        except (RejectedExecution, ValueError) as e:
            logger.warning(f"Unable to schedule task, executor rejected it: {e}")
            admitted.release()
            with self._lock:
                self._stats["admitted"] -= 1
                self._stats["rejected"] += 1
            return False
        return True

    def _release(self, size: int) -> None:
        with self._lock:
            self._in_flight -= size

    @property
    def in_flight(self) -> int:
        with self._lock:
            return self._in_flight

    def shutdown(self) -> None:
        """Stop accepting work; already-scheduled tasks still run."""
        self.executor.shutdown()

    def shutdown_now(self) -> list[Callable[[], None]]:
        """Stop accepting work and cancel queued tasks, releasing their sizes."""
        cancelled = self.executor.shutdown_now()
        for task in cancelled:
            if isinstance(task, _AdmittedTask):
                task.release()
        return cancelled

    def await_termination(self, timeout: float | None = None) -> bool:
        return self.executor.await_termination(timeout)

    def is_terminated(self) -> bool:
        return self.executor.is_terminated()

    @property
    def stats(self) -> dict:
        """Scheduler statistics."""
        with self._lock:
            return {
                **self._stats,
                "max": self.max_in_flight,
                "in_flight": self._in_flight,
            }
