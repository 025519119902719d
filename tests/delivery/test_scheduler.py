"""Tests for the admission-controlled scheduler."""

import logging
import threading

import pytest

from telemetry_client.delivery.executor import DelayedTaskExecutor
from telemetry_client.delivery.scheduler import LimitingScheduler


class TestAdmission:
    def test_admits_within_limit(self, scheduler, executor):
        ran = []
        assert scheduler.schedule(60, lambda: ran.append(1))
        assert scheduler.in_flight == 60
        assert executor.delays == [0.0]

        executor.run_all()

        assert ran == [1]
        assert scheduler.in_flight == 0

    def test_passes_delay_through(self, scheduler, executor):
        scheduler.schedule(1, lambda: None, 2.5)
        assert executor.delays == [2.5]

    def test_rejects_over_limit(self, scheduler, executor, caplog):
        ran = []
        assert scheduler.schedule(60, lambda: None)

        with caplog.at_level(logging.WARNING):
            assert not scheduler.schedule(41, lambda: ran.append(1))

        assert "Refusing to schedule batch of size 41" in caplog.text
        assert "available = 40" in caplog.text
        assert "DATA IS BEING LOST!" in caplog.text
        assert scheduler.in_flight == 60
        assert len(executor.queue) == 1

        executor.run_all()
        assert ran == []

    def test_exactly_at_limit_is_admitted(self, scheduler):
        assert scheduler.schedule(100, lambda: None)
        assert scheduler.in_flight == 100

    def test_size_larger_than_max_never_runs(self, scheduler, executor):
        ran = []
        assert not scheduler.schedule(101, lambda: ran.append(1))
        executor.run_all()

        assert ran == []
        assert scheduler.in_flight == 0

    def test_capacity_returns_after_completion(self, scheduler, executor):
        assert scheduler.schedule(100, lambda: None)
        assert not scheduler.schedule(1, lambda: None)

        executor.run_all()

        assert scheduler.schedule(100, lambda: None)

    def test_release_when_task_raises(self, scheduler, executor):
        def boom():
            raise RuntimeError("boom")

        scheduler.schedule(10, boom)
        executor.run_all()

        assert scheduler.in_flight == 0
        assert len(executor.errors) == 1

    def test_negative_size_is_an_error(self, scheduler):
        with pytest.raises(ValueError):
            scheduler.schedule(-1, lambda: None)

    def test_stats(self, scheduler):
        scheduler.schedule(30, lambda: None)
        scheduler.schedule(80, lambda: None)

        assert scheduler.stats == {"admitted": 1, "rejected": 1, "max": 100, "in_flight": 30}


class TestLifecycle:
    def test_executor_rejection_restores_counter(self, scheduler, executor):
        scheduler.shutdown()

        assert not scheduler.schedule(10, lambda: None)
        assert scheduler.in_flight == 0
        assert scheduler.stats["rejected"] == 1

    def test_invalid_delay_is_refused(self):
        scheduler = LimitingScheduler(max_in_flight=10, executor=DelayedTaskExecutor())

        assert not scheduler.schedule(5, lambda: None, float("nan"))
        assert scheduler.in_flight == 0
        assert scheduler.stats["rejected"] == 1

        scheduler.shutdown()
        assert scheduler.await_termination(2.0)

    def test_shutdown_now_releases_cancelled_tasks(self, scheduler, executor):
        ran = []
        scheduler.schedule(10, lambda: ran.append(1), 5.0)
        scheduler.schedule(20, lambda: ran.append(2), 5.0)

        cancelled = scheduler.shutdown_now()

        assert len(cancelled) == 2
        assert scheduler.in_flight == 0
        assert ran == []
        assert scheduler.is_terminated()

    def test_cancelled_task_released_once(self, scheduler, executor):
        scheduler.schedule(10, lambda: None)
        (task,) = scheduler.shutdown_now()

        # Running a task after it was cancelled must not release its size twice
        task()
        assert scheduler.in_flight == 0


class TestConcurrency:
    def test_counter_never_exceeds_max(self):
        scheduler = LimitingScheduler(max_in_flight=50, executor=DelayedTaskExecutor())
        observed = []
        lock = threading.Lock()

        def task():
            with lock:
                observed.append(scheduler.in_flight)

        def producer():
            for _ in range(200):
                scheduler.schedule(7, task)

        threads = [threading.Thread(target=producer) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        scheduler.shutdown()
        assert scheduler.await_termination(10.0)

        assert observed
        assert max(observed) <= 50
        assert min(observed) >= 0
        assert scheduler.in_flight == 0
        stats = scheduler.stats
        assert stats["admitted"] == len(observed)
        assert stats["admitted"] + stats["rejected"] == 1600
