"""Shared test fixtures for the telemetry client.

Delivery tests run on a ManualExecutor so that every scheduled attempt, and
the delay it was scheduled with, can be inspected and run step by step.
"""

from __future__ import annotations

import pytest

from telemetry_client.delivery.backoff import Backoff
from telemetry_client.delivery.client import TelemetryClient
from telemetry_client.delivery.executor import RejectedExecution
from telemetry_client.delivery.notifications import NotificationHandler
from telemetry_client.delivery.outcomes import Delivered, Response
from telemetry_client.delivery.scheduler import LimitingScheduler
from telemetry_client.telemetry.batch import EventBatch, MetricBatch
from telemetry_client.telemetry.records import Event, Gauge
from telemetry_client.transport.base import BatchSender


# =============================================================================
# Test doubles
# =============================================================================

class ManualExecutor:
    """Delayed-task facility that only runs tasks when the test says so."""

    def __init__(self):
        self.queue: list[tuple[float, object]] = []
        self.delays: list[float] = []
        self.errors: list[Exception] = []
        self.shut_down = False

    def schedule(self, task, delay_seconds: float = 0.0) -> None:
        if self.shut_down:
            raise RejectedExecution("manual executor is shut down")
        self.delays.append(delay_seconds)
        self.queue.append((delay_seconds, task))

    def run_next(self) -> None:
        _, task = self.queue.pop(0)
        try:
            task()
        except Exception as e:
            self.errors.append(e)

    def run_all(self, limit: int = 1000) -> int:
        """Run queued tasks (including ones they schedule) until none are left."""
        ran = 0
        while self.queue:
            assert ran < limit, "runaway task chain"
            self.run_next()
            ran += 1
        return ran

    def shutdown(self) -> None:
        self.shut_down = True

    def shutdown_now(self):
        self.shut_down = True
        pending = [task for _, task in self.queue]
        self.queue.clear()
        return pending

    def await_termination(self, timeout=None) -> bool:
        return self.shut_down and not self.queue

    def is_terminated(self) -> bool:
        return self.shut_down and not self.queue


OK = Delivered(Response(202, "Accepted", '{"requestId": "abc"}'))


class ScriptedSender(BatchSender):
    """
    Sender whose outcomes are scripted.

    `script` is either a list consumed one entry per call, or a function of
    the batch. Exception instances are raised instead of returned.
    """

    def __init__(self, script=None):
        self.script = script if script is not None else []
        self.batches = []
        self.closed = False

    def send_batch(self, batch):
        self.batches.append(batch)
        if callable(self.script):
            outcome = self.script(batch)
        else:
            outcome = self.script.pop(0) if self.script else OK
        if isinstance(outcome, BaseException):
            raise outcome
        return outcome

    def close(self) -> None:
        self.closed = True

    @property
    def calls(self) -> int:
        return len(self.batches)


class RecordingHandler(NotificationHandler):
    def __init__(self):
        self.infos = []
        self.errors = []

    def notice_info(self, message, batch, exc=None):
        self.infos.append((message, batch, exc))

    def notice_error(self, message, batch, exc=None):
        self.errors.append((message, batch, exc))


# =============================================================================
# Fixtures
# =============================================================================

@pytest.fixture
def executor() -> ManualExecutor:
    return ManualExecutor()


@pytest.fixture
def scheduler(executor) -> LimitingScheduler:
    return LimitingScheduler(max_in_flight=100, executor=executor)


@pytest.fixture
def handler() -> RecordingHandler:
    return RecordingHandler()


@pytest.fixture
def sender() -> ScriptedSender:
    return ScriptedSender()


@pytest.fixture
def client(sender, scheduler, handler) -> TelemetryClient:
    return TelemetryClient(
        sender=sender,
        scheduler=scheduler,
        notification_handler=handler,
        backoff_factory=Backoff.default,
    )


@pytest.fixture
def gauges():
    def make(n: int, **common) -> MetricBatch:
        return MetricBatch(
            items=tuple(Gauge(f"gauge.{i}", float(i), timestamp_ms=1_700_000_000_000) for i in range(n)),
            common_attributes=common,
        )
    return make


@pytest.fixture
def events():
    def make(n: int) -> EventBatch:
        return EventBatch(items=tuple(Event("TestEvent", 1_700_000_000_000, {"i": i}) for i in range(n)))
    return make
