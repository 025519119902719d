"""Non-blocking batch delivery with retry, backoff and split-on-too-large."""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable

from ..config import ClientConfig
from ..telemetry.batch import TelemetryBatch
from .backoff import GIVE_UP, Backoff
from .notifications import LoggingNotificationHandler, NotificationHandler
from .outcomes import (
    BackoffRetry,
    Delivered,
    Discard,
    Response,
    ResponseError,
    SendOutcome,
    SplitRetry,
    WaitRetry,
)
from .scheduler import LimitingScheduler
from ..transport.base import BatchSender


logger = logging.getLogger(__name__)


class DeliveryState(str, Enum):
    """Where one logical send currently is."""
    PENDING = "pending"
    SENDING = "sending"
    DELIVERED = "delivered"
    BACKOFF_WAIT = "backoff_wait"
    REQUESTED_WAIT = "requested_wait"
    SPLITTING = "splitting"
    DROPPED = "dropped"


TERMINAL_STATES = frozenset({DeliveryState.DELIVERED, DeliveryState.DROPPED, DeliveryState.SPLITTING})


@dataclass
class Delivery:
    """
    One logical send: a batch and the chain of its own retries.

    Split children are new deliveries with their own backoff.
    """
    batch: TelemetryBatch
    backoff: Backoff
    state: DeliveryState = DeliveryState.PENDING
    attempts: int = 0
    parent: Delivery | None = None

    @property
    def done(self) -> bool:
        return self.state in TERMINAL_STATES


@dataclass
class TelemetryClient:
    """
    Hands batches to a sender in the background and reacts to the outcome.

    send_batch() never blocks on the network and never raises for delivery
    failures. Every attempt goes through the limiting scheduler, so the
    number of items queued or in flight stays bounded; anything that cannot
    be admitted is dropped and logged.

    Usage:
        client = TelemetryClient.create(ClientConfig.from_yaml("telemetry.yaml"))
        client.send_batch(buffer.create_batch())
        ...
        client.shutdown()
    """
    sender: BatchSender
    config: ClientConfig = field(default_factory=ClientConfig)
    notification_handler: NotificationHandler = field(default_factory=LoggingNotificationHandler)

    # Built from config when not given
    scheduler: LimitingScheduler | None = None
    backoff_factory: Callable[[], Backoff] | None = None

    # Called with each Delivery whenever it changes state
    on_transition: Callable[[Delivery], None] | None = None

    _stats: dict = field(default_factory=dict, init=False)
    _stats_lock: threading.Lock = field(default_factory=threading.Lock, init=False)

    def __post_init__(self):
        if self.scheduler is None:
            self.scheduler = LimitingScheduler(max_in_flight=self.config.max_in_flight_items)
        if self.backoff_factory is None:
            backoff_config = self.config.backoff
            self.backoff_factory = lambda: Backoff.from_config(backoff_config)
        self._stats = {
            "batches_ignored": 0,
            "batches_delivered": 0,
            "items_delivered": 0,
            "batches_dropped": 0,
            "items_dropped": 0,
            "retries": 0,
            "splits": 0,
        }

    @classmethod
    def create(cls, config: ClientConfig | None = None, **kwargs) -> TelemetryClient:
        """Client that sends over HTTP to the configured ingest endpoints."""
        from ..transport.http import HttpBatchSender

        config = config or ClientConfig()
        return cls(sender=HttpBatchSender(config.sender), config=config, **kwargs)

    def send_batch(self, batch: TelemetryBatch) -> Response | None:
        """
        Deliver a batch in the background.

        An empty batch is not sent at all: a synthetic "Ignored" response is
        returned immediately. Otherwise returns None; the outcome is reported
        through logging and the notification handler.
        """
        if batch.is_empty():
            logger.debug(f"Ignoring empty {batch.type_name}")
            self._count("batches_ignored")
            return Response.ignored()
        self._start(batch)
        return None

    def _start(self, batch: TelemetryBatch, parent: Delivery | None = None) -> Delivery:
        delivery = Delivery(batch=batch, backoff=self.backoff_factory(), parent=parent)
        self._transition(delivery, DeliveryState.PENDING)
        self._submit(delivery, 0.0)
        return delivery

    def _submit(self, delivery: Delivery, delay_seconds: float) -> None:
        admitted = self.scheduler.schedule(
            delivery.batch.size,
            lambda: self._attempt(delivery),
            delay_seconds,
        )
        if not admitted:
            self._drop(delivery, f"Unable to schedule batch, dropping {delivery.batch.size} pieces of data!")

    def _attempt(self, delivery: Delivery) -> None:
        """Runs on the scheduler's worker: one call to the sender, then the next step."""
        delivery.attempts += 1
        self._transition(delivery, DeliveryState.SENDING)
        exc: BaseException | None = None
        try:
            outcome = self.sender.send_batch(delivery.batch)
        except ResponseError as e:
            outcome = e.to_outcome()
            exc = e
        except Exception as e:
            self._drop(delivery, "Unexpected failure when sending data.", e)
            return
        self._handle(delivery, outcome, exc)

    def _handle(self, delivery: Delivery, outcome: SendOutcome, exc: BaseException | None = None) -> None:
        batch = delivery.batch

        if isinstance(outcome, Delivered):
            self._transition(delivery, DeliveryState.DELIVERED)
            with self._stats_lock:
                self._stats["batches_delivered"] += 1
                self._stats["items_delivered"] += batch.size
            logger.debug(f"{batch.type_name} of {batch.size} items delivered: {outcome.response}")

        elif isinstance(outcome, BackoffRetry):
            wait_ms = delivery.backoff.next_wait_ms()
            if wait_ms == GIVE_UP:
                self._drop(delivery, f"Max retries exceeded. Dropping {batch.size} pieces of data!", exc)
                return
            self._transition(delivery, DeliveryState.BACKOFF_WAIT)
            self._count("retries")
            self._notice_info(
                f"{batch.type_name} sending failed. Backing off {wait_ms} ms", batch, exc
            )
            self._submit(delivery, wait_ms / 1000.0)

        elif isinstance(outcome, WaitRetry):
            self._transition(delivery, DeliveryState.REQUESTED_WAIT)
            self._count("retries")
            self._notice_info(
                f"{batch.type_name} sending failed. Retrying in {outcome.wait_seconds} s as requested by the server",
                batch,
                exc,
            )
            self._submit(delivery, outcome.wait_seconds)

        elif isinstance(outcome, SplitRetry):
            if batch.size <= 1:
                self._drop(delivery, "Batch of a single item is too large to send. Dropping it.", exc)
                return
            self._transition(delivery, DeliveryState.SPLITTING)
            self._count("splits")
            self._notice_info("Batch size too large, splitting and retrying.", batch, exc)
            for child in batch.split():
                if not child.is_empty():
                    self._start(child, parent=delivery)

        elif isinstance(outcome, Discard):
            self._drop(delivery, f"Received a fatal exception from the API. Aborting batch send. {outcome.reason}".rstrip(), exc)

        else:
            self._drop(delivery, f"Unexpected send outcome {outcome!r}. Dropping batch.", exc)

    def _drop(self, delivery: Delivery, message: str, exc: BaseException | None = None) -> None:
        self._transition(delivery, DeliveryState.DROPPED)
        with self._stats_lock:
            self._stats["batches_dropped"] += 1
            self._stats["items_dropped"] += delivery.batch.size
        self._notice_error(message, delivery.batch, exc)

    def _notice_info(self, message: str, batch: TelemetryBatch, exc: BaseException | None = None) -> None:
        try:
            self.notification_handler.notice_info(message, batch, exc)
        except Exception as e:
            logger.error(f"Notification handler error: {e}")

    def _notice_error(self, message: str, batch: TelemetryBatch, exc: BaseException | None = None) -> None:
        try:
            self.notification_handler.notice_error(message, batch, exc)
        except Exception as e:
            logger.error(f"Notification handler error: {e}")

    def _transition(self, delivery: Delivery, state: DeliveryState) -> None:
        delivery.state = state
        if self.on_transition is not None:
            try:
                self.on_transition(delivery)
            except Exception as e:
                logger.error(f"Transition callback error: {e}")

    def _count(self, key: str) -> None:
        with self._stats_lock:
            self._stats[key] += 1

    def shutdown(self) -> bool:
        """
        Stop accepting batches and give in-flight ones a grace period.

        Waits up to config.shutdown_seconds for queued sends to finish, then
        cancels whatever is left (that data is lost). Returns True if
        everything finished in time.
        """
        logger.info(f"Shutting down telemetry client (grace period {self.config.shutdown_seconds}s)")
        self.scheduler.shutdown()
        try:
            if self.scheduler.await_termination(self.config.shutdown_seconds):
                return True
            cancelled = self.scheduler.shutdown_now()
            logger.warning(f"Delivery did not finish in time, cancelled {len(cancelled)} pending sends")
            return False
        finally:
            self.sender.close()
            logger.info(f"Telemetry client stopped. Stats: {self.stats}")

    def is_terminated(self) -> bool:
        return self.scheduler.is_terminated()

    def __enter__(self) -> TelemetryClient:
        return self

    def __exit__(self, *exc_info) -> None:
        self.shutdown()

    @property
    def stats(self) -> dict:
        """Get client statistics."""
        with self._stats_lock:
            stats = dict(self._stats)
        return {
            **stats,
            "scheduler": self.scheduler.stats,
        }
