"""Thread-safe producer-side buffers that drain into batches."""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Generic, TypeVar

from .batch import EventBatch, LogBatch, MetricBatch, SpanBatch, TelemetryBatch

if TYPE_CHECKING:
    from ..delivery.client import TelemetryClient


logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass
class TelemetryBuffer(Generic[T]):
    """
    Accumulates telemetry items from any thread until drained into a batch.

    Usage:
        buffer = TelemetryBuffer(MetricBatch, {"host": "web-1"})
        buffer.add(Gauge("cpu", 0.42))
        client.send_batch(buffer.create_batch())
    """
    batch_type: type[TelemetryBatch] = MetricBatch
    common_attributes: dict[str, Any] = field(default_factory=dict)

    # Internal state
    _items: list[T] = field(default_factory=list, init=False)
    _lock: threading.Lock = field(default_factory=threading.Lock, init=False)
    _stats: dict = field(default_factory=dict, init=False)

    def __post_init__(self):
        self._stats = {
            "items_added": 0,
            "batches_created": 0,
        }

    def add(self, item: T) -> None:
        """Add an item to the buffer."""
        with self._lock:
            self._items.append(item)
            self._stats["items_added"] += 1

    def create_batch(self) -> TelemetryBatch[T]:
        """Drain everything accumulated so far into a new batch."""
        with self._lock:
            items, self._items = self._items, []
            self._stats["batches_created"] += 1
        logger.debug(f"Creating {self.batch_type.type_name} from {len(items)} buffered items")
        return self.batch_type(items=tuple(items), common_attributes=self.common_attributes)

    def flush(self, client: TelemetryClient) -> None:
        """Drain the buffer and hand the batch to a client."""
        client.send_batch(self.create_batch())

    def __len__(self) -> int:
        with self._lock:
            return len(self._items)

    @property
    def stats(self) -> dict:
        """Get buffer statistics."""
        with self._lock:
            return {
                **self._stats,
                "buffer_size": len(self._items),
            }


def metric_buffer(common_attributes: dict[str, Any] | None = None) -> TelemetryBuffer:
    return TelemetryBuffer(MetricBatch, dict(common_attributes or {}))


def span_buffer(common_attributes: dict[str, Any] | None = None) -> TelemetryBuffer:
    return TelemetryBuffer(SpanBatch, dict(common_attributes or {}))


def event_buffer(common_attributes: dict[str, Any] | None = None) -> TelemetryBuffer:
    return TelemetryBuffer(EventBatch, dict(common_attributes or {}))


def log_buffer(common_attributes: dict[str, Any] | None = None) -> TelemetryBuffer:
    return TelemetryBuffer(LogBatch, dict(common_attributes or {}))
