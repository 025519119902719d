"""Immutable batches of telemetry, the unit of transmission."""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field, replace
from types import MappingProxyType
from typing import Any, ClassVar, Generic, Iterable, Mapping, TypeVar

from .records import Count, Event, Gauge, Log, Span, Summary


T = TypeVar("T")


def new_request_id() -> str:
    return str(uuid.uuid4())


@dataclass(frozen=True)
class TelemetryBatch(Generic[T]):
    """
    A collection of telemetry items of one kind plus attributes shared by all of them.

    Items and common attributes are fixed at construction. `split()` builds
    new batches and never touches the source.
    """
    kind: ClassVar[str] = "telemetry"
    type_name: ClassVar[str] = "TelemetryBatch"

    items: tuple[T, ...] = ()
    common_attributes: Mapping[str, Any] = field(default_factory=dict)

    # Sent as X-Request-Id; stays the same across retries of this batch
    request_id: str = field(default_factory=new_request_id, compare=False)

    def __post_init__(self):
        object.__setattr__(self, "items", tuple(self.items))
        object.__setattr__(self, "common_attributes", MappingProxyType(dict(self.common_attributes)))

    @property
    def size(self) -> int:
        """Number of items; the work-unit size used for admission control."""
        return len(self.items)

    def is_empty(self) -> bool:
        return not self.items

    def has_common_attributes(self) -> bool:
        return bool(self.common_attributes)

    def split(self) -> list[TelemetryBatch[T]]:
        """
        Halve the batch.

        Returns [items[:n//2], items[n//2:]] as two batches carrying the same
        common attributes, or [] when there is nothing to split. A single-item
        batch yields one full child and one empty child. Each child gets its
        own request id.
        """
        if self.is_empty():
            return []
        half = len(self.items) // 2
        return [
            replace(self, items=self.items[:half], request_id=new_request_id()),
            replace(self, items=self.items[half:], request_id=new_request_id()),
        ]

    def __len__(self) -> int:
        return len(self.items)

    def __iter__(self):
        return iter(self.items)

    def __str__(self) -> str:
        return f"{self.type_name}(size={self.size})"


@dataclass(frozen=True)
class MetricBatch(TelemetryBatch[Count | Gauge | Summary]):
    """Counts, gauges and summaries."""
    kind: ClassVar[str] = "metrics"
    type_name: ClassVar[str] = "MetricBatch"


@dataclass(frozen=True)
class SpanBatch(TelemetryBatch[Span]):
    """Spans, optionally all belonging to one trace."""
    kind: ClassVar[str] = "spans"
    type_name: ClassVar[str] = "SpanBatch"

    trace_id: str | None = None


@dataclass(frozen=True)
class EventBatch(TelemetryBatch[Event]):
    kind: ClassVar[str] = "events"
    type_name: ClassVar[str] = "EventBatch"


@dataclass(frozen=True)
class LogBatch(TelemetryBatch[Log]):
    kind: ClassVar[str] = "logs"
    type_name: ClassVar[str] = "LogBatch"


BATCH_TYPES: dict[str, type[TelemetryBatch]] = {
    cls.kind: cls for cls in (MetricBatch, SpanBatch, EventBatch, LogBatch)
}


def batch_of(kind: str, items: Iterable[Any], common_attributes: Mapping[str, Any] | None = None) -> TelemetryBatch:
    """Build a batch of the given kind ("metrics", "spans", "events" or "logs")."""
    try:
        batch_type = BATCH_TYPES[kind]
    except KeyError:
        raise ValueError(f"Unknown telemetry kind: {kind}") from None
    return batch_type(items=tuple(items), common_attributes=common_attributes or {})
