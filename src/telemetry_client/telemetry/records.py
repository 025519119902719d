"""Telemetry record types."""

from __future__ import annotations

import time
import uuid
from dataclasses import dataclass, field
from typing import Any


def now_ms() -> int:
    """Current wall-clock time in epoch milliseconds."""
    return int(time.time() * 1000)


@dataclass(frozen=True, slots=True)
class Count:
    """A delta count accumulated over an interval."""
    name: str
    value: float
    start_time_ms: int
    end_time_ms: int
    attributes: dict[str, Any] = field(default_factory=dict)

    @property
    def interval_ms(self) -> int:
        return self.end_time_ms - self.start_time_ms


@dataclass(frozen=True, slots=True)
class Gauge:
    """A point-in-time value."""
    name: str
    value: float
    timestamp_ms: int = field(default_factory=now_ms)
    attributes: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True, slots=True)
class Summary:
    """Pre-aggregated distribution over an interval."""
    name: str
    count: int
    sum: float
    min: float
    max: float
    start_time_ms: int
    end_time_ms: int
    attributes: dict[str, Any] = field(default_factory=dict)

    @property
    def interval_ms(self) -> int:
        return self.end_time_ms - self.start_time_ms


@dataclass(frozen=True, slots=True)
class Span:
    """
    A single unit of work within a distributed trace.

    `trace_id` may be left unset when the enclosing SpanBatch carries
    a batch-level trace id.
    """
    id: str
    trace_id: str | None = None
    timestamp_ms: int = field(default_factory=now_ms)
    name: str | None = None
    parent_id: str | None = None
    service_name: str | None = None
    duration_ms: float | None = None
    error: bool = False
    attributes: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def create(cls, name: str, trace_id: str | None = None, **kwargs) -> Span:
        """Factory method with a generated span id."""
        return cls(id=uuid.uuid4().hex[:16], trace_id=trace_id, name=name, **kwargs)


@dataclass(frozen=True, slots=True)
class Event:
    """A custom event; `event_type` names the event table it lands in."""
    event_type: str
    timestamp_ms: int = field(default_factory=now_ms)
    attributes: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True, slots=True)
class Log:
    """A log entry, optionally carrying the exception that produced it."""
    message: str
    timestamp_ms: int = field(default_factory=now_ms)
    level: str | None = None
    service_name: str | None = None
    error: BaseException | None = None
    attributes: dict[str, Any] = field(default_factory=dict)
