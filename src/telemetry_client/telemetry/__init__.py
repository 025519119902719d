"""Telemetry data types, batches, buffers and their JSON wire format."""

from .records import Count, Gauge, Summary, Span, Event, Log
from .batch import TelemetryBatch, MetricBatch, SpanBatch, EventBatch, LogBatch
from .buffer import TelemetryBuffer

__all__ = [
    "Count",
    "Gauge",
    "Summary",
    "Span",
    "Event",
    "Log",
    "TelemetryBatch",
    "MetricBatch",
    "SpanBatch",
    "EventBatch",
    "LogBatch",
    "TelemetryBuffer",
]
