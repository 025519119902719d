"""JSON wire format for each kind of telemetry batch."""

from __future__ import annotations

import json
import math
import traceback
from typing import Any, Callable, Mapping

from .batch import EventBatch, LogBatch, MetricBatch, SpanBatch, TelemetryBatch
from .records import Count, Gauge, Log, Span, Summary


def clean_attributes(attributes: Mapping[str, Any]) -> dict[str, Any]:
    """
    Make attribute values JSON-safe.

    None and non-finite numbers are dropped, booleans and numbers pass through,
    everything else is rendered with str().
    """
    cleaned: dict[str, Any] = {}
    for key, value in attributes.items():
        if value is None:
            continue
        if isinstance(value, (bool, int, str)):
            cleaned[key] = value
        elif isinstance(value, float):
            if math.isfinite(value):
                cleaned[key] = value
        else:
            cleaned[key] = str(value)
    return cleaned


def _common_block(batch: TelemetryBatch, **extra: Any) -> dict[str, Any] | None:
    common: dict[str, Any] = {k: v for k, v in extra.items() if v is not None}
    if batch.has_common_attributes():
        common["attributes"] = clean_attributes(batch.common_attributes)
    return common or None


def _envelope(batch: TelemetryBatch, key: str, items: list[dict[str, Any]], **common: Any) -> str:
    body: dict[str, Any] = {}
    block = _common_block(batch, **common)
    if block is not None:
        body["common"] = block
    body[key] = items
    return json.dumps([body])


def _is_finite(*values: float) -> bool:
    return all(math.isfinite(v) for v in values)


def metric_to_dict(metric: Count | Gauge | Summary) -> dict[str, Any] | None:
    """Render one metric, or None if it carries a non-finite value."""
    if isinstance(metric, Count):
        if not _is_finite(metric.value):
            return None
        return {
            "name": metric.name,
            "type": "count",
            "value": metric.value,
            "timestamp": metric.start_time_ms,
            "interval.ms": metric.interval_ms,
            "attributes": clean_attributes(metric.attributes),
        }
    if isinstance(metric, Gauge):
        if not _is_finite(metric.value):
            return None
        return {
            "name": metric.name,
            "type": "gauge",
            "value": metric.value,
            "timestamp": metric.timestamp_ms,
            "attributes": clean_attributes(metric.attributes),
        }
    if isinstance(metric, Summary):
        if not _is_finite(metric.sum, metric.min, metric.max):
            return None
        return {
            "name": metric.name,
            "type": "summary",
            "value": {
                "count": metric.count,
                "sum": metric.sum,
                "min": metric.min,
                "max": metric.max,
            },
            "timestamp": metric.start_time_ms,
            "interval.ms": metric.interval_ms,
            "attributes": clean_attributes(metric.attributes),
        }
    raise TypeError(f"Unsupported metric type: {type(metric).__name__}")


def marshal_metrics(batch: MetricBatch) -> str:
    metrics = [d for d in (metric_to_dict(m) for m in batch.items) if d is not None]
    return _envelope(batch, "metrics", metrics)


def span_to_dict(span: Span) -> dict[str, Any]:
    attributes = dict(span.attributes)
    attributes.update({
        "name": span.name,
        "parent.id": span.parent_id,
        "duration.ms": span.duration_ms,
        "service.name": span.service_name,
    })
    if span.error:
        attributes["error"] = True
    d: dict[str, Any] = {"id": span.id}
    if span.trace_id is not None:
        d["trace.id"] = span.trace_id
    d["timestamp"] = span.timestamp_ms
    d["attributes"] = clean_attributes(attributes)
    return d


def marshal_spans(batch: SpanBatch) -> str:
    return _envelope(batch, "spans", [span_to_dict(s) for s in batch.items], **{"trace.id": batch.trace_id})


def marshal_events(batch: EventBatch) -> str:
    # Events have no common block: shared attributes are folded into each event
    # and override event attributes of the same name
    events = []
    for event in batch.items:
        d = clean_attributes({**event.attributes, **batch.common_attributes})
        d["eventType"] = event.event_type
        d["timestamp"] = event.timestamp_ms
        events.append(d)
    return json.dumps(events)


def log_to_dict(log: Log) -> dict[str, Any]:
    attributes = dict(log.attributes)
    attributes["service.name"] = log.service_name
    attributes["log.level"] = log.level
    if log.error is not None:
        attributes["error.message"] = str(log.error)
        attributes["error.class"] = type(log.error).__name__
        attributes["error.stack"] = "".join(traceback.format_exception(log.error)).rstrip()
    return {
        "timestamp": log.timestamp_ms,
        "message": log.message,
        "attributes": clean_attributes(attributes),
    }


def marshal_logs(batch: LogBatch) -> str:
    return _envelope(batch, "logs", [log_to_dict(entry) for entry in batch.items])


MARSHALLERS: dict[str, Callable[[Any], str]] = {
    MetricBatch.kind: marshal_metrics,
    SpanBatch.kind: marshal_spans,
    EventBatch.kind: marshal_events,
    LogBatch.kind: marshal_logs,
}


def to_json(batch: TelemetryBatch) -> str:
    """Serialize a batch to the JSON body expected by its ingest endpoint."""
    try:
        marshaller = MARSHALLERS[batch.kind]
    except KeyError:
        raise TypeError(f"No marshaller for {batch.type_name}") from None
    return marshaller(batch)
