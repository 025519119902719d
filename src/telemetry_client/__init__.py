"""
Telemetry Client - best-effort delivery of metrics, spans, events and logs

Batches handed to the client are delivered in the background with:
- Bounded in-flight work (admission control instead of blocking)
- Exponential backoff for transient failures
- Server-directed retry waits
- Halving split when the ingest endpoint rejects a batch as too large
"""

__version__ = "0.1.0"

from .config import BackoffConfig, ClientConfig, SenderConfig
from .delivery.client import TelemetryClient
from .delivery.outcomes import Response
from .telemetry.batch import EventBatch, LogBatch, MetricBatch, SpanBatch

__all__ = [
    "__version__",
    "BackoffConfig",
    "ClientConfig",
    "SenderConfig",
    "TelemetryClient",
    "Response",
    "MetricBatch",
    "SpanBatch",
    "EventBatch",
    "LogBatch",
]
