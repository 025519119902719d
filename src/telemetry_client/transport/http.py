"""HTTP sender for the telemetry ingest APIs."""

from __future__ import annotations

import gzip
import logging
from dataclasses import dataclass, field

import httpx

from .. import __version__
from ..config import SenderConfig
from ..delivery.outcomes import (
    BackoffRetry,
    Delivered,
    Discard,
    Response,
    SendOutcome,
    SplitRetry,
    WaitRetry,
)
from ..telemetry.batch import TelemetryBatch
from ..telemetry.marshaller import to_json
from .base import BatchSender


logger = logging.getLogger(__name__)

USER_AGENT = f"telemetry-client-python/{__version__}"

ENDPOINTS: dict[str, dict[str, str]] = {
    "US": {
        "metrics": "https://metric-api.newrelic.com/metric/v1",
        "spans": "https://trace-api.newrelic.com/trace/v1",
        "events": "https://insights-collector.newrelic.com/v1/accounts/events",
        "logs": "https://log-api.newrelic.com/log/v1",
    },
    "EU": {
        "metrics": "https://metric-api.eu.newrelic.com/metric/v1",
        "spans": "https://trace-api.eu.newrelic.com/trace/v1",
        "events": "https://insights-collector.eu01.nr-data.net/v1/accounts/events",
        "logs": "https://log-api.eu.newrelic.com/log/v1",
    },
}

# Status codes that will never succeed on retry
DISCARD_STATUSES = frozenset({400, 403, 404, 405, 411})
PAYLOAD_TOO_LARGE = 413
TOO_MANY_REQUESTS = 429
SUCCESS_STATUSES = frozenset({200, 202})

DEFAULT_RETRY_AFTER_SECONDS = 10.0
MAX_RETRY_AFTER_SECONDS = 3600.0


def endpoint_for(config: SenderConfig, kind: str) -> str:
    """Ingest URL for a batch kind, honouring explicit overrides before the region default."""
    if kind in config.endpoints:
        return config.endpoints[kind]
    try:
        return ENDPOINTS[config.region][kind]
    except KeyError:
        raise ValueError(f"No endpoint for {kind} in region {config.region}") from None


@dataclass
class HttpBatchSender(BatchSender):
    """
    Sends gzipped JSON batches over HTTP and classifies the response.

    - 200, 202: delivered
    - 400, 403, 404, 405, 411: discard
    - 413: split and retry
    - 429: retry after the Retry-After header (seconds, default 10, capped at an hour)
    - anything else, or a transport error: retry with backoff
    """
    config: SenderConfig = field(default_factory=SenderConfig)

    # Injected for tests; otherwise created from config and owned by the sender
    http_client: httpx.Client | None = None

    _owns_client: bool = field(default=False, init=False)

    def __post_init__(self):
        if not self.config.api_key:
            logger.warning("No API key configured, the ingest endpoints will reject every batch")
        if self.http_client is None:
            self.http_client = httpx.Client(timeout=self.config.timeout_seconds)
            self._owns_client = True

    @property
    def user_agent(self) -> str:
        if self.config.secondary_user_agent:
            return f"{USER_AGENT} {self.config.secondary_user_agent}"
        return USER_AGENT

    def _get_headers(self, batch: TelemetryBatch) -> dict[str, str]:
        key_header = "X-License-Key" if self.config.use_license_key else "Api-Key"
        return {
            key_header: self.config.api_key or "",
            "Content-Type": "application/json; charset=utf-8",
            "Content-Encoding": "gzip",
            "User-Agent": self.user_agent,
            "X-Request-Id": batch.request_id,
        }

    def send_batch(self, batch: TelemetryBatch) -> SendOutcome:
        if batch.is_empty():
            return Delivered(Response.ignored())

        try:
            payload = to_json(batch)
        except (TypeError, ValueError) as e:
            logger.error(f"Failed to serialize {batch.type_name}: {e}")
            return Discard(f"Serialization failed: {e}")

        if self.config.audit_logging_enabled:
            logger.debug(f"Sending {batch.type_name} JSON: {payload}")

        url = endpoint_for(self.config, batch.kind)
        try:
            response = self.http_client.post(
                url,
                content=gzip.compress(payload.encode("utf-8")),
                headers=self._get_headers(batch),
            )
        except httpx.HTTPError as e:
            logger.warning(f"Error sending {batch.type_name} to {url}: {e}")
            return BackoffRetry(f"Transport error: {e}")

        return classify_response(response)

    def close(self) -> None:
        if self._owns_client and self.http_client is not None:
            self.http_client.close()


def classify_response(response: httpx.Response) -> SendOutcome:
    """Map an ingest API response onto a SendOutcome."""
    status = response.status_code
    message = response.reason_phrase
    body = response.text

    if status in SUCCESS_STATUSES:
        return Delivered(Response(status, message, body))

    reason = f"Response from server was not successful: {status} {message} {body}".rstrip()
    if status in DISCARD_STATUSES:
        return Discard(reason)
    if status == PAYLOAD_TOO_LARGE:
        return SplitRetry(reason)
    if status == TOO_MANY_REQUESTS:
        retry_after = response.headers.get("Retry-After")
        if retry_after is None:
            return WaitRetry(DEFAULT_RETRY_AFTER_SECONDS, reason)
        try:
            seconds = int(retry_after.strip())
        except ValueError:
            logger.warning(f"Unparseable Retry-After header {retry_after!r}, backing off instead")
            return BackoffRetry(reason)
        if seconds < 0:
            logger.warning(f"Negative Retry-After header {retry_after!r}, backing off instead")
            return BackoffRetry(reason)
        if seconds > MAX_RETRY_AFTER_SECONDS:
            logger.warning(f"Retry-After of {seconds}s exceeds {MAX_RETRY_AFTER_SECONDS:.0f}s, capping")
            return WaitRetry(MAX_RETRY_AFTER_SECONDS, reason)
        return WaitRetry(float(seconds), reason)
    return BackoffRetry(reason)
