"""Results of a single send attempt."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Union


@dataclass(frozen=True, slots=True)
class Response:
    """What the ingest endpoint said about an accepted batch. Passed to logs only."""
    status_code: int
    status_message: str
    body: str = ""

    @classmethod
    def ignored(cls) -> Response:
        """Synthetic success for a batch that had nothing to send."""
        return cls(202, "Ignored", "Empty batch")


@dataclass(frozen=True, slots=True)
class Delivered:
    response: Response


@dataclass(frozen=True, slots=True)
class BackoffRetry:
    """Transient failure: retry on the lineage's backoff schedule."""
    reason: str = ""


@dataclass(frozen=True, slots=True)
class WaitRetry:
    """The endpoint asked for a retry after exactly `wait_seconds`."""
    wait_seconds: float
    reason: str = ""


@dataclass(frozen=True, slots=True)
class SplitRetry:
    """The batch is too large: halve it and send each half on its own."""
    reason: str = ""


@dataclass(frozen=True, slots=True)
class Discard:
    """Non-retryable failure: drop the batch."""
    reason: str = ""


SendOutcome = Union[Delivered, BackoffRetry, WaitRetry, SplitRetry, Discard]


class ResponseError(Exception):
    """
    Base class for senders that report failures by raising.

    Each subclass maps onto one SendOutcome via to_outcome().
    """

    def to_outcome(self) -> SendOutcome:
        return Discard(str(self))


class RetryWithBackoff(ResponseError):
    """Transient failure, retry with backoff."""

    def to_outcome(self) -> SendOutcome:
        return BackoffRetry(str(self))


_UNITS = {
    "ms": "milliseconds",
    "milliseconds": "milliseconds",
    "s": "seconds",
    "seconds": "seconds",
    "m": "minutes",
    "minutes": "minutes",
}


class RetryWithRequestedWait(ResponseError):
    """The endpoint asked for a specific wait before retrying."""

    def __init__(self, wait: float, unit: str = "seconds", message: str = ""):
        if unit not in _UNITS:
            raise ValueError(f"Unknown time unit: {unit}")
        super().__init__(message or f"Retry requested after {wait} {unit}")
        self.wait = wait
        self.unit = _UNITS[unit]

    @property
    def wait_seconds(self) -> float:
        if self.unit == "milliseconds":
            return self.wait / 1000
        if self.unit == "minutes":
            return float(self.wait * 60)
        return float(self.wait)

    def to_outcome(self) -> SendOutcome:
        return WaitRetry(self.wait_seconds, str(self))


class RetryWithSplit(ResponseError):
    """Batch too large, split and retry."""

    def to_outcome(self) -> SendOutcome:
        return SplitRetry(str(self))


class DiscardBatch(ResponseError):
    """Non-retryable failure, e.g. a malformed request."""
