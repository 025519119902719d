"""Base sender interface."""

from __future__ import annotations

from abc import ABC, abstractmethod

from ..delivery.outcomes import SendOutcome
from ..telemetry.batch import TelemetryBatch


class BatchSender(ABC):
    """
    Abstract base class for batch senders.

    Senders serialize a batch, transmit it, and classify what happened into
    one SendOutcome. They are called on the delivery worker thread and may block.
    """

    @abstractmethod
    def send_batch(self, batch: TelemetryBatch) -> SendOutcome:
        """
        Send one batch and report the outcome.

        May instead raise a ResponseError subclass; any other exception is
        treated as a non-retryable failure.
        """
        ...

    def close(self) -> None:
        """Release resources (called on client shutdown)."""
        pass
