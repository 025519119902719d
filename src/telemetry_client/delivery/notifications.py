"""Hooks for observing what happened to batches handed to the client."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod

from ..telemetry.batch import TelemetryBatch


logger = logging.getLogger(__name__)


class NotificationHandler(ABC):
    """
    Receives delivery notices from the client.

    Called on the delivery worker thread, so implementations should return quickly.
    """

    @abstractmethod
    def notice_info(self, message: str, batch: TelemetryBatch, exc: BaseException | None = None) -> None:
        """Something noteworthy but recoverable happened (a retry, a split)."""
        ...

    @abstractmethod
    def notice_error(self, message: str, batch: TelemetryBatch, exc: BaseException | None = None) -> None:
        """Data was lost."""
        ...


def _prefixed(message: str, batch: TelemetryBatch | None) -> str:
    if batch is None:
        return message
    return f"[{batch.type_name}] - {message}"


class LoggingNotificationHandler(NotificationHandler):
    """Default handler: writes notices to the module logger."""

    def notice_info(self, message: str, batch: TelemetryBatch, exc: BaseException | None = None) -> None:
        logger.info(_prefixed(message, batch), exc_info=exc)

    def notice_error(self, message: str, batch: TelemetryBatch, exc: BaseException | None = None) -> None:
        logger.error(_prefixed(message, batch), exc_info=exc)
