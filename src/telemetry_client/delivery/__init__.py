"""Delivery engine - admission control, retries, backoff and batch splitting."""

from .backoff import Backoff
from .executor import DelayedTaskExecutor, RejectedExecution
from .scheduler import LimitingScheduler
from .outcomes import (
    Response,
    SendOutcome,
    Delivered,
    BackoffRetry,
    WaitRetry,
    SplitRetry,
    Discard,
    ResponseError,
    RetryWithBackoff,
    RetryWithRequestedWait,
    RetryWithSplit,
    DiscardBatch,
)
from .notifications import NotificationHandler, LoggingNotificationHandler
from .client import TelemetryClient, Delivery, DeliveryState

__all__ = [
    "Backoff",
    "DelayedTaskExecutor",
    "RejectedExecution",
    "LimitingScheduler",
    "Response",
    "SendOutcome",
    "Delivered",
    "BackoffRetry",
    "WaitRetry",
    "SplitRetry",
    "Discard",
    "ResponseError",
    "RetryWithBackoff",
    "RetryWithRequestedWait",
    "RetryWithSplit",
    "DiscardBatch",
    "NotificationHandler",
    "LoggingNotificationHandler",
    "TelemetryClient",
    "Delivery",
    "DeliveryState",
]
