"""Senders that put batches on the wire."""

from .base import BatchSender
from .http import HttpBatchSender

__all__ = ["BatchSender", "HttpBatchSender"]
