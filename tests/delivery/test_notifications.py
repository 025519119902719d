"""Tests for notification handlers and send outcomes."""

import logging

import pytest

from telemetry_client.delivery.notifications import LoggingNotificationHandler
from telemetry_client.delivery.outcomes import (
    BackoffRetry,
    Discard,
    DiscardBatch,
    Response,
    ResponseError,
    RetryWithBackoff,
    RetryWithRequestedWait,
    RetryWithSplit,
    SplitRetry,
    WaitRetry,
)


class TestLoggingNotificationHandler:
    def test_info_is_prefixed_with_batch_type(self, gauges, caplog):
        handler = LoggingNotificationHandler()
        with caplog.at_level(logging.INFO):
            handler.notice_info("splitting", gauges(2))

        assert caplog.records[-1].levelno == logging.INFO
        assert caplog.records[-1].getMessage() == "[MetricBatch] - splitting"

    def test_error_carries_exception(self, events, caplog):
        handler = LoggingNotificationHandler()
        error = RuntimeError("boom")
        with caplog.at_level(logging.ERROR):
            handler.notice_error("dropped", events(1), error)

        record = caplog.records[-1]
        assert record.levelno == logging.ERROR
        assert record.getMessage() == "[EventBatch] - dropped"
        assert record.exc_info[1] is error


class TestResponse:
    def test_ignored(self):
        assert Response.ignored() == Response(202, "Ignored", "Empty batch")


class TestResponseErrors:
    def test_backoff(self):
        assert RetryWithBackoff("503").to_outcome() == BackoffRetry("503")

    def test_split(self):
        assert isinstance(RetryWithSplit("413").to_outcome(), SplitRetry)

    def test_discard(self):
        assert DiscardBatch("400").to_outcome() == Discard("400")

    def test_base_error_discards(self):
        assert isinstance(ResponseError("?").to_outcome(), Discard)

    @pytest.mark.parametrize("wait, unit, seconds", [
        (15, "ms", 0.015),
        (15, "milliseconds", 0.015),
        (10, "s", 10.0),
        (10, "seconds", 10.0),
        (2, "minutes", 120.0),
    ])
    def test_requested_wait_units(self, wait, unit, seconds):
        error = RetryWithRequestedWait(wait, unit)
        assert error.wait_seconds == seconds
        outcome = error.to_outcome()
        assert isinstance(outcome, WaitRetry)
        assert outcome.wait_seconds == seconds

    def test_unknown_unit(self):
        with pytest.raises(ValueError):
            RetryWithRequestedWait(1, "fortnights")
