"""Tests for telemetry batches and splitting."""

import pytest

from telemetry_client.telemetry.batch import (
    EventBatch,
    LogBatch,
    MetricBatch,
    SpanBatch,
    batch_of,
)
from telemetry_client.telemetry.records import Count, Gauge, Span, Summary


class TestTelemetryBatch:
    def test_size_and_empty(self, gauges):
        assert gauges(3).size == 3
        assert len(gauges(3)) == 3
        assert not gauges(3).is_empty()
        assert gauges(0).is_empty()

    def test_items_are_immutable(self):
        items = [Gauge("a", 1.0)]
        batch = MetricBatch(items=items)
        items.append(Gauge("b", 2.0))

        assert batch.size == 1
        assert isinstance(batch.items, tuple)

    def test_common_attributes_are_read_only(self):
        attrs = {"host": "web-1"}
        batch = MetricBatch(items=(Gauge("a", 1.0),), common_attributes=attrs)
        attrs["host"] = "web-2"

        assert batch.common_attributes["host"] == "web-1"
        with pytest.raises(TypeError):
            batch.common_attributes["host"] = "web-3"

    def test_has_common_attributes(self, gauges):
        assert gauges(1, host="web-1").has_common_attributes()
        assert not gauges(1).has_common_attributes()

    def test_str(self, gauges):
        assert str(gauges(2)) == "MetricBatch(size=2)"


class TestSplit:
    @pytest.mark.parametrize("n", [1, 2, 3, 4, 7, 10, 101])
    def test_children_partition_items(self, gauges, n):
        batch = gauges(n)
        first, second = batch.split()

        assert first.size + second.size == n
        assert first.size == n // 2
        assert first.items + second.items == batch.items

    def test_split_of_three(self, gauges):
        first, second = gauges(3).split()
        assert (first.size, second.size) == (1, 2)

    def test_split_of_one_has_an_empty_half(self, gauges):
        first, second = gauges(1).split()
        assert first.is_empty()
        assert second.size == 1

    def test_split_of_empty_yields_nothing(self, gauges):
        assert gauges(0).split() == []

    def test_children_share_common_attributes(self, gauges):
        batch = gauges(4, service="billing")
        for child in batch.split():
            assert dict(child.common_attributes) == {"service": "billing"}

    def test_source_is_untouched(self, gauges):
        batch = gauges(5)
        before = batch.items
        batch.split()
        assert batch.items is before
        assert batch.size == 5

    def test_children_keep_batch_type(self, events):
        for child in events(4).split():
            assert isinstance(child, EventBatch)

    def test_span_batch_keeps_trace_id(self):
        batch = SpanBatch(
            items=tuple(Span.create(f"op-{i}") for i in range(3)),
            trace_id="trace-1",
        )
        for child in batch.split():
            assert isinstance(child, SpanBatch)
            assert child.trace_id == "trace-1"

    def test_children_get_fresh_request_ids(self, gauges):
        batch = gauges(4)
        left, right = batch.split()

        assert len({batch.request_id, left.request_id, right.request_id}) == 3

    def test_request_id_ignored_in_equality(self, gauges):
        batch = gauges(2)
        assert batch.request_id != gauges(2).request_id
        assert batch == gauges(2)


class TestBatchOf:
    def test_known_kinds(self):
        assert isinstance(batch_of("metrics", []), MetricBatch)
        assert isinstance(batch_of("spans", []), SpanBatch)
        assert isinstance(batch_of("events", []), EventBatch)
        assert isinstance(batch_of("logs", []), LogBatch)

    def test_unknown_kind(self):
        with pytest.raises(ValueError, match="Unknown telemetry kind"):
            batch_of("traces", [])


class TestRecords:
    def test_count_interval(self):
        count = Count("requests", 5, start_time_ms=1000, end_time_ms=61_000)
        assert count.interval_ms == 60_000

    def test_summary_interval(self):
        summary = Summary("latency", 3, 6.0, 1.0, 3.0, start_time_ms=0, end_time_ms=10)
        assert summary.interval_ms == 10

    def test_span_create_generates_id(self):
        a = Span.create("op")
        b = Span.create("op")
        assert a.id != b.id
        assert a.name == "op"
