"""Tests for structured logging and metrics"""

import json
import logging

import pytest

from relgraph.observability import (
    JSONFormatter,
    Metrics,
    log_with_context,
    track_errors,
    track_latency,
    metrics,
)


def test_json_formatter_includes_extra_context():
    record = logging.LogRecord("relgraph", logging.INFO, __file__, 1, "hello %s", ("world",), None)
    record.extra = {"kind": "people"}

    data = json.loads(JSONFormatter().format(record))

    assert data["message"] == "hello world"
    assert data["level"] == "INFO"
    assert data["kind"] == "people"


def test_log_with_context_merges_extra():
    adapter = log_with_context(kind="tasks")
    msg, kwargs = adapter.process("msg", {"extra": {"extra": {"id": "1"}}})
    assert kwargs["extra"]["extra"] == {"kind": "tasks", "id": "1"}


def test_percentiles():
    m = Metrics()
    for value in range(1, 101):
        m.record_latency("load", float(value))

    assert m.get_percentile("load", 50) == 51.0
    assert m.get_percentile("mutation", 50) is None
    assert m.to_dict()["latencies"]["load_p95"] == 96.0


def test_increment_ignores_unknown_counters():
    m = Metrics()
    m.increment("mutation_count", 2)
    m.increment("nonexistent_count")
    assert m.mutation_count == 2
    m.reset()
    assert m.mutation_count == 0


@pytest.mark.asyncio
async def test_track_latency_counts_async_calls():
    @track_latency("mutation")
    async def op():
        return 42

    assert await op() == 42
    assert metrics.mutation_count == 1
    assert len(metrics.mutation_latencies) == 1


@pytest.mark.asyncio
async def test_track_errors_counts_and_reraises():
    @track_errors
    async def broken():
        raise RuntimeError("boom")

    with pytest.raises(RuntimeError):
        await broken()
    assert metrics.error_count == 1
