"""
Unit tests for metrics recording.
"""

import pytest
from prometheus_client import REGISTRY

from record_sinks.align import ColumnAligner
from record_sinks.config import SqlSinkConfig
from record_sinks.errors import TransportError
from record_sinks.sinks import SINK_WRITE_LATENCY, SINK_WRITES_TOTAL, DorisSink


def make_sink(transport, batch=1):
    config = SqlSinkConfig(batch_size=batch, table="events")
    return DorisSink(config, transport, ColumnAligner(["host"], backend="doris"))


def sample(name, **labels):
    return REGISTRY.get_sample_value(name, labels) or 0.0


@pytest.mark.asyncio
async def test_metrics_success_increment(sql_transport_success, make_record):
    """Successful flushes increment success and row counters."""
    before = sample("record_sinks_rows_total", sink="doris")
    async with make_sink(sql_transport_success) as sink:
        await sink.ingest(make_record(host="a"))

    samples = list(SINK_WRITES_TOTAL.collect())[0].samples
    success_samples = [
        s for s in samples if s.labels.get("sink") == "doris" and s.labels.get("status") == "success"
    ]
    assert len(success_samples) > 0
    assert sample("record_sinks_rows_total", sink="doris") == before + 1


@pytest.mark.asyncio
async def test_metrics_failure_increment(sql_transport_failure, make_record):
    """Failed flushes increment the failure counter."""
    before = sample("record_sinks_writes_total", sink="doris", status="failure")
    sink = make_sink(sql_transport_failure)
    with pytest.raises(TransportError):
        await sink.ingest(make_record(host="a"))
    assert sample("record_sinks_writes_total", sink="doris", status="failure") == before + 1


@pytest.mark.asyncio
async def test_metrics_latency_recorded(sql_transport_success, make_record):
    """Flush latency is observed per backend."""
    async with make_sink(sql_transport_success) as sink:
        await sink.ingest(make_record(host="a"))

    samples = list(SINK_WRITE_LATENCY.collect())[0].samples
    doris_samples = [s for s in samples if s.labels.get("sink") == "doris"]
    assert len(doris_samples) > 0


@pytest.mark.asyncio
async def test_dropped_and_skipped_counted(sql_transport_success, make_record):
    dropped = sample("record_sinks_dropped_fields_total", sink="doris")
    skipped = sample("record_sinks_skipped_records_total", sink="doris")
    sink = make_sink(sql_transport_success, batch=10)

    await sink.ingest(make_record(host="a", extra=1, other=2))
    await sink.ingest(make_record(unknown="x"))

    assert sample("record_sinks_dropped_fields_total", sink="doris") == dropped + 3
    assert sample("record_sinks_skipped_records_total", sink="doris") == skipped + 1
