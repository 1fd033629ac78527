"""
Unit tests for the SQL bulk sinks.
"""

from types import SimpleNamespace
from unittest.mock import AsyncMock

import pytest

from record_sinks.align import POSTGRES, ColumnAligner
from record_sinks.config import EnvOverrides, SqlSinkConfig
from record_sinks.errors import (
    SchemaError,
    SinkClosedError,
    TransportError,
    UnsupportedOperationError,
)
from record_sinks.models import Field, Record
from record_sinks.sinks import DorisSink, MySqlSink, PostgresSink, SinkState
from record_sinks.sinks import sql as sql_sinks

COLUMNS = ["host", "status", "msg"]


def make_sink(transport, batch=2, cls=MySqlSink, **cfg):
    config = SqlSinkConfig(batch_size=batch, database="logs", table="events", **cfg)
    aligner = ColumnAligner(COLUMNS, dialect=cls.dialect, backend=cls.kind)
    return cls(config, transport, aligner)


@pytest.mark.asyncio
async def test_bulk_insert_statement(sql_transport_success, web_record, make_record):
    sink = make_sink(sql_transport_success)
    await sink.ingest(web_record)
    await sink.ingest(make_record(host="web-2", extra="dropped"))

    assert sql_transport_success._statements == [
        "INSERT INTO `logs`.`events` (`host`, `status`, `msg`) VALUES "
        "('web-1', '200', 'O''Brien logged in'), ('web-2', NULL, NULL)"
    ]
    assert sink.pending == 0


@pytest.mark.asyncio
async def test_flush_exactly_at_batch_size(sql_transport_success, make_record):
    """N ingests trigger one flush, and only on the N-th."""
    sink = make_sink(sql_transport_success, batch=3)
    for i in range(2):
        await sink.ingest(make_record(host=f"h{i}"))
    assert sql_transport_success._statements == []

    await sink.ingest(make_record(host="h2"))
    assert len(sql_transport_success._statements) == 1

    await sink.ingest(make_record(host="h3"))
    assert len(sql_transport_success._statements) == 1
    assert sink.pending == 1


@pytest.mark.asyncio
async def test_stop_drains_once(sql_transport_success, make_record):
    sink = make_sink(sql_transport_success, batch=10)
    await sink.ingest(make_record(host="a"))
    await sink.ingest(make_record(host="b"))

    await sink.stop()

    assert len(sql_transport_success._statements) == 1
    assert sink.pending == 0
    assert sink.state is SinkState.STOPPED
    sql_transport_success.close.assert_awaited_once()

    await sink.stop()  # no-op once stopped
    assert len(sql_transport_success._statements) == 1
    sql_transport_success.close.assert_awaited_once()


@pytest.mark.asyncio
async def test_ingest_after_stop(sql_transport_success, make_record):
    sink = make_sink(sql_transport_success)
    await sink.stop()
    with pytest.raises(SinkClosedError, match="mysql"):
        await sink.ingest(make_record(host="late"))
    with pytest.raises(SinkClosedError):
        await sink.reconnect()


@pytest.mark.asyncio
async def test_failed_flush_keeps_rows(sql_transport_failure, make_record):
    sink = make_sink(sql_transport_failure)
    await sink.ingest(make_record(host="a"))
    with pytest.raises(TransportError, match="Lost connection"):
        await sink.ingest(make_record(host="b"))

    assert sink.pending == 2
    assert sink.state is SinkState.ACTIVE

    # an explicit flush resends the same statement
    with pytest.raises(TransportError):
        await sink.flush()
    assert sql_transport_failure._attempts[0] == sql_transport_failure._attempts[1]


@pytest.mark.asyncio
async def test_stop_is_terminal_when_drain_fails(sql_transport_failure, make_record):
    sink = make_sink(sql_transport_failure, batch=10)
    for i in range(6):
        await sink.ingest(make_record(host=f"h{i}"))

    with pytest.raises(TransportError, match="Lost connection"):
        await sink.stop()
    assert sink.state is SinkState.STOPPED
    sql_transport_failure.close.assert_awaited_once()
    assert len(sql_transport_failure._attempts) == 1

    # rows that could not be sent are left for the caller to inspect
    [(table, rows)] = sink.undelivered()
    assert table == "events"
    assert len(rows) == 6

    await sink.stop()
    await sink.stop()
    assert len(sql_transport_failure._attempts) == 1
    sql_transport_failure.close.assert_awaited_once()
    with pytest.raises(SinkClosedError):
        await sink.flush()


@pytest.mark.asyncio
async def test_record_without_matching_column_is_skipped(sql_transport_success, make_record):
    sink = make_sink(sql_transport_success)
    await sink.ingest(make_record(unrelated="x"))
    assert sink.pending == 0
    assert sink.processed == 0


@pytest.mark.asyncio
async def test_ingest_many_stops_on_first_error(sql_transport_failure, make_record):
    sink = make_sink(sql_transport_failure, batch=1)
    records = [make_record(host="a"), make_record(host="b")]
    with pytest.raises(TransportError):
        await sink.ingest_many(records)
    assert len(sql_transport_failure._attempts) == 1


@pytest.mark.asyncio
async def test_context_manager_flushes(sql_transport_success, make_record):
    async with make_sink(sql_transport_success, batch=50) as sink:
        await sink.ingest(make_record(host="a"))
    assert len(sql_transport_success._statements) == 1
    assert sink.state is SinkState.STOPPED


@pytest.mark.asyncio
async def test_postgres_quoting(sql_transport_success):
    sink = make_sink(sql_transport_success, batch=1, cls=PostgresSink)
    await sink.ingest(Record((Field("host", "db"),)))
    assert sql_transport_success._statements[0].startswith(
        'INSERT INTO "public"."events" ("host", "status", "msg") VALUES '
    )


@pytest.mark.asyncio
async def test_raw_input_rejected(sql_transport_success):
    sink = make_sink(sql_transport_success)
    for call, arg in (
        (sink.sink_str, "x"),
        (sink.sink_bytes, b"x"),
        (sink.sink_str_batch, ["x"]),
        (sink.sink_bytes_batch, [b"x"]),
    ):
        with pytest.raises(UnsupportedOperationError, match="mysql"):
            await call(arg)


@pytest.mark.asyncio
async def test_reconnect_probes_only(sql_transport_success, make_record):
    sink = make_sink(sql_transport_success, batch=10)
    await sink.ingest(make_record(host="a"))
    await sink.reconnect()
    sql_transport_success.probe.assert_awaited_once()
    assert sink.pending == 1


class TestConnect:
    """Schema discovery at connect time, with the transport patched out."""

    @pytest.fixture
    def patched(self, monkeypatch, sql_transport_success):
        sql_transport_success.backend = "mysql"
        state = SimpleNamespace(columns=COLUMNS, transport=sql_transport_success)
        monkeypatch.setattr(
            sql_sinks,
            "SqlTransport",
            SimpleNamespace(connect=AsyncMock(return_value=sql_transport_success)),
        )
        monkeypatch.setattr(sql_sinks, "ensure_table", AsyncMock(return_value=False))

        async def _columns(transport, *, schema, table):
            return state.columns

        monkeypatch.setattr(sql_sinks, "load_columns", _columns)
        return state

    @pytest.mark.asyncio
    async def test_connect_loads_columns(self, patched):
        sink = await MySqlSink.connect({"database": "logs", "table": "events"})
        assert sink.columns == tuple(COLUMNS)
        assert sink.state is SinkState.ACTIVE
        sql_sinks.ensure_table.assert_awaited_once_with(
            patched.transport, schema="logs", table="events", create_table=None
        )

    @pytest.mark.asyncio
    async def test_no_columns_is_schema_error(self, patched):
        patched.columns = []
        with pytest.raises(SchemaError, match="has no columns"):
            await DorisSink.connect({"table": "events"})
        patched.transport.close.assert_awaited_once()


def test_mysql_url_applies_to_mysql_only():
    overrides = EnvOverrides(mysql_url="mysql://u:p@h:3306/d")
    assert MySqlSink.prepare_config({"table": "t"}, overrides).database == "d"
    assert DorisSink.prepare_config({"table": "t"}, overrides).database == "wparse"
    assert PostgresSink.dialect is POSTGRES
