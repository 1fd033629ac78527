from .base import BatchingSink, SinkFamily, SinkState
from .clickhouse import ClickHouseSink
from .elasticsearch import ElasticsearchSink
from .kafka import KafkaSink
from .sql import DorisSink, MySqlSink, PostgresSink, SqlBulkSink
from .victorialogs import VictoriaLogsSink
from ..metrics import SINK_WRITE_LATENCY, SINK_WRITES_TOTAL

__all__ = [
    "BatchingSink",
    "SinkFamily",
    "SinkState",
    "SqlBulkSink",
    "DorisSink",
    "MySqlSink",
    "PostgresSink",
    "ClickHouseSink",
    "ElasticsearchSink",
    "VictoriaLogsSink",
    "KafkaSink",
    "SINK_WRITES_TOTAL",
    "SINK_WRITE_LATENCY",
]
