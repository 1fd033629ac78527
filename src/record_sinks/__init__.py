"""
Record Sinks

Batched output adapters that deliver structured records to SQL warehouses
(Doris, MySQL, PostgreSQL), ClickHouse, Elasticsearch, VictoriaLogs and Kafka.

Usage:
    from record_sinks import Record, default_registry, load_overrides

    registry = default_registry()
    sink = await registry.build(
        "mysql",
        {"endpoint": "db:3306", "database": "logs", "table": "events"},
        overrides=load_overrides(),
    )
    async with sink:
        await sink.ingest(Record.from_mapping({"host": "web-1", "status": 200}))

    # or straight from a connection url
    kind, params = registry.params_from_url("clickhouse://default:@ch:8123/logs")
"""

from .batch import BatchConfig, RecordBatcher
from .config import EnvOverrides, load_overrides, resolve_config
from .errors import (
    ConfigurationError,
    ConnectError,
    SchemaError,
    SinkClosedError,
    SinkError,
    TransportError,
    UnsupportedOperationError,
)
from .models import DataType, Field, Record
from .registry import SinkRegistry, default_registry
from .sinks import (
    BatchingSink,
    ClickHouseSink,
    DorisSink,
    ElasticsearchSink,
    KafkaSink,
    MySqlSink,
    PostgresSink,
    SinkFamily,
    SinkState,
    VictoriaLogsSink,
)
from .urls import params_from_url

__version__ = "0.1.0"
__all__ = [
    "Record",
    "Field",
    "DataType",
    "BatchConfig",
    "RecordBatcher",
    "EnvOverrides",
    "load_overrides",
    "resolve_config",
    "SinkRegistry",
    "default_registry",
    "params_from_url",
    "BatchingSink",
    "SinkFamily",
    "SinkState",
    "DorisSink",
    "MySqlSink",
    "PostgresSink",
    "ClickHouseSink",
    "ElasticsearchSink",
    "VictoriaLogsSink",
    "KafkaSink",
    "SinkError",
    "ConfigurationError",
    "ConnectError",
    "SchemaError",
    "TransportError",
    "UnsupportedOperationError",
    "SinkClosedError",
]
