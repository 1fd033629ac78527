"""
SQL bulk sinks (Doris, MySQL, PostgreSQL).

The destination column list is read from information_schema once at connect
time; every record is aligned onto it and rows are sent as one multi-row
literal INSERT per flush.
"""

from __future__ import annotations

from typing import ClassVar, Optional, Sequence, Tuple

from loguru import logger

from ..align import MYSQL, POSTGRES, ColumnAligner, SqlDialect
from ..config import SqlSinkConfig
from ..errors import SchemaError
from ..metrics import SINK_DROPPED_FIELDS_TOTAL
from ..models import Record
from ..sql import insert_statement
from ..transport.sql import SqlTransport, ensure_table, load_columns
from .base import BatchingSink, SinkFamily


class SqlBulkSink(BatchingSink[str]):
    family = SinkFamily.SQL_BULK
    config_model = SqlSinkConfig
    dialect: ClassVar[SqlDialect] = MYSQL
    env_override = False

    def __init__(
        self,
        config: SqlSinkConfig,
        transport: SqlTransport,
        aligner: ColumnAligner,
        *,
        name: Optional[str] = None,
    ):
        super().__init__(config, transport, name=name)
        self._aligner = aligner
        self._table = config.table
        self._quoted_table = self.dialect.quote(f"{config.qualifier(self.dialect)}.{config.table}")

    @classmethod
    async def _open(cls, cfg: SqlSinkConfig, *, name: Optional[str]) -> "SqlBulkSink":
        transport = await SqlTransport.connect(cfg, backend=cls.kind, dialect=cls.dialect)
        try:
            schema = cfg.qualifier(cls.dialect)
            await ensure_table(transport, schema=schema, table=cfg.table, create_table=cfg.create_table)
            columns = await load_columns(transport, schema=schema, table=cfg.table)
            if not columns:
                raise SchemaError(cls.kind, f"table `{cfg.table}` has no columns")
            aligner = ColumnAligner(columns, dialect=cls.dialect, backend=cls.kind)
        except Exception:
            await transport.close()
            raise
        logger.info(f"{cls.kind}: {schema}.{cfg.table} has {len(columns)} columns")
        return cls(cfg, transport, aligner, name=name)

    @property
    def columns(self) -> Tuple[str, ...]:
        return self._aligner.columns

    def _render(self, record: Record) -> Optional[Tuple[str, str]]:
        dropped = self._aligner.dropped(record)
        if dropped:
            SINK_DROPPED_FIELDS_TOTAL.labels(sink=self.kind).inc(len(dropped))
        row = self._aligner.align(record)
        if row is None:
            return None
        return self._table, row

    async def _deliver(self, destination: str, rows: Sequence[str]) -> None:
        statement = insert_statement(self._quoted_table, self._aligner.quoted_columns, rows)
        await self._transport.send(statement)


class DorisSink(SqlBulkSink):
    kind = "doris"


class MySqlSink(SqlBulkSink):
    kind = "mysql"
    env_override = True  # MYSQL_URL


class PostgresSink(SqlBulkSink):
    kind = "postgres"
    dialect = POSTGRES
