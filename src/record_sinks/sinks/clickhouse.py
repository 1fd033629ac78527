from __future__ import annotations

from typing import List, Optional, Sequence, Tuple

from ..align import quote_identifier
from ..config import ClickHouseConfig
from ..encoders import gzip_body, json_line, ndjson_body
from ..errors import ConfigurationError
from ..models import Record
from ..transport.http import HttpTransport
from .base import BatchingSink, SinkFamily

_QUOTE = '"'


class ClickHouseSink(BatchingSink[str]):
    """JSONEachRow inserts over the ClickHouse HTTP interface."""

    kind = "clickhouse"
    family = SinkFamily.HTTP_BULK
    config_model = ClickHouseConfig

    def __init__(
        self,
        config: ClickHouseConfig,
        transport: HttpTransport,
        *,
        table: str,
        name: Optional[str] = None,
    ):
        super().__init__(config, transport, name=name)
        self.table = table

    @classmethod
    async def _open(cls, cfg: ClickHouseConfig, *, name: Optional[str]) -> "ClickHouseSink":
        table = cfg.table or name
        if not table:
            raise ConfigurationError(cls.kind, "table is required")
        transport = HttpTransport(cfg.endpoint, backend=cls.kind, auth=cfg.auth, timeout=cfg.timeout)
        return cls(cfg, transport, table=table, name=name)

    def query_params(self, table: str) -> List[Tuple[str, str]]:
        cfg: ClickHouseConfig = self.config
        params = [
            ("database", cfg.database),
            ("query", f"INSERT INTO {quote_identifier(table, _QUOTE)} FORMAT JSONEachRow"),
            ("input_format_import_nested_json", "1"),
        ]
        if cfg.compression:
            params.append(("enable_http_compression", "1"))
        if cfg.skip_unknown:
            params.append(("input_format_skip_unknown_fields", "1"))
        if cfg.date_time_best_effort:
            params.append(("date_time_input_format", "best_effort"))
        return params

    def _render(self, record: Record) -> Optional[Tuple[str, str]]:
        if next(record.fields(), None) is None:
            return None
        return self.table, json_line(record)

    async def _deliver(self, destination: str, rows: Sequence[str]) -> None:
        body = ndjson_body(rows)
        headers = {"Content-Type": "application/x-ndjson"}
        if self.config.compression:
            body = gzip_body(body)
            headers["Content-Encoding"] = "gzip"
        await self._transport.send(body, params=self.query_params(destination), headers=headers)

    async def _probe(self) -> None:
        await self._transport.probe("/ping")
