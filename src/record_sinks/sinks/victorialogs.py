"""
VictoriaLogs sink.

Records are pushed through the Loki-compatible JSON endpoint. Each entry's
stream labels come from the record's fields (all of them, or only
`stream_fields` when configured) and its line is the record rendered in `fmt`.
The timestamp is taken when the record is ingested, not when it is sent.
"""

from __future__ import annotations

import time
from typing import Callable, Dict, Optional, Sequence, Tuple

from ..config import VictoriaLogConfig
from ..encoders import format_record, loki_payload
from ..models import Record
from ..transport.http import HttpTransport
from .base import BatchingSink, SinkFamily

LogEntry = Tuple[Dict[str, str], str, str]

_HEADERS = {"Content-Type": "application/json"}


class VictoriaLogsSink(BatchingSink[LogEntry]):
    kind = "victorialogs"
    family = SinkFamily.HTTP_BULK
    config_model = VictoriaLogConfig

    def __init__(
        self,
        config: VictoriaLogConfig,
        transport: HttpTransport,
        *,
        name: Optional[str] = None,
        clock: Callable[[], int] = time.time_ns,
    ):
        super().__init__(config, transport, name=name)
        self.stream = config.table or self.name
        self._clock = clock

    @classmethod
    async def _open(cls, cfg: VictoriaLogConfig, *, name: Optional[str]) -> "VictoriaLogsSink":
        transport = HttpTransport(cfg.endpoint, backend=cls.kind, auth=cfg.auth, timeout=cfg.timeout)
        return cls(cfg, transport, name=name)

    def labels(self, record: Record) -> Dict[str, str]:
        wanted = self.config.stream_fields
        return {
            f.name: f.render()
            for f in record.fields()
            if wanted is None or f.name in wanted
        }

    def _render(self, record: Record) -> Optional[Tuple[str, LogEntry]]:
        if next(record.fields(), None) is None:
            return None
        line = format_record(record, self.config.fmt)
        return self.stream, (self.labels(record), str(self._clock()), line)

    async def _deliver(self, destination: str, rows: Sequence[LogEntry]) -> None:
        await self._transport.send(
            loki_payload(rows), path=self.config.insert_path, headers=_HEADERS
        )
