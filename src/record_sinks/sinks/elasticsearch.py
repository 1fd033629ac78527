from __future__ import annotations

from typing import Optional, Sequence, Tuple

import httpx
from loguru import logger

from ..config import ElasticsearchConfig
from ..encoders import bulk_body, json_line
from ..errors import ConfigurationError, TransportError
from ..models import Record
from ..transport.http import HttpTransport
from .base import BatchingSink, SinkFamily

_HEADERS = {"Content-Type": "application/x-ndjson"}


class ElasticsearchSink(BatchingSink[str]):
    """`_bulk` index requests, one action header per document."""

    kind = "elasticsearch"
    family = SinkFamily.HTTP_BULK
    config_model = ElasticsearchConfig

    def __init__(
        self,
        config: ElasticsearchConfig,
        transport: HttpTransport,
        *,
        index: str,
        name: Optional[str] = None,
    ):
        super().__init__(config, transport, name=name)
        self.index = index

    @classmethod
    async def _open(cls, cfg: ElasticsearchConfig, *, name: Optional[str]) -> "ElasticsearchSink":
        index = cfg.table or name
        if not index:
            raise ConfigurationError(cls.kind, "index is required")
        transport = HttpTransport(cfg.endpoint, backend=cls.kind, auth=cfg.auth, timeout=cfg.timeout)
        return cls(cfg, transport, index=index, name=name)

    def _render(self, record: Record) -> Optional[Tuple[str, str]]:
        if next(record.fields(), None) is None:
            return None
        return self.index, json_line(record)

    async def _deliver(self, destination: str, rows: Sequence[str]) -> None:
        body = bulk_body([(destination, doc) for doc in rows], self.config.doc_type)
        resp = await self._transport.send(body, method="PUT", path="/_bulk", headers=_HEADERS)
        check_bulk_response(resp, backend=self.kind)


def check_bulk_response(resp: httpx.Response, *, backend: str) -> None:
    """A 200 bulk answer can still carry per-item failures."""
    try:
        payload = resp.json()
    except ValueError as e:
        raise TransportError(
            backend, "bulk response is not JSON", detail=resp.text, status=resp.status_code
        ) from e
    if not isinstance(payload, dict):
        raise TransportError(
            backend, "bulk response is not a JSON object", detail=resp.text, status=resp.status_code
        )
    if not payload.get("errors"):
        return
    failed = []
    for item in payload.get("items") or []:
        if not isinstance(item, dict):
            continue
        for result in item.values():
            if isinstance(result, dict) and "error" in result:
                failed.append(result)
    first = failed[0]["error"] if failed else None
    reason = first.get("reason") if isinstance(first, dict) else first
    logger.debug(f"{backend}: {len(failed)} bulk items rejected")
    raise TransportError(
        backend,
        f"bulk insert rejected {len(failed)} items",
        detail=str(reason) if reason else resp.text,
        status=resp.status_code,
    )
