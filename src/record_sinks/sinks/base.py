from __future__ import annotations

import time
from abc import ABC, abstractmethod
from enum import Enum
from typing import (
    Any,
    ClassVar,
    Generic,
    Iterable,
    List,
    Mapping,
    Optional,
    Sequence,
    Tuple,
    Type,
    TypeVar,
    Union,
)

from loguru import logger

from ..batch import BatchConfig, RecordBatcher
from ..config import EnvOverrides, SinkConfig, resolve_config, validate_config
from ..errors import SinkClosedError, UnsupportedOperationError
from ..metrics import (
    SINK_ROWS_TOTAL,
    SINK_SKIPPED_RECORDS_TOTAL,
    SINK_WRITE_LATENCY,
    SINK_WRITES_TOTAL,
)
from ..models import Record

R = TypeVar("R")
S = TypeVar("S", bound="BatchingSink")


class SinkState(str, Enum):
    CONSTRUCTED = "constructed"
    ACTIVE = "active"
    STOPPED = "stopped"


class SinkFamily(str, Enum):
    SQL_BULK = "sql_bulk"
    HTTP_BULK = "http_bulk"
    BROKER_PUBLISH = "broker_publish"


class BatchingSink(ABC, Generic[R]):
    """
    Common lifecycle for every destination.

    Records are rendered into rows on ingest, buffered per destination and
    delivered in bulk whenever the processed counter reaches a multiple of the
    batch size. Rows of a destination are cleared only after that destination
    acknowledged them; a failed flush leaves them buffered and re-raises.

    Usage:
        async with await MySqlSink.connect({"endpoint": "db:3306", "table": "events"}) as sink:
            await sink.ingest(record)
        # remaining rows are flushed on exit
    """

    kind: ClassVar[str]
    family: ClassVar[SinkFamily]
    config_model: ClassVar[Type[SinkConfig]]
    env_override: ClassVar[bool] = True  # apply EnvOverrides at connect

    def __init__(self, config: SinkConfig, transport: Any, *, name: Optional[str] = None):
        self.config = config
        self.name = name or self.kind
        self._transport = transport
        self._batcher: RecordBatcher[R] = RecordBatcher(BatchConfig(max_rows=config.batch_size))
        self._state = SinkState.CONSTRUCTED

    # --------------- construction

    @classmethod
    def prepare_config(
        cls,
        config: Union[SinkConfig, Mapping[str, Any]],
        overrides: Optional[EnvOverrides] = None,
    ) -> SinkConfig:
        if not isinstance(config, SinkConfig):
            config = validate_config(cls.config_model, config, kind=cls.kind)
        if cls.env_override:
            config = resolve_config(config, overrides)
        return config

    @classmethod
    async def connect(
        cls: Type[S],
        config: Union[SinkConfig, Mapping[str, Any]],
        *,
        name: Optional[str] = None,
        overrides: Optional[EnvOverrides] = None,
    ) -> S:
        """Validate, open the transport and return an ACTIVE sink."""
        cfg = cls.prepare_config(config, overrides)
        sink = await cls._open(cfg, name=name)
        sink._state = SinkState.ACTIVE
        logger.info(f"{cls.kind}: sink {sink.name} connected")
        return sink

    @classmethod
    @abstractmethod
    async def _open(cls: Type[S], cfg: Any, *, name: Optional[str]) -> S:
        """Build the transport (and any schema state) for a validated config."""

    # --------------- per-backend hooks

    @abstractmethod
    def _render(self, record: Record) -> Optional[Tuple[str, R]]:
        """(destination, row) for a record, or None to skip it."""

    @abstractmethod
    async def _deliver(self, destination: str, rows: Sequence[R]) -> None:
        """Send one destination's rows in a single bulk request."""

    # --------------- state

    @property
    def state(self) -> SinkState:
        return self._state

    @property
    def batch_size(self) -> int:
        return self._batcher.batch_size

    @property
    def pending(self) -> int:
        """Rows buffered and not yet acknowledged."""
        return len(self._batcher)

    @property
    def processed(self) -> int:
        return self._batcher.processed

    def undelivered(self) -> List[Tuple[str, List[R]]]:
        """Buffered rows per destination, e.g. what a failed stop could not send."""
        return self._batcher.pending()

    def _ensure_open(self) -> None:
        if self._state is SinkState.STOPPED:
            raise SinkClosedError(self.kind, f"sink {self.name} is stopped")
        self._state = SinkState.ACTIVE

    # --------------- record input

    async def ingest(self, record: Record) -> None:
        self._ensure_open()
        rendered = self._render(record)
        if rendered is None:
            SINK_SKIPPED_RECORDS_TOTAL.labels(sink=self.kind).inc()
            return
        await self._buffer(*rendered)

    async def ingest_many(self, records: Iterable[Record]) -> None:
        """Ingest in order; the first failure stops the loop and propagates."""
        for record in records:
            await self.ingest(record)

    async def _buffer(self, destination: str, row: R) -> None:
        if self._batcher.add(destination, row):
            await self.flush()

    async def flush(self) -> int:
        """Deliver every non-empty buffer. Returns rows acknowledged."""
        if self._state is SinkState.STOPPED:
            raise SinkClosedError(self.kind, f"sink {self.name} is stopped")
        total = 0
        for destination, rows in self._batcher.pending():
            start = time.perf_counter()
            try:
                await self._deliver(destination, rows)
            except Exception as e:
                SINK_WRITES_TOTAL.labels(sink=self.kind, status="failure").inc()
                logger.error(
                    f"{self.kind}: flush of {len(rows)} rows to {destination} failed, rows kept: {e}"
                )
                raise
            finally:
                SINK_WRITE_LATENCY.labels(sink=self.kind).observe(time.perf_counter() - start)
            SINK_WRITES_TOTAL.labels(sink=self.kind, status="success").inc()
            SINK_ROWS_TOTAL.labels(sink=self.kind).inc(len(rows))
            self._batcher.clear(destination)
            total += len(rows)
            logger.debug(f"{self.kind}: flushed {len(rows)} rows to {destination}")
        return total

    # --------------- raw input

    async def sink_str(self, data: str) -> None:
        raise UnsupportedOperationError(self.kind, "raw string input is not supported; send records")

    async def sink_bytes(self, data: bytes) -> None:
        raise UnsupportedOperationError(self.kind, "raw bytes input is not supported; send records")

    async def sink_str_batch(self, data: Sequence[str]) -> None:
        raise UnsupportedOperationError(self.kind, "raw batch input is not supported; send records")

    async def sink_bytes_batch(self, data: Sequence[bytes]) -> None:
        raise UnsupportedOperationError(self.kind, "raw batch input is not supported; send records")

    # --------------- control

    async def stop(self) -> None:
        """
        Drain all buffers once, then release the transport. Idempotent once stopped.

        The sink ends STOPPED even when the drain fails: the error propagates
        and the undelivered rows stay readable through `undelivered()`.
        """
        if self._state is SinkState.STOPPED:
            return
        try:
            await self.flush()
            self._batcher.reset()
        finally:
            self._state = SinkState.STOPPED
            await self._transport.close()
        logger.info(f"{self.kind}: sink {self.name} stopped ({self.processed} rows processed)")

    async def reconnect(self) -> None:
        """Health-check the destination. Buffers are left untouched."""
        if self._state is SinkState.STOPPED:
            raise SinkClosedError(self.kind, f"sink {self.name} is stopped")
        await self._probe()
        logger.debug(f"{self.kind}: sink {self.name} healthy")

    async def _probe(self) -> None:
        await self._transport.probe()

    async def __aenter__(self: S) -> S:
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.stop()
