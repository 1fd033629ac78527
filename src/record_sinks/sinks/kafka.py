from __future__ import annotations

from typing import Optional, Sequence, Tuple

from ..config import KafkaConfig
from ..encoders import format_record
from ..models import Record
from ..transport.broker import KafkaTransport
from .base import BatchingSink, SinkFamily


class KafkaSink(BatchingSink[bytes]):
    """
    One message per record, rendered in `fmt`.

    Unlike the other sinks it also takes raw payloads, which are published
    unchanged to the same topic and share the record batch.
    """

    kind = "kafka"
    family = SinkFamily.BROKER_PUBLISH
    config_model = KafkaConfig

    def __init__(self, config: KafkaConfig, transport: KafkaTransport, *, name: Optional[str] = None):
        super().__init__(config, transport, name=name)
        self.topic = config.topic

    @classmethod
    async def _open(cls, cfg: KafkaConfig, *, name: Optional[str]) -> "KafkaSink":
        transport = await KafkaTransport.connect(cfg)
        return cls(cfg, transport, name=name)

    def _render(self, record: Record) -> Optional[Tuple[str, bytes]]:
        return self.topic, format_record(record, self.config.fmt).encode("utf-8")

    async def _deliver(self, destination: str, rows: Sequence[bytes]) -> None:
        await self._transport.send(rows, topic=destination)

    # --------------- raw input

    async def sink_str(self, data: str) -> None:
        await self.sink_bytes(data.encode("utf-8"))

    async def sink_bytes(self, data: bytes) -> None:
        self._ensure_open()
        await self._buffer(self.topic, bytes(data))

    async def sink_str_batch(self, data: Sequence[str]) -> None:
        for item in data:
            await self.sink_str(item)

    async def sink_bytes_batch(self, data: Sequence[bytes]) -> None:
        for item in data:
            await self.sink_bytes(item)
