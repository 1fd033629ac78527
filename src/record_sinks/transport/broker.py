from __future__ import annotations

import asyncio
from typing import Any, Dict, Iterable, Optional, Sequence

from aiokafka import AIOKafkaProducer
from aiokafka.admin import AIOKafkaAdminClient, NewTopic
from aiokafka.errors import KafkaError, TopicAlreadyExistsError
from loguru import logger

from ..config import KafkaConfig
from ..errors import ConfigurationError, ConnectError, TransportError

BACKEND = "kafka"

# librdkafka-style option names -> AIOKafkaProducer keyword arguments
_OPTION_ALIASES = {
    "acks": "acks",
    "client.id": "client_id",
    "linger.ms": "linger_ms",
    "batch.size": "max_batch_size",
    "max.request.size": "max_request_size",
    "compression.type": "compression_type",
    "request.timeout.ms": "request_timeout_ms",
    "retry.backoff.ms": "retry_backoff_ms",
    "metadata.max.age.ms": "metadata_max_age_ms",
    "enable.idempotence": "enable_idempotence",
    "security.protocol": "security_protocol",
    "sasl.mechanism": "sasl_mechanism",
    "sasl.username": "sasl_plain_username",
    "sasl.password": "sasl_plain_password",
}
_INT_OPTIONS = {
    "linger_ms",
    "max_batch_size",
    "max_request_size",
    "request_timeout_ms",
    "retry_backoff_ms",
    "metadata_max_age_ms",
}
_BOOL_OPTIONS = {"enable_idempotence"}


def producer_options(entries: Iterable[str]) -> Dict[str, Any]:
    """Translate `key=value` producer options; unsupported keys are skipped."""
    out: Dict[str, Any] = {}
    for raw in entries:
        key, sep, value = raw.partition("=")
        key, value = key.strip(), value.strip()
        if not sep or not key:
            raise ConfigurationError(BACKEND, "producer option must be key=value", detail=raw)
        name = _OPTION_ALIASES.get(key)
        if name is None:
            logger.warning(f"kafka: producer option {key!r} is not supported, skipped")
            continue
        if name in _INT_OPTIONS:
            try:
                out[name] = int(value)
            except ValueError:
                raise ConfigurationError(
                    BACKEND, f"producer option {key} must be an integer", detail=value
                ) from None
        elif name in _BOOL_OPTIONS:
            out[name] = value.lower() in ("1", "true", "yes")
        elif name == "acks" and value not in ("all", "-1"):
            out[name] = int(value)
        elif name == "acks":
            out[name] = "all"
        else:
            out[name] = value
    return out


class KafkaTransport:
    """Publishes encoded messages to one topic through an aiokafka producer."""

    backend = BACKEND

    def __init__(self, producer: Any, *, topic: str):
        self._producer = producer
        self.topic = topic

    @classmethod
    async def connect(cls, cfg: KafkaConfig) -> "KafkaTransport":
        options = producer_options(cfg.config)
        if cfg.num_partitions or cfg.replication:
            await ensure_topic(cfg)
        producer = AIOKafkaProducer(bootstrap_servers=cfg.brokers, **options)
        try:
            await producer.start()
        except KafkaError as e:
            await producer.stop()
            raise ConnectError(BACKEND, "producer start failed", detail=str(e)) from e
        logger.info(f"kafka: producer connected to {cfg.brokers} (topic={cfg.topic})")
        return cls(producer, topic=cfg.topic)

    async def send(self, messages: Sequence[bytes], *, topic: Optional[str] = None) -> None:
        """Publish all messages and wait until every one is acknowledged."""
        target = topic or self.topic
        try:
            futures = [await self._producer.send(target, value=m) for m in messages]
            await asyncio.gather(*futures)
        except KafkaError as e:
            raise TransportError(BACKEND, f"publish to {target} failed", detail=str(e)) from e

    async def probe(self) -> None:
        try:
            await self._producer.partitions_for(self.topic)
        except KafkaError as e:
            raise TransportError(BACKEND, "reconnect failed", detail=str(e)) from e

    async def close(self) -> None:
        await self._producer.stop()


async def ensure_topic(cfg: KafkaConfig) -> None:
    """Create the topic with the configured layout if it does not exist."""
    admin = AIOKafkaAdminClient(bootstrap_servers=cfg.brokers)
    try:
        await admin.start()
        topic = NewTopic(
            name=cfg.topic,
            num_partitions=cfg.num_partitions or 1,
            replication_factor=cfg.replication or 1,
        )
        await admin.create_topics([topic])
        logger.info(f"kafka: created topic {cfg.topic}")
    except TopicAlreadyExistsError:
        logger.debug(f"kafka: topic {cfg.topic} already exists")
    except KafkaError as e:
        raise ConnectError(BACKEND, f"topic {cfg.topic} setup failed", detail=str(e)) from e
    finally:
        await admin.close()
