"""
Kind registry.

An explicit object mapping a kind name ("mysql", "clickhouse", ...) to its
sink class. Whatever assembles the pipeline builds one with
`default_registry()` and passes it along; nothing registers at import time.
"""

from __future__ import annotations

from typing import Any, Dict, List, Mapping, Optional, Tuple, Type

from loguru import logger

from .config import EnvOverrides, SinkConfig, validate_config
from .errors import ConfigurationError
from .sinks import (
    BatchingSink,
    ClickHouseSink,
    DorisSink,
    ElasticsearchSink,
    KafkaSink,
    MySqlSink,
    PostgresSink,
    VictoriaLogsSink,
)
from .urls import params_from_url as _params_from_url


class SinkRegistry:
    def __init__(self) -> None:
        self._kinds: Dict[str, Type[BatchingSink]] = {}

    def register(self, sink_cls: Type[BatchingSink]) -> Type[BatchingSink]:
        kind = sink_cls.kind
        if kind in self._kinds and self._kinds[kind] is not sink_cls:
            raise ConfigurationError(kind, "kind already registered")
        self._kinds[kind] = sink_cls
        return sink_cls

    def kinds(self) -> List[str]:
        return sorted(self._kinds)

    def __contains__(self, kind: str) -> bool:
        return kind in self._kinds

    def get(self, kind: str) -> Type[BatchingSink]:
        try:
            return self._kinds[kind]
        except KeyError:
            raise ConfigurationError(
                kind, "unknown sink kind", detail=f"known: {', '.join(self.kinds())}"
            ) from None

    def validate(self, kind: str, params: Mapping[str, Any]) -> SinkConfig:
        """Check parameters without touching the network."""
        sink_cls = self.get(kind)
        return validate_config(sink_cls.config_model, params, kind=kind)

    async def build(
        self,
        kind: str,
        params: Mapping[str, Any],
        *,
        name: Optional[str] = None,
        overrides: Optional[EnvOverrides] = None,
    ) -> BatchingSink:
        sink_cls = self.get(kind)
        config = self.validate(kind, params)
        logger.debug(f"registry: building {kind} sink {name or kind}")
        return await sink_cls.connect(config, name=name, overrides=overrides)

    def params_from_url(self, url: str) -> Tuple[str, Dict[str, Any]]:
        """(kind, params) for a connection url whose kind is registered."""
        kind, params = _params_from_url(url)
        self.get(kind)
        return kind, params


def default_registry() -> SinkRegistry:
    registry = SinkRegistry()
    for sink_cls in (
        DorisSink,
        MySqlSink,
        PostgresSink,
        ClickHouseSink,
        ElasticsearchSink,
        VictoriaLogsSink,
        KafkaSink,
    ):
        registry.register(sink_cls)
    return registry
