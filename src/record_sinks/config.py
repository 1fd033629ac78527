"""
Sink configuration models.

Parameters arrive as plain mappings (from the host pipeline or a connection
URL) and are validated here once, before any network activity. Environment
overrides are loaded into `EnvOverrides` and merged by `resolve_config`; no
sink reads the environment on its own.
"""

from __future__ import annotations

from typing import Any, List, Mapping, Optional, Type, TypeVar

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from sqlalchemy.engine import URL

from .align import MYSQL, SqlDialect
from .encoders import TextFormat
from .errors import ConfigurationError

C = TypeVar("C", bound="SinkConfig")


class SinkConfig(BaseModel):
    """Fields shared by every sink."""

    model_config = ConfigDict(extra="forbid", populate_by_name=True, frozen=True)

    batch_size: int = Field(
        100, ge=1, validation_alias=AliasChoices("batch_size", "batch")
    )

    def with_overrides(self: C, overrides: "EnvOverrides") -> C:
        return self


class SqlSinkConfig(SinkConfig):
    """Doris / MySQL / PostgreSQL destinations."""

    endpoint: str = "localhost:9030"  # host:port, optionally mysql://host:port[?params]
    database: str = "wparse"
    user: str = Field("root", validation_alias=AliasChoices("user", "username"))
    password: str = ""
    table: str = "wparse"
    create_table: Optional[str] = None
    pool_size: int = Field(1, ge=1, validation_alias=AliasChoices("pool_size", "pool"))
    batch_size: int = Field(32, ge=1, validation_alias=AliasChoices("batch_size", "batch"))
    schema_name: Optional[str] = None  # PostgreSQL schema; MySQL uses the database
    connect_timeout: float = Field(10.0, gt=0)

    @field_validator("endpoint", "database", "user", "table")
    @classmethod
    def _not_blank(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("must not be empty")
        return v

    @field_validator("create_table")
    @classmethod
    def _trim_template(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return None
        v = v.strip()
        return v or None

    def with_overrides(self, overrides: "EnvOverrides") -> "SqlSinkConfig":
        if not overrides.mysql_url:
            return self
        from .urls import sql_params

        p = sql_params(overrides.mysql_url, "mysql")
        return self.model_copy(
            update={
                "endpoint": p["endpoint"],
                "user": p["username"],
                "password": p["password"],
                "database": p["database"],
            }
        )

    # ---------- connection urls ----------

    def _host_port(self, dialect: SqlDialect) -> tuple[str, int, dict]:
        base = self.endpoint
        if "://" in base:
            base = base.split("://", 1)[1]
        base, _, qs = base.partition("?")
        base = base.rstrip("/")
        host, sep, port = base.rpartition(":")
        if not sep:
            host, port = base, str(dialect.default_port)
        try:
            port_no = int(port)
        except ValueError:
            raise ConfigurationError(
                dialect.name, "invalid endpoint port", detail=self.endpoint
            ) from None
        query = dict(pair.split("=", 1) for pair in qs.split("&") if "=" in pair)
        return host, port_no, query

    def server_url(self, dialect: SqlDialect = MYSQL) -> URL:
        """URL of the server itself, used by the admin connection."""
        host, port, query = self._host_port(dialect)
        return URL.create(
            dialect.driver,
            username=self.user,
            password=self.password or None,
            host=host,
            port=port,
            database=dialect.admin_database,
            query=query,
        )

    def database_url(self, dialect: SqlDialect = MYSQL) -> URL:
        return self.server_url(dialect).set(database=self.database)

    def qualifier(self, dialect: SqlDialect = MYSQL) -> str:
        """information_schema.table_schema value for the target table."""
        if dialect.name == MYSQL.name:
            return self.database
        return self.schema_name or "public"


class HttpSinkConfig(SinkConfig):
    endpoint: str
    username: str = Field("", validation_alias=AliasChoices("username", "user"))
    password: str = ""
    timeout: float = Field(30.0, gt=0)

    @field_validator("endpoint")
    @classmethod
    def _endpoint(cls, v: str) -> str:
        v = v.strip().rstrip("/")
        if not v:
            raise ValueError("must not be empty")
        if not v.startswith(("http://", "https://")):
            v = f"http://{v}"
        return v

    @property
    def auth(self) -> Optional[tuple[str, str]]:
        if not self.username:
            return None
        return (self.username, self.password)


class ClickHouseConfig(HttpSinkConfig):
    endpoint: str = "http://127.0.0.1:8123"
    username: str = Field("default", validation_alias=AliasChoices("username", "user"))
    database: str = "default"
    table: Optional[str] = None
    skip_unknown: bool = True
    date_time_best_effort: bool = True
    compression: bool = True

    def with_overrides(self, overrides: "EnvOverrides") -> "ClickHouseConfig":
        if not overrides.clickhouse_endpoint:
            return self
        return self.model_validate({**self.model_dump(), "endpoint": overrides.clickhouse_endpoint})


class ElasticsearchConfig(HttpSinkConfig):
    endpoint: str = "http://127.0.0.1:9200"
    username: str = Field("elastic", validation_alias=AliasChoices("username", "user"))
    table: Optional[str] = Field(None, validation_alias=AliasChoices("table", "index"))
    doc_type: Optional[str] = None  # pre-7.x clusters only

    def with_overrides(self, overrides: "EnvOverrides") -> "ElasticsearchConfig":
        if not overrides.es_endpoint:
            return self
        return self.model_validate({**self.model_dump(), "endpoint": overrides.es_endpoint})


class VictoriaLogConfig(HttpSinkConfig):
    endpoint: str = "http://127.0.0.1:9428"
    insert_path: str = "/insert/loki/api/v1/push"
    fmt: TextFormat = TextFormat.JSON
    stream_fields: Optional[List[str]] = None  # None: every field becomes a stream label
    table: Optional[str] = None


class KafkaConfig(SinkConfig):
    brokers: str
    topic: str
    num_partitions: Optional[int] = Field(None, ge=1)
    replication: Optional[int] = Field(None, ge=1)
    fmt: TextFormat = TextFormat.JSON
    config: List[str] = Field(default_factory=list)
    batch_size: int = Field(1, ge=1, validation_alias=AliasChoices("batch_size", "batch"))

    @field_validator("brokers", "topic")
    @classmethod
    def _not_blank(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("must not be empty")
        return v

    @field_validator("config", mode="before")
    @classmethod
    def _config_list(cls, v: Any) -> Any:
        if isinstance(v, str):
            return [v] if v.strip() else []
        return v


class EnvOverrides(BaseSettings):
    """Process environment overrides, resolved once at startup."""

    clickhouse_endpoint: Optional[str] = None
    es_endpoint: Optional[str] = None
    mysql_url: Optional[str] = None

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False, extra="ignore")


def load_overrides() -> EnvOverrides:
    return EnvOverrides()


def validate_config(model: Type[C], params: Mapping[str, Any], *, kind: str) -> C:
    """Validate raw params into `model`; pydantic errors become ConfigurationError."""
    try:
        return model.model_validate(dict(params))
    except ValidationError as e:
        problems = "; ".join(
            f"{kind}.{'.'.join(str(p) for p in err['loc']) or '?'}: {err['msg']}"
            for err in e.errors()
        )
        raise ConfigurationError(kind, "invalid configuration", detail=problems) from e


def resolve_config(config: C, overrides: Optional[EnvOverrides] = None) -> C:
    """Merge optional environment overrides into a validated config."""
    if overrides is None:
        return config
    return config.with_overrides(overrides)
