from __future__ import annotations

from typing import Any, List, Optional, Sequence

from loguru import logger
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine
from sqlalchemy.pool import NullPool

from .. import sql as q
from ..align import MYSQL, SqlDialect
from ..config import SqlSinkConfig
from ..errors import SchemaError, map_driver_error

# Statements are fully rendered literals; the driver must not look for
# parameter markers in them (a '%' inside a value would break pyformat).
_RAW = {"no_parameters": True}


class SqlTransport:
    """
    Pooled SQL connection reused across flushes.

    Usage:
        transport = await SqlTransport.connect(cfg, backend="doris")
        await transport.send("INSERT INTO ... VALUES ...")
        await transport.close()
    """

    def __init__(self, engine: AsyncEngine, *, backend: str, dialect: SqlDialect = MYSQL):
        self._engine = engine
        self.backend = backend
        self.dialect = dialect

    @classmethod
    async def connect(
        cls, cfg: SqlSinkConfig, *, backend: str, dialect: SqlDialect = MYSQL
    ) -> "SqlTransport":
        await create_database_if_missing(cfg, backend=backend, dialect=dialect)
        engine = create_async_engine(
            cfg.database_url(dialect),
            pool_size=cfg.pool_size,
            max_overflow=0,
            pool_pre_ping=True,
            connect_args=_connect_args(cfg),
        )
        try:
            async with engine.connect() as conn:
                await conn.exec_driver_sql(q.HEALTH, execution_options=_RAW)
        except Exception as e:
            await engine.dispose()
            raise map_driver_error(backend, e, action="connect") from e
        logger.info(f"{backend}: pool ready (size={cfg.pool_size}, database={cfg.database})")
        return cls(engine, backend=backend, dialect=dialect)

    # ---------- operations ----------

    async def execute(self, statement: str, *, action: str = "execute") -> None:
        try:
            async with self._engine.begin() as conn:
                await conn.exec_driver_sql(statement, execution_options=_RAW)
        except Exception as e:
            raise map_driver_error(self.backend, e, action=action) from e

    async def fetch_all(self, statement: str) -> List[Sequence[Any]]:
        try:
            async with self._engine.connect() as conn:
                result = await conn.exec_driver_sql(statement, execution_options=_RAW)
                return [tuple(row) for row in result.fetchall()]
        except Exception as e:
            raise map_driver_error(self.backend, e, action="query") from e

    async def send(self, statement: str) -> None:
        """Execute one bulk INSERT inside its own transaction."""
        await self.execute(statement, action="insert")

    async def probe(self) -> None:
        try:
            async with self._engine.connect() as conn:
                await conn.exec_driver_sql(q.HEALTH, execution_options=_RAW)
        except Exception as e:
            raise map_driver_error(self.backend, e, action="reconnect") from e

    async def close(self) -> None:
        await self._engine.dispose()


def _connect_args(cfg: SqlSinkConfig) -> dict:
    return {"connect_timeout": int(cfg.connect_timeout)}


async def create_database_if_missing(
    cfg: SqlSinkConfig, *, backend: str, dialect: SqlDialect = MYSQL
) -> None:
    """Create the target database through a one-off admin connection."""
    engine = create_async_engine(
        cfg.server_url(dialect),
        poolclass=NullPool,
        isolation_level="AUTOCOMMIT",
        connect_args=_connect_args(cfg),
    )
    try:
        async with engine.connect() as conn:
            if dialect.name != MYSQL.name:
                result = await conn.exec_driver_sql(
                    q.database_exists_query(cfg.database), execution_options=_RAW
                )
                if result.first() is not None:
                    return
            await conn.exec_driver_sql(
                q.create_database_statement(cfg.database, dialect), execution_options=_RAW
            )
            logger.debug(f"{backend}: ensured database {cfg.database}")
    except Exception as e:
        raise map_driver_error(backend, e, action="connect") from e
    finally:
        await engine.dispose()


def create_target(dialect: SqlDialect, schema: str, table: str) -> str:
    """Name substituted into the create template; PostgreSQL gets the schema-qualified name."""
    if dialect.name == MYSQL.name:
        return table
    return dialect.quote(f"{schema}.{table}")


async def ensure_table(
    transport: SqlTransport, *, schema: str, table: str, create_table: Optional[str]
) -> bool:
    """Create the table from the template when missing. Returns True if created."""
    rows = await transport.fetch_all(q.table_exists_query(schema, table, transport.dialect))
    if rows and int(rows[0][0]) > 0:
        return False
    statement = q.render_create_table(create_table, create_target(transport.dialect, schema, table))
    if statement is None:
        raise SchemaError(
            transport.backend,
            f"table `{table}` not found and create_table statement not provided",
        )
    await transport.execute(statement)
    logger.info(f"{transport.backend}: created table {schema}.{table}")
    return True


async def load_columns(transport: SqlTransport, *, schema: str, table: str) -> List[str]:
    rows = await transport.fetch_all(q.columns_query(schema, table, transport.dialect))
    return [str(r[0]) for r in rows]
