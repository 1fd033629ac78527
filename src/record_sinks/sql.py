from __future__ import annotations

from typing import Optional, Sequence

from .align import MYSQL, POSTGRES, SqlDialect

# Catalog queries. Column aliases keep result keys identical across MySQL
# (upper-case information_schema labels) and PostgreSQL.


def create_database_statement(database: str, dialect: SqlDialect = MYSQL) -> str:
    if dialect.name == MYSQL.name:
        return f"CREATE DATABASE IF NOT EXISTS {dialect.quote(database)}"
    return f"CREATE DATABASE {dialect.quote(database)}"


def database_exists_query(database: str) -> str:
    """PostgreSQL only; MySQL relies on IF NOT EXISTS."""
    return f"SELECT 1 FROM pg_database WHERE datname = {POSTGRES.literal(database)}"


def table_exists_query(schema: str, table: str, dialect: SqlDialect = MYSQL) -> str:
    return (
        "SELECT COUNT(1) AS cnt FROM information_schema.tables "
        f"WHERE table_schema = {dialect.literal(schema)} AND table_name = {dialect.literal(table)}"
    )


def columns_query(schema: str, table: str, dialect: SqlDialect = MYSQL) -> str:
    return (
        "SELECT column_name AS name FROM information_schema.columns "
        f"WHERE table_schema = {dialect.literal(schema)} AND table_name = {dialect.literal(table)} "
        "ORDER BY ordinal_position"
    )


def render_create_table(template: Optional[str], table: str) -> Optional[str]:
    """Substitute `{table}` in a caller-supplied CREATE TABLE template."""
    if template is None:
        return None
    return template.replace("{table}", table)


def insert_prefix(quoted_table: str, quoted_columns: Sequence[str]) -> str:
    return f"INSERT INTO {quoted_table} ({', '.join(quoted_columns)}) VALUES "


def insert_statement(
    quoted_table: str, quoted_columns: Sequence[str], tuples: Sequence[str]
) -> str:
    """Multi-row INSERT from tuples already rendered by ColumnAligner."""
    if not tuples:
        raise ValueError("insert_statement needs at least one tuple")
    return insert_prefix(quoted_table, quoted_columns) + ", ".join(tuples)


HEALTH = "SELECT 1"
