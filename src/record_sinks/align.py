"""
Column alignment for SQL destinations.

Record fields are mapped onto the destination's fixed column order and
rendered as a literal VALUES tuple. Columns the record does not carry become
NULL; record fields the table does not have are dropped.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence

from .errors import SchemaError
from .models import Record

NULL = "NULL"


@dataclass(frozen=True)
class SqlDialect:
    """Quoting and driver details of one SQL protocol family."""

    name: str
    quote_char: str
    driver: str  # SQLAlchemy async drivername
    default_port: int
    admin_database: Optional[str]  # database the admin connection lands in
    backslash_escapes: bool = False  # backslash is an escape character in string literals

    def quote(self, identifier: str) -> str:
        return quote_identifier(identifier, self.quote_char)

    def literal(self, value: str) -> str:
        return quote_literal(value, self)


MYSQL = SqlDialect(
    name="mysql",
    quote_char="`",
    driver="mysql+aiomysql",
    default_port=3306,
    admin_database=None,
    backslash_escapes=True,
)
POSTGRES = SqlDialect(
    name="postgresql",
    quote_char='"',
    driver="postgresql+psycopg",
    default_port=5432,
    admin_database="postgres",
)


def quote_identifier(name: str, quote_char: str = "`") -> str:
    """Quote each dot-separated segment; embedded quote chars are doubled."""
    doubled = quote_char * 2
    return ".".join(
        f"{quote_char}{segment.replace(quote_char, doubled)}{quote_char}"
        for segment in name.split(".")
    )


def escape_literal(value: str, dialect: SqlDialect = MYSQL) -> str:
    """Double single quotes; also double backslashes where the server treats them as escapes."""
    if dialect.backslash_escapes:
        value = value.replace("\\", "\\\\")
    return value.replace("'", "''")


def quote_literal(value: str, dialect: SqlDialect = MYSQL) -> str:
    return f"'{escape_literal(value, dialect)}'"


class ColumnAligner:
    """Render records as VALUES tuples in a fixed column order."""

    def __init__(self, columns: Sequence[str], *, dialect: SqlDialect = MYSQL, backend: str = "sql"):
        if not columns:
            raise SchemaError(backend, "destination has no columns")
        self._columns = tuple(columns)
        self._column_set = frozenset(self._columns)
        self._dialect = dialect
        self._quoted = tuple(dialect.quote(c) for c in self._columns)

    @property
    def columns(self) -> tuple[str, ...]:
        return self._columns

    @property
    def quoted_columns(self) -> tuple[str, ...]:
        return self._quoted

    def align(self, record: Record) -> Optional[str]:
        """`(v1, NULL, ...)` for the record, or None when no column matches."""
        values: Dict[str, Optional[str]] = {}
        for field in record.fields():
            if field.name in self._column_set:
                values[field.name] = None if field.value is None else field.render()
        if not values:
            return None
        rendered = []
        for c in self._columns:
            v = values.get(c)
            rendered.append(NULL if v is None else self._dialect.literal(v))
        return f"({', '.join(rendered)})"

    def dropped(self, record: Record) -> List[str]:
        """Names of non-ignored fields the destination has no column for."""
        return [f.name for f in record.fields() if f.name not in self._column_set]
