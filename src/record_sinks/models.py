"""
Record data model handed to sinks by the host pipeline.

A record is an ordered set of named fields; each field carries a semantic
type tag and a value that renders to a string.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from datetime import date, datetime
from enum import Enum
from typing import Any, Iterator, Mapping, Optional


class DataType(str, Enum):
    """Semantic field type tags."""

    IGNORE = "ignore"  # never written to any destination
    CHARS = "chars"
    DIGIT = "digit"
    FLOAT = "float"
    BOOL = "bool"
    TIME = "time"
    IP = "ip"
    JSON = "json"


@dataclass(frozen=True)
class Field:
    """One named, typed value of a record."""

    name: str
    value: Any
    meta: DataType = DataType.CHARS

    @property
    def ignored(self) -> bool:
        return self.meta is DataType.IGNORE

    def render(self) -> str:
        """String form used for SQL literals and text formats."""
        v = self.value
        if v is None:
            return ""
        if isinstance(v, bool):
            return "true" if v else "false"
        if isinstance(v, datetime):
            return v.isoformat(sep=" ")
        if isinstance(v, date):
            return v.isoformat()
        if isinstance(v, (dict, list)):
            return json.dumps(v, ensure_ascii=False, separators=(",", ":"))
        if isinstance(v, bytes):
            return v.decode("utf-8", errors="replace")
        return str(v)

    def json_value(self) -> Any:
        """Value as it should appear inside a JSON document."""
        v = self.value
        if v is None:
            return None
        if self.meta is DataType.DIGIT and isinstance(v, int) and not isinstance(v, bool):
            return v
        if self.meta is DataType.FLOAT and isinstance(v, (int, float)) and not isinstance(v, bool):
            return float(v)
        if self.meta is DataType.BOOL and isinstance(v, bool):
            return v
        if self.meta is DataType.JSON and isinstance(v, (dict, list)):
            return v
        return self.render()


@dataclass(frozen=True)
class Record:
    """Ordered collection of fields."""

    items: tuple[Field, ...] = ()

    def __len__(self) -> int:
        return len(self.items)

    def __iter__(self) -> Iterator[Field]:
        return iter(self.items)

    def fields(self) -> Iterator[Field]:
        """Fields that are not tagged IGNORE, in record order."""
        return (f for f in self.items if not f.ignored)

    def get(self, name: str) -> Optional[Field]:
        for f in self.items:
            if f.name == name:
                return f
        return None

    @classmethod
    def from_mapping(
        cls, data: Mapping[str, Any], types: Optional[Mapping[str, DataType]] = None
    ) -> "Record":
        """Build a record from a plain mapping, inferring tags unless given."""
        types = types or {}
        items = tuple(
            Field(name=k, value=v, meta=types.get(k) or infer_type(v)) for k, v in data.items()
        )
        return cls(items)


def infer_type(value: Any) -> DataType:
    if isinstance(value, bool):
        return DataType.BOOL
    if isinstance(value, int):
        return DataType.DIGIT
    if isinstance(value, float):
        return DataType.FLOAT
    if isinstance(value, (datetime, date)):
        return DataType.TIME
    if isinstance(value, (dict, list)):
        return DataType.JSON
    return DataType.CHARS
