"""
Helpers for feeding sinks from files and the command line.
"""

import gzip
import io
import json
import sys
from typing import Any, Dict, Iterator, List, Optional, Sequence

from .errors import ConfigurationError
from .models import DataType, Record


def iter_ndjson(path: str) -> Iterator[Dict[str, Any]]:
    """Yield one object per non-blank line. `-` reads stdin; `.gz` is decompressed."""
    if path == "-":
        stream = io.TextIOWrapper(sys.stdin.buffer, encoding="utf-8")
        yield from _objects(stream, "<stdin>")
        return
    if path.endswith(".gz"):
        with gzip.open(path, "rt", encoding="utf-8") as f:
            yield from _objects(f, path)
    else:
        with open(path, "r", encoding="utf-8") as f:
            yield from _objects(f, path)


def _objects(lines, source: str) -> Iterator[Dict[str, Any]]:
    for n, line in enumerate(lines, start=1):
        line = line.strip()
        if not line:
            continue
        try:
            obj = json.loads(line)
        except json.JSONDecodeError as e:
            raise ValueError(f"{source}:{n}: invalid JSON: {e.msg}") from e
        if not isinstance(obj, dict):
            raise ValueError(f"{source}:{n}: expected a JSON object")
        yield obj


def record_from_json(obj: Dict[str, Any], ignore: Optional[Sequence[str]] = None) -> Record:
    """Record from a decoded JSON object; names in `ignore` are tagged IGNORE."""
    types = {name: DataType.IGNORE for name in ignore or ()}
    return Record.from_mapping(obj, types)


def parse_param_pairs(pairs: Sequence[str]) -> Dict[str, Any]:
    """
    `key=value` command-line pairs -> params mapping.

    Values stay strings; config validation coerces numbers and booleans.
    A repeated key collects into a list.
    """
    params: Dict[str, Any] = {}
    for raw in pairs:
        key, sep, value = raw.partition("=")
        key = key.strip()
        if not sep or not key:
            raise ConfigurationError("cli", "parameter must be key=value", detail=raw)
        parsed = value.strip()
        if key in params:
            prev = params[key]
            params[key] = (prev if isinstance(prev, list) else [prev]) + [parsed]
        else:
            params[key] = parsed
    return params


def describe_params(params: Dict[str, Any]) -> List[str]:
    """Sorted `key=value` lines with secrets masked."""
    return [
        f"{k}={'***' if 'password' in k.lower() and v else v}" for k, v in sorted(params.items())
    ]
