"""
Wire encoders for HTTP bulk and broker destinations.

Every function here is pure: the same input always yields the same bytes,
so a retried flush resends exactly what failed.
"""

from __future__ import annotations

import csv
import gzip
import io
import json
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

from .models import Record


class TextFormat(str, Enum):
    """Single-record text renderings."""

    JSON = "json"
    KV = "kv"
    CSV = "csv"
    RAW = "raw"


def record_to_dict(record: Record) -> Dict[str, Any]:
    """Field name -> JSON value, in record order, IGNORE fields skipped."""
    return {f.name: f.json_value() for f in record.fields()}


def json_line(record: Record) -> str:
    """One compact JSON object, no trailing newline."""
    return json.dumps(record_to_dict(record), ensure_ascii=False, separators=(",", ":"))


def format_record(record: Record, fmt: TextFormat = TextFormat.JSON) -> str:
    if fmt is TextFormat.JSON:
        return json_line(record)
    if fmt is TextFormat.KV:
        return ", ".join(f"{f.name}: {_kv_value(f.render())}" for f in record.fields())
    if fmt is TextFormat.CSV:
        buf = io.StringIO()
        csv.writer(buf, lineterminator="").writerow([f.render() for f in record.fields()])
        return buf.getvalue()
    return " ".join(f.render() for f in record.fields())


def _kv_value(v: str) -> str:
    if not v or any(c in v for c in ' ,:"'):
        return json.dumps(v, ensure_ascii=False)
    return v


def ndjson_body(lines: Iterable[str]) -> bytes:
    """Newline-terminated lines; no blank trailing line."""
    return "".join(f"{line}\n" for line in lines).encode("utf-8")


def bulk_action(index: str, doc_type: Optional[str] = None) -> str:
    meta: Dict[str, str] = {"_index": index}
    if doc_type:
        meta["_type"] = doc_type
    return json.dumps({"index": meta}, ensure_ascii=False, separators=(",", ":"))


def bulk_body(docs: Sequence[Tuple[str, str]], doc_type: Optional[str] = None) -> bytes:
    """Elasticsearch `_bulk` body from (index, json document) pairs."""
    lines: List[str] = []
    for index, doc in docs:
        lines.append(bulk_action(index, doc_type))
        lines.append(doc)
    return ndjson_body(lines)


def loki_payload(entries: Sequence[Tuple[Dict[str, str], str, str]]) -> bytes:
    """
    Loki-style push payload accepted by VictoriaLogs.

    Each entry is (stream labels, timestamp string, log line). Entries with
    identical labels are grouped into one stream, preserving first-seen order.
    """
    streams: Dict[Tuple[Tuple[str, str], ...], Dict[str, Any]] = {}
    for labels, ts, line in entries:
        key = tuple(sorted(labels.items()))
        stream = streams.get(key)
        if stream is None:
            stream = {"stream": dict(labels), "values": []}
            streams[key] = stream
        stream["values"].append([ts, line])
    body = {"streams": list(streams.values())}
    return json.dumps(body, ensure_ascii=False, separators=(",", ":")).encode("utf-8")


def gzip_body(data: bytes, level: int = 6) -> bytes:
    """Gzip with a fixed mtime so identical input compresses identically."""
    return gzip.compress(data, compresslevel=level, mtime=0)
