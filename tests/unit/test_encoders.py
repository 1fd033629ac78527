"""
Unit tests for wire encoders.
"""

import gzip
import json

from record_sinks.encoders import (
    TextFormat,
    bulk_body,
    format_record,
    gzip_body,
    json_line,
    loki_payload,
    ndjson_body,
)
from record_sinks.models import DataType, Field, Record


def test_ndjson_two_records(make_record):
    lines = [json_line(make_record(a=1)), json_line(make_record(a=2, b="x"))]
    body = ndjson_body(lines)

    assert body.endswith(b"\n")
    assert not body.endswith(b"\n\n")
    parts = body.split(b"\n")
    assert parts[-1] == b""
    assert [json.loads(p) for p in parts[:-1]] == [{"a": 1}, {"a": 2, "b": "x"}]


def test_json_line_skips_ignored_and_keeps_unicode():
    record = Record((Field("city", "Zürich"), Field("tmp", "x", DataType.IGNORE)))
    assert json_line(record) == '{"city":"Zürich"}'


def test_encoding_is_deterministic(make_record):
    batch = [json_line(make_record(a=i, b="v")) for i in range(3)]
    assert ndjson_body(batch) == ndjson_body(batch)
    assert gzip_body(ndjson_body(batch)) == gzip_body(ndjson_body(batch))
    assert gzip.decompress(gzip_body(ndjson_body(batch))) == ndjson_body(batch)


def test_bulk_body_pairs():
    body = bulk_body([("logs", '{"a":1}'), ("logs", '{"a":2}')])
    lines = body.decode().splitlines()
    assert lines == [
        '{"index":{"_index":"logs"}}',
        '{"a":1}',
        '{"index":{"_index":"logs"}}',
        '{"a":2}',
    ]


def test_bulk_body_with_doc_type():
    body = bulk_body([("logs", "{}")], doc_type="_doc")
    assert body.startswith(b'{"index":{"_index":"logs","_type":"_doc"}}\n')


class TestTextFormats:
    def test_kv_quotes_when_needed(self, make_record):
        record = make_record(host="web 1", code=200, empty="")
        assert format_record(record, TextFormat.KV) == 'host: "web 1", code: 200, empty: ""'

    def test_csv(self, make_record):
        assert format_record(make_record(a="x,y", b=1), TextFormat.CSV) == '"x,y",1'

    def test_raw(self, make_record):
        assert format_record(make_record(a="x", b=1), TextFormat.RAW) == "x 1"

    def test_json_is_default(self, make_record):
        assert format_record(make_record(a=1)) == '{"a":1}'


def test_loki_payload_groups_streams():
    payload = loki_payload(
        [
            ({"host": "a"}, "1", "first"),
            ({"host": "b"}, "2", "second"),
            ({"host": "a"}, "3", "third"),
        ]
    )
    assert json.loads(payload) == {
        "streams": [
            {"stream": {"host": "a"}, "values": [["1", "first"], ["3", "third"]]},
            {"stream": {"host": "b"}, "values": [["2", "second"]]},
        ]
    }
