"""
Pytest configuration and fixtures for record-sinks.

Provides cross-platform event loop configuration and sample records.
"""

import asyncio
import sys

import pytest

from record_sinks.models import DataType, Field, Record

# Set policy *before* pytest-asyncio creates any loops
if sys.platform.startswith("win"):
    asyncio.set_event_loop_policy(asyncio.WindowsSelectorEventLoopPolicy())


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Environment overrides must never leak in from the host shell."""
    for name in ("CLICKHOUSE_ENDPOINT", "ES_ENDPOINT", "MYSQL_URL"):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def web_record():
    """Typical access-log record."""
    return Record(
        (
            Field("host", "web-1"),
            Field("status", 200, DataType.DIGIT),
            Field("msg", "O'Brien logged in"),
        )
    )


@pytest.fixture
def make_record():
    """Factory: make_record(host="web-2", status=500)."""

    def _make(**values):
        return Record.from_mapping(values)

    return _make
