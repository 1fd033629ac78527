"""
Fixtures for sink unit tests.
"""

import asyncio
from types import SimpleNamespace
from unittest.mock import AsyncMock

import httpx
import pytest

from record_sinks.errors import TransportError
from record_sinks.transport.http import HttpTransport


@pytest.fixture()
def sql_transport_success():
    """SQL transport mock that records statements and succeeds."""
    statements = []

    async def _send(statement):
        statements.append(statement)

    transport = SimpleNamespace(send=_send, close=AsyncMock(), probe=AsyncMock())
    transport._statements = statements
    return transport


@pytest.fixture()
def sql_transport_failure():
    """SQL transport mock whose inserts always fail (for retention tests)."""
    attempts = []

    async def _fail(statement):
        attempts.append(statement)
        raise TransportError("mysql", "insert failed", detail="Lost connection to MySQL server")

    transport = SimpleNamespace(send=_fail, close=AsyncMock(), probe=AsyncMock())
    transport._attempts = attempts
    return transport


@pytest.fixture()
def http_server():
    """
    In-memory HTTP endpoint.

    Usage:
        transport = http_server.transport("clickhouse")
        http_server.respond(500, text="boom")
        ... http_server.requests
    """

    class _Server:
        def __init__(self):
            self.requests = []
            self._response = {"status_code": 200}

        def respond(self, status_code=200, **kwargs):
            self._response = {"status_code": status_code, **kwargs}

        def _handle(self, request):
            request.read()
            self.requests.append(request)
            return httpx.Response(**self._response)

        def transport(self, backend, endpoint="http://dest:8123", auth=None):
            client = httpx.AsyncClient(transport=httpx.MockTransport(self._handle))
            return HttpTransport(endpoint, backend=backend, auth=auth, client=client)

    return _Server()


class FakeProducer:
    """Stands in for AIOKafkaProducer; every send is acknowledged at once."""

    def __init__(self, fail_with=None):
        self.sent = []
        self.stopped = False
        self._fail_with = fail_with

    async def send(self, topic, value=None):
        if self._fail_with is not None:
            raise self._fail_with
        self.sent.append((topic, value))
        fut = asyncio.get_running_loop().create_future()
        fut.set_result(None)
        return fut

    async def partitions_for(self, topic):
        return {0}

    async def stop(self):
        self.stopped = True


@pytest.fixture()
def producer():
    return FakeProducer()


@pytest.fixture()
def failing_producer():
    from aiokafka.errors import KafkaError

    return FakeProducer(fail_with=KafkaError("broker unavailable"))
