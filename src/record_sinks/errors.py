"""
Custom exceptions for record sinks.

Every error names the backend that raised it and keeps the raw driver or
response text so the host pipeline can report it verbatim.
"""

from __future__ import annotations

from typing import Optional


class SinkError(Exception):
    """Base error for all sinks."""

    def __init__(self, backend: str, message: str, *, detail: Optional[str] = None):
        self.backend = backend
        self.message = message
        self.detail = detail
        text = f"{backend}: {message}"
        if detail:
            text = f"{text}: {detail}"
        super().__init__(text)


class ConfigurationError(SinkError):
    """Missing or invalid parameter, detected before any I/O."""

    pass


class ConnectError(SinkError):
    """Pool or session could not be established."""

    pass


class SchemaError(SinkError):
    """Destination table missing without a create template, or it has no columns."""

    pass


class TransportError(SinkError):
    """Non-success response or driver failure while flushing."""

    def __init__(
        self,
        backend: str,
        message: str,
        *,
        detail: Optional[str] = None,
        status: Optional[int] = None,
    ):
        super().__init__(backend, message, detail=detail)
        self.status = status


class UnsupportedOperationError(SinkError):
    """Raw/unstructured input sent to a sink that only takes records."""

    pass


class SinkClosedError(SinkError):
    """Ingest attempted after the sink was stopped."""

    pass


def map_driver_error(backend: str, e: Exception, *, action: str) -> SinkError:
    """Translate SQLAlchemy / DBAPI exceptions into the sink taxonomy."""
    from sqlalchemy import exc as E

    if isinstance(e, SinkError):
        return e
    orig = getattr(e, "orig", None)
    detail = str(orig) if orig is not None else str(e)
    if action == "connect":
        return ConnectError(backend, "connect failed", detail=detail)
    if isinstance(e, (E.DBAPIError, E.SQLAlchemyError, OSError)):
        return TransportError(backend, f"{action} failed", detail=detail)
    return SinkError(backend, f"{action} failed", detail=detail)
