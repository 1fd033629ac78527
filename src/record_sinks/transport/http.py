from __future__ import annotations

from typing import Mapping, Optional, Sequence, Tuple

import httpx
from loguru import logger

from ..errors import TransportError

Params = Sequence[Tuple[str, str]]


class HttpTransport:
    """
    One httpx.AsyncClient per sink, one request per flush.

    Any non-2xx answer or transport-level failure becomes a TransportError
    carrying the backend name and the raw response text.
    """

    def __init__(
        self,
        endpoint: str,
        *,
        backend: str,
        auth: Optional[Tuple[str, str]] = None,
        timeout: float = 30.0,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.endpoint = endpoint.rstrip("/")
        self.backend = backend
        self._auth = httpx.BasicAuth(*auth) if auth else None
        self._client = client or httpx.AsyncClient(timeout=timeout)
        self._owns_client = client is None

    def url(self, path: str = "") -> str:
        if not path:
            return self.endpoint
        return f"{self.endpoint}/{path.lstrip('/')}"

    async def send(
        self,
        body: bytes,
        *,
        method: str = "POST",
        path: str = "",
        params: Optional[Params] = None,
        headers: Optional[Mapping[str, str]] = None,
    ) -> httpx.Response:
        try:
            resp = await self._client.request(
                method,
                self.url(path),
                params=list(params) if params else None,
                headers=dict(headers) if headers else None,
                content=body,
                auth=self._auth,
            )
        except httpx.HTTPError as e:
            raise TransportError(self.backend, f"{method} send failed", detail=str(e)) from e
        if not resp.is_success:
            text = resp.text
            raise TransportError(
                self.backend, "insert failed", detail=text, status=resp.status_code
            )
        logger.debug(f"{self.backend}: sent {len(body)} bytes ({resp.status_code})")
        return resp

    async def probe(self, path: str = "") -> None:
        try:
            resp = await self._client.get(self.url(path), auth=self._auth)
        except httpx.HTTPError as e:
            raise TransportError(self.backend, "reconnect failed", detail=str(e)) from e
        if not resp.is_success:
            raise TransportError(
                self.backend, "reconnect failed", detail=resp.text, status=resp.status_code
            )

    async def close(self) -> None:
        if self._owns_client:
            await self._client.aclose()
