# Copyright 2025 Softwell S.r.l. - Genropy Team
# SPDX-License-Identifier: Apache-2.0

"""Transports carrying a SyncRequest to a backing store.

HttpTransport talks to a remote JSON data service over HTTP GET, using an
httpx AsyncClient. LocalTransport calls an embedded engine object that
exposes ``execute(request)``, either plain or as a coroutine.

Both return the decoded JSON reply and raise TransportFailure or
SyncTimeoutError when no reply could be obtained.
"""

from __future__ import annotations

import inspect
from typing import Any, Protocol

import httpx

from ..exceptions import SyncTimeoutError, TransportFailure, TreeSyncError
from ..logging import get_logger
from .requests import SyncRequest

log = get_logger('transport')


class Transport(Protocol):
    async def send(self, request: SyncRequest, *, timeout: float | None = None) -> Any:
        ...

    async def close(self) -> None:
        ...


class Engine(Protocol):
    def execute(self, request: SyncRequest) -> Any:
        ...


class HttpTransport:
    """Remote data service reached with GET requests.

    Args:
        base_url: URL of the data service script.
        timeout: Default seconds per request.
        headers: Extra request headers.
        client: An existing AsyncClient. It is not closed by close().
    """

    def __init__(
        self,
        base_url: str,
        *,
        timeout: float = 10.0,
        headers: dict[str, str] | None = None,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self.base_url = base_url
        self.timeout = timeout
        self.headers = {"Accept": "application/json", **(headers or {})}
        self._client = client
        self._owns_client = client is None

    @property
    def client(self) -> httpx.AsyncClient:
        """Get or create the HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                headers=self.headers,
                timeout=httpx.Timeout(self.timeout),
                follow_redirects=True,
            )
        return self._client

    async def send(self, request: SyncRequest, *, timeout: float | None = None) -> Any:
        wait = timeout or self.timeout
        try:
            response = await self.client.get(
                self.base_url, params=request.to_params(), timeout=wait
            )
        except httpx.TimeoutException as err:
            raise SyncTimeoutError(request.command.value, wait) from err
        except httpx.HTTPError as err:
            raise TransportFailure(type(err).__name__, text=str(err)) from err

        if response.status_code >= 400:
            raise TransportFailure(
                response.reason_phrase or "Error", response.status_code, response.text
            )
        try:
            return response.json()
        except ValueError as err:
            raise TransportFailure(
                "Invalid response format", response.status_code, response.text[:200]
            ) from err

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None


class LocalTransport:
    """Embedded engine called in-process."""

    def __init__(self, engine: Engine) -> None:
        self.engine = engine

    async def send(self, request: SyncRequest, *, timeout: float | None = None) -> Any:
        try:
            result = self.engine.execute(request)
            if inspect.isawaitable(result):
                result = await result
        except TreeSyncError:
            raise
        except Exception as err:
            log.exception("Engine failed on %s", request.command.value)
            raise TransportFailure(type(err).__name__, text=str(err)) from err
        return result

    async def close(self) -> None:
        pass
