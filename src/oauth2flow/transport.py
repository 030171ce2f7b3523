"""HTTP execution for token-endpoint requests.

The orchestrator depends only on the :class:`HttpTransport` protocol: one
coroutine that executes a :class:`~oauth2flow.models.HttpRequest` and
returns the status code and body, or raises
:class:`~oauth2flow.exceptions.TransportError`. It performs no retries and
does not interpret the status code.

:class:`HttpxTransport` is the default implementation, backed by
:class:`httpx.AsyncClient`.
"""

from __future__ import annotations

import logging
from typing import Optional, Protocol

import httpx

from oauth2flow.exceptions import TransportError
from oauth2flow.models import HttpRequest, HttpResponse

logger = logging.getLogger(__name__)


class HttpTransport(Protocol):
    """Executes a single HTTP request without retrying."""

    async def execute(self, request: HttpRequest) -> HttpResponse:
        """Send *request* and return the response.

        Raises:
            TransportError: On any network-level failure.
        """
        ...


class HttpxTransport:
    """:class:`HttpTransport` backed by :class:`httpx.AsyncClient`.

    When no client is passed in, one is created lazily on first use and
    closed by :meth:`aclose`. A caller-supplied client is never closed.

    Args:
        client: Optional pre-configured async client.
        timeout: Request timeout in seconds for a lazily created client.
        verify: Verify TLS certificates for a lazily created client.

    Example::

        async with HttpxTransport(timeout=10) as transport:
            response = await transport.execute(request)
    """

    def __init__(
        self,
        client: Optional[httpx.AsyncClient] = None,
        timeout: float = 30.0,
        verify: bool = True,
    ) -> None:
        self._client = client
        self._owns_client = client is None
        self._timeout = timeout
        self._verify = verify

    async def __aenter__(self) -> HttpxTransport:
        return self

    async def __aexit__(self, *args: object) -> None:
        await self.aclose()

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self._timeout, verify=self._verify)
        return self._client

    async def execute(self, request: HttpRequest) -> HttpResponse:
        client = self._get_client()
        logger.debug("%s %s", request.method, request.url)
        try:
            response = await client.request(
                request.method,
                request.url,
                headers=request.headers,
                content=request.body,
            )
        except httpx.HTTPError as exc:
            raise TransportError(f"Request to {request.url} failed: {exc}", cause=exc) from exc

        logger.debug("Token endpoint responded with status %d", response.status_code)
        return HttpResponse(status_code=response.status_code, body=response.content)

    async def aclose(self) -> None:
        """Close the underlying client if this transport created it."""
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None
