"""Shared HTTP client for tracker lookups."""

from __future__ import annotations

from typing import Any

import httpx
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from trackbot import __version__

# Only connection-level failures are retried; a slow or failing tracker is
# reported once and the lookup counts as failed.
LOOKUP_RETRY = retry(
    stop=stop_after_attempt(3),
    wait=wait_exponential(multiplier=0.5, min=0.5, max=4),
    retry=retry_if_exception_type(
        (
            httpx.ConnectError,
            httpx.ConnectTimeout,
            httpx.RemoteProtocolError,
        )
    ),
    reraise=True,
)

REDIRECT_CODES = frozenset({301, 302, 303, 307, 308})


class LookupClient:
    """Async GET client. Redirects are returned to the caller, never followed."""

    def __init__(
        self,
        *,
        connect_timeout: float = 4.0,
        read_timeout: float = 10.0,
        user_agent: str = f"trackbot/{__version__}",
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._timeout = httpx.Timeout(read_timeout, connect=connect_timeout)
        self._headers = {"User-Agent": user_agent}
        self._transport = transport

    def configure(self, *, connect_timeout: float, read_timeout: float) -> None:
        self._timeout = httpx.Timeout(read_timeout, connect=connect_timeout)

    @property
    def timeout(self) -> httpx.Timeout:
        return self._timeout

    @LOOKUP_RETRY
    async def get(
        self,
        url: str,
        *,
        params: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
    ) -> httpx.Response:
        async with httpx.AsyncClient(
            timeout=self._timeout,
            follow_redirects=False,
            headers=self._headers,
            transport=self._transport,
        ) as client:
            return await client.get(url, params=params, headers=headers)
