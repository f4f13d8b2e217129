"""HTTP transport for the places query service."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Protocol

import aiohttp

from pyplaces._constants import USER_AGENT
from pyplaces._redact import redact_url
from pyplaces.exceptions import PlacesConnectivityError

_logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class HttpResponse:
    """Status line and decoded body of a completed request."""

    status: int
    reason: str
    body: str

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300


class Transport(Protocol):
    """Structural transport interface used by the query service.

    ``get`` returns ``None`` when no connection could be made at all;
    transports may instead raise :class:`PlacesConnectivityError`.
    """

    async def get(self, url: str, *, timeout: float) -> HttpResponse | None:
        ...


class HttpTransport:
    """aiohttp-backed transport issuing plain GET requests."""

    def __init__(self, http_session: aiohttp.ClientSession) -> None:
        self._http = http_session

    async def get(self, url: str, *, timeout: float) -> HttpResponse:
        headers = {
            "accept": "application/json",
            "user-agent": USER_AGENT,
        }
        client_timeout = aiohttp.ClientTimeout(sock_connect=timeout, sock_read=timeout)

        _logger.debug("GET %s", redact_url(url))

        try:
            async with self._http.get(url, headers=headers, timeout=client_timeout) as resp:
                text = await resp.text()
                return HttpResponse(status=resp.status, reason=resp.reason or "", body=text)
        except (aiohttp.ClientError, asyncio.TimeoutError) as exc:
            raise PlacesConnectivityError(
                f"Request to {redact_url(url)} failed: {exc}",
                url=url,
            ) from exc
