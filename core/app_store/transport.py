"""HTTP transport used by the review feed client."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Optional, Protocol

import aiohttp

from .config import settings
from .errors import TransportError


logger = logging.getLogger(__name__)

# Always hit the network: no intermediate or local cache may answer.
NO_CACHE_HEADERS = {
    "Cache-Control": "no-cache, no-store",
    "Pragma": "no-cache",
}


@dataclass(frozen=True)
class HttpResponse:
    status: int
    body: bytes

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300


class Transport(Protocol):
    async def get(self, url: str, *, timeout: float) -> HttpResponse:
        """GET ``url``; raise TransportError when no response was received."""
        ...


class AiohttpTransport:
    """aiohttp backed transport; one session per request, like the store scrapers."""

    def __init__(
        self,
        *,
        proxy: Optional[str] = None,
        user_agent: Optional[str] = None,
    ) -> None:
        self._proxy = proxy if proxy is not None else settings.http_proxy
        self._headers = {
            "Accept": "application/json",
            "User-Agent": user_agent or settings.user_agent,
            **NO_CACHE_HEADERS,
        }

    async def get(self, url: str, *, timeout: float = settings.request_timeout) -> HttpResponse:
        request_kwargs = {}
        if self._proxy:
            request_kwargs["proxy"] = self._proxy

        client_timeout = aiohttp.ClientTimeout(total=timeout)
        try:
            async with aiohttp.ClientSession(timeout=client_timeout, headers=self._headers) as session:
                async with session.get(url, **request_kwargs) as resp:
                    body = await resp.read()
                    logger.debug("GET %s -> HTTP %s (%d bytes)", url, resp.status, len(body))
                    return HttpResponse(status=resp.status, body=body)
        except asyncio.TimeoutError as exc:
            raise TransportError("The request timed out.") from exc
        except aiohttp.ClientError as exc:
            raise TransportError(f"Network error: {exc}") from exc
