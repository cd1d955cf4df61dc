"""Shared aiohttp plumbing for the rail clients."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Optional

import aiohttp

from coinpay.modules.common.exceptions import TransportError

logger = logging.getLogger(__name__)


class HttpRailClient:
    """Owns one lazily created ``aiohttp.ClientSession`` per client."""

    def __init__(self, base_url: str, *, headers: Optional[dict[str, str]] = None, timeout: float = 15.0) -> None:
        self._base_url = base_url.rstrip("/")
        self._headers = headers or {}
        self._timeout = aiohttp.ClientTimeout(total=timeout)
        self._session: Optional[aiohttp.ClientSession] = None

    async def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(timeout=self._timeout, headers=self._headers)
        return self._session

    async def close(self) -> None:
        if self._session is not None and not self._session.closed:
            await self._session.close()
        self._session = None

    async def _request_json(self, method: str, path: str, **kwargs: Any) -> Any:
        url = f"{self._base_url}/{path.lstrip('/')}"
        session = await self._get_session()
        try:
            async with session.request(method, url, **kwargs) as resp:
                if resp.status >= 400:
                    body = await resp.text()
                    raise TransportError(f"{method} {url} returned HTTP {resp.status}: {body[:200]}")
                return await resp.json(content_type=None)
        except (aiohttp.ClientError, asyncio.TimeoutError, ValueError) as exc:
            logger.debug("%s %s failed: %s", method, url, exc)
            raise TransportError(f"{method} {url} failed: {exc}") from exc
