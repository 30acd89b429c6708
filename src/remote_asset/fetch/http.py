from __future__ import annotations

import asyncio
import logging
from typing import Optional

import aiohttp

from remote_asset.cache.models import CacheHeaders
from remote_asset.errors import TransportFailure
from remote_asset.fetch.interfaces import AssetFetcher, FetchOutcome, Modified, NotModified

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SECONDS = 60.0
DEFAULT_USER_AGENT = "remote-asset"


class HttpAssetFetcher(AssetFetcher):
    """
    Conditional GET over aiohttp.

    A session passed in by the caller is shared and left open; otherwise a
    short-lived session is opened per request.
    """

    def __init__(
        self,
        *,
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
        session: Optional[aiohttp.ClientSession] = None,
        user_agent: str = DEFAULT_USER_AGENT,
    ) -> None:
        self._timeout = aiohttp.ClientTimeout(total=timeout_seconds)
        self._session = session
        self._user_agent = user_agent

    def build_request_headers(self, cache_headers: CacheHeaders) -> dict[str, str]:
        return cache_headers.apply({"User-Agent": self._user_agent})

    async def fetch(self, url: str, cache_headers: CacheHeaders) -> FetchOutcome:
        headers = self.build_request_headers(cache_headers)
        logger.debug(
            "Conditional asset request. url=%s etag=%s last_modified=%s",
            url,
            cache_headers.etag,
            cache_headers.last_modified,
        )
        try:
            if self._session is not None:
                return await self._request(self._session, url, headers, cache_headers)
            async with aiohttp.ClientSession(timeout=self._timeout) as session:
                return await self._request(session, url, headers, cache_headers)
        except asyncio.TimeoutError as e:
            raise TransportFailure(f"Asset request timed out: {url}", url=url) from e
        except aiohttp.ClientError as e:
            raise TransportFailure(f"Asset request failed: {url} ({e})", url=url) from e

    async def _request(
        self,
        session: aiohttp.ClientSession,
        url: str,
        headers: dict[str, str],
        cache_headers: CacheHeaders,
    ) -> FetchOutcome:
        async with session.get(url, headers=headers, timeout=self._timeout) as response:
            status = response.status
            updated = cache_headers.with_fallback(
                response.headers.get("ETag"),
                response.headers.get("Last-Modified"),
            )
            if status == 304:
                response.release()
                logger.debug("Asset not modified. url=%s", url)
                return NotModified(cache_headers=updated)
            if 200 <= status < 300:
                data = await response.read()
                logger.debug("Asset modified. url=%s status=%s bytes=%d", url, status, len(data))
                return Modified(data=data, cache_headers=updated)
            response.release()
            raise TransportFailure(f"Unexpected asset response status: {status} url={url}", url=url, status=status)
