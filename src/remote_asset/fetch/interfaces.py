from __future__ import annotations

from dataclasses import dataclass
from typing import Union

from remote_asset.cache.models import CacheHeaders


@dataclass(frozen=True, slots=True)
class Modified:
    """The remote returned a new body."""

    data: bytes
    cache_headers: CacheHeaders


@dataclass(frozen=True, slots=True)
class NotModified:
    """The remote confirmed our cached copy is current."""

    cache_headers: CacheHeaders


FetchOutcome = Union[Modified, NotModified]


class AssetFetcher:
    async def fetch(self, url: str, cache_headers: CacheHeaders) -> FetchOutcome:
        """
        Perform one conditional exchange for ``url``.

        Implementations send ``If-None-Match`` / ``If-Modified-Since`` built from
        ``cache_headers`` and return ``Modified`` for a 2xx response or
        ``NotModified`` for a 304. Any other result must raise; timeouts are the
        fetcher's responsibility.
        """
        raise NotImplementedError
