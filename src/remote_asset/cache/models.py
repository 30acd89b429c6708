from __future__ import annotations

import enum
from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Dict, Optional


@dataclass(frozen=True, slots=True)
class CacheHeaders:
    """Opaque conditional-request tokens, compared byte for byte."""

    etag: Optional[str] = None
    last_modified: Optional[str] = None

    def apply(self, base_headers: Dict[str, str]) -> Dict[str, str]:
        """Return a copy of ``base_headers`` with conditional headers applied."""
        headers = dict(base_headers)
        if self.etag is not None:
            headers["If-None-Match"] = self.etag
        if self.last_modified is not None:
            headers["If-Modified-Since"] = self.last_modified
        return headers

    def with_fallback(self, etag: Optional[str], last_modified: Optional[str]) -> CacheHeaders:
        """Take response values, keeping ours for any the response left out."""
        return CacheHeaders(
            etag=etag if etag is not None else self.etag,
            last_modified=last_modified if last_modified is not None else self.last_modified,
        )

    def is_empty(self) -> bool:
        return self.etag is None and self.last_modified is None


@dataclass(slots=True)
class AssetMetadata:
    app_version: str
    cache_headers: CacheHeaders = field(default_factory=CacheHeaders)
    last_checked_at: Optional[datetime] = None
    last_updated_at: Optional[datetime] = None
    byte_count: Optional[int] = None
    content_hash: Optional[str] = None

    def copy(self) -> AssetMetadata:
        return replace(self)


@dataclass(frozen=True, slots=True)
class AssetStatus:
    """Read-only snapshot of the cache as seen by callers."""

    remote_url: str
    cache_file_name: str
    app_version: str
    cache_headers: CacheHeaders
    last_checked_at: Optional[datetime]
    last_updated_at: Optional[datetime]
    byte_count: int
    # Hash of the bytes currently loaded in memory.
    content_hash: str


class RefreshOutcome(str, enum.Enum):
    UPDATED = "updated"
    NOT_MODIFIED = "not_modified"
    # Another refresh was already running; no request was made.
    IN_FLIGHT = "in_flight"
