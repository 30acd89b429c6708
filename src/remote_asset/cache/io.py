from __future__ import annotations

import json
import logging
import os
from datetime import datetime
from pathlib import Path
from typing import Any, Optional

from remote_asset.cache.models import AssetMetadata, CacheHeaders
from remote_asset.cache.utils import format_rfc3339, parse_rfc3339

logger = logging.getLogger(__name__)


def atomic_write_bytes(path: Path, data: bytes) -> None:
    """Write ``data`` so that ``path`` only ever holds the old or the new content."""
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp_path = path.with_name(f".{path.name}.{os.getpid()}.tmp")
    try:
        with open(tmp_path, "wb") as handle:
            handle.write(data)
            handle.flush()
            os.fsync(handle.fileno())
        os.replace(tmp_path, path)
    except BaseException:
        tmp_path.unlink(missing_ok=True)
        raise


def atomic_write_json(path: Path, payload: dict) -> None:
    text = json.dumps(payload, indent=2, sort_keys=True)
    atomic_write_bytes(path, text.encode("utf-8"))


def _encode_time(value: Optional[datetime]) -> Optional[str]:
    if value is None:
        return None
    return format_rfc3339(value)


def _decode_time(value: Any) -> Optional[datetime]:
    if value is None:
        return None
    return parse_rfc3339(str(value))


def _decode_optional_str(value: Any) -> Optional[str]:
    if value is None:
        return None
    return str(value)


def encode_metadata(metadata: AssetMetadata) -> dict:
    return {
        "app_version": metadata.app_version,
        "cache_headers": {
            "etag": metadata.cache_headers.etag,
            "last_modified": metadata.cache_headers.last_modified,
        },
        "last_checked_at": _encode_time(metadata.last_checked_at),
        "last_updated_at": _encode_time(metadata.last_updated_at),
        "byte_count": metadata.byte_count,
        "content_hash": metadata.content_hash,
    }


def decode_metadata(payload: dict) -> AssetMetadata:
    if not isinstance(payload, dict):
        raise ValueError(f"Metadata must be a JSON object, got: {type(payload).__name__}")
    headers_payload = payload.get("cache_headers") or {}
    byte_count = payload.get("byte_count")
    return AssetMetadata(
        app_version=str(payload["app_version"]),
        cache_headers=CacheHeaders(
            etag=_decode_optional_str(headers_payload.get("etag")),
            last_modified=_decode_optional_str(headers_payload.get("last_modified")),
        ),
        last_checked_at=_decode_time(payload.get("last_checked_at")),
        last_updated_at=_decode_time(payload.get("last_updated_at")),
        byte_count=int(byte_count) if byte_count is not None else None,
        content_hash=_decode_optional_str(payload.get("content_hash")),
    )


def read_metadata_file(path: Path) -> Optional[AssetMetadata]:
    """Return the stored metadata, or None when it is missing or unreadable."""
    if not path.exists():
        return None
    try:
        payload = json.loads(path.read_text(encoding="utf-8"))
        return decode_metadata(payload)
    except Exception:
        logger.warning("Failed to read asset metadata, treating it as absent. path=%s", path, exc_info=True)
        return None
