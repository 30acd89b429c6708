from __future__ import annotations

import hashlib
import os
import sys
from datetime import datetime, timezone
from importlib import metadata as importlib_metadata
from pathlib import Path
from typing import Optional

CONTENT_HASH_LENGTH = 16
CACHE_DIR_ENV = "REMOTE_ASSET_CACHE_DIR"
APP_VERSION_ENV = "REMOTE_ASSET_APP_VERSION"
UNKNOWN_APP_VERSION = "unknown"


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def format_rfc3339(dt: datetime) -> str:
    return dt.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")


def parse_rfc3339(value: str) -> datetime:
    raw = value.strip()
    if raw.endswith("Z"):
        raw = raw[:-1] + "+00:00"
    parsed = datetime.fromisoformat(raw)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def sha256_prefix_hex(data: bytes, length: int = CONTENT_HASH_LENGTH) -> str:
    return hashlib.sha256(data).hexdigest()[:length]


def content_hash(data: bytes) -> str:
    """Short, stable fingerprint of asset bytes."""
    return sha256_prefix_hex(data)


def default_cache_file_name(base_path: Optional[Path], remote_url: str) -> str:
    """
    Derive a cache file name unique to the remote URL.

    Two managers sharing a base file but pointing at different URLs must not
    collide, so the URL digest is always part of the name.
    """
    base_name = base_path.name if base_path is not None and base_path.name else "asset"
    return f"{base_name}.{sha256_prefix_hex(remote_url.encode('utf-8'))}"


def default_cache_dir() -> Path:
    override = os.environ.get(CACHE_DIR_ENV, "").strip()
    if override:
        return Path(override).expanduser()

    if sys.platform == "darwin":
        root = Path.home() / "Library" / "Caches"
    elif sys.platform.startswith("win"):
        local_app_data = os.environ.get("LOCALAPPDATA", "").strip()
        root = Path(local_app_data) if local_app_data else Path.home() / "AppData" / "Local"
    else:
        xdg = os.environ.get("XDG_CACHE_HOME", "").strip()
        root = Path(xdg) if xdg else Path.home() / ".cache"
    return root / "remote-asset"


def _host_distribution_version() -> Optional[str]:
    main_module = sys.modules.get("__main__")
    package = getattr(main_module, "__package__", None) or ""
    top_level = package.split(".", 1)[0]
    if not top_level:
        return None
    distributions = importlib_metadata.packages_distributions().get(top_level, [])
    for name in distributions:
        try:
            return importlib_metadata.version(name)
        except importlib_metadata.PackageNotFoundError:
            continue
    return None


def resolve_app_version(provided: Optional[str] = None) -> str:
    if provided is not None:
        return provided
    from_env = os.environ.get(APP_VERSION_ENV, "").strip()
    if from_env:
        return from_env
    return _host_distribution_version() or UNKNOWN_APP_VERSION
