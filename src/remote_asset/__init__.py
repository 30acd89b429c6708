"""Keep a locally cached remote asset fresh with conditional HTTP requests."""

from __future__ import annotations

from remote_asset.cache.models import AssetMetadata, AssetStatus, CacheHeaders, RefreshOutcome
from remote_asset.errors import (
    FilesystemFailure,
    InvalidBaseSource,
    MaterializeRejected,
    RemoteAssetError,
    TransportFailure,
)
from remote_asset.fetch.http import HttpAssetFetcher
from remote_asset.fetch.interfaces import AssetFetcher, FetchOutcome, Modified, NotModified
from remote_asset.manager import RemoteAssetManager
from remote_asset.materialize import Materializer, json_document, utf8_text

__all__ = [
    "AssetFetcher",
    "AssetMetadata",
    "AssetStatus",
    "CacheHeaders",
    "FetchOutcome",
    "FilesystemFailure",
    "HttpAssetFetcher",
    "InvalidBaseSource",
    "MaterializeRejected",
    "Materializer",
    "Modified",
    "NotModified",
    "RefreshOutcome",
    "RemoteAssetError",
    "RemoteAssetManager",
    "TransportFailure",
    "json_document",
    "utf8_text",
]
