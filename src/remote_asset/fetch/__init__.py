from remote_asset.fetch.http import HttpAssetFetcher
from remote_asset.fetch.interfaces import AssetFetcher, FetchOutcome, Modified, NotModified
from remote_asset.fetch.mock import SequenceAssetFetcher, StaticAssetFetcher

__all__ = [
    "AssetFetcher",
    "FetchOutcome",
    "HttpAssetFetcher",
    "Modified",
    "NotModified",
    "SequenceAssetFetcher",
    "StaticAssetFetcher",
]
