from remote_asset.cache.models import AssetMetadata, AssetStatus, CacheHeaders, RefreshOutcome
from remote_asset.cache.store import CacheStore

__all__ = ["AssetMetadata", "AssetStatus", "CacheHeaders", "CacheStore", "RefreshOutcome"]
