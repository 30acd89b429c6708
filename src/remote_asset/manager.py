from __future__ import annotations

import asyncio
import logging
from dataclasses import replace
from datetime import datetime
from pathlib import Path
from typing import Generic, Optional, Set, TypeVar, Union, cast

from remote_asset.cache.models import AssetMetadata, AssetStatus, RefreshOutcome
from remote_asset.cache.store import CacheStore, MetadataErrorSink, validate_base_path
from remote_asset.cache.utils import (
    content_hash,
    default_cache_dir,
    default_cache_file_name,
    resolve_app_version,
    utc_now,
)
from remote_asset.config.models import RemoteAssetSettings
from remote_asset.fetch.http import HttpAssetFetcher
from remote_asset.fetch.interfaces import AssetFetcher, Modified, NotModified
from remote_asset.materialize import Materializer, materialize_or_reject

logger = logging.getLogger(__name__)

T = TypeVar("T")

PathLike = Union[str, Path]


def _reconcile_metadata(metadata: AssetMetadata, data: bytes, digest: str, now: datetime) -> Optional[AssetMetadata]:
    """
    Return metadata matching the bytes on disk, or None when it already does.

    Disk wins: bytes placed out-of-band are adopted rather than treated as corruption.
    """
    if metadata.byte_count == len(data) and metadata.content_hash == digest and metadata.last_updated_at is not None:
        return None
    updated = metadata.copy()
    updated.byte_count = len(data)
    updated.content_hash = digest
    if updated.last_updated_at is None:
        updated.last_updated_at = now
    return updated


class RemoteAssetManager(Generic[T]):
    """
    Keeps one locally cached asset in sync with its remote copy.

    Build instances with ``await RemoteAssetManager.create(...)``: the whole
    initial load (bootstrap, read, materialize) happens there, so construction
    fails rather than leaving a manager without a valid asset. The one
    exception is ``skip_materialize_if_unchanged_and_exists_at``: when it
    applies, materialize is deferred to the first ``asset`` access, which then
    reads the cached file and may raise ``MaterializeRejected``. Afterwards
    ``refresh()`` performs a conditional request and commits new bytes only
    once they materialize.
    """

    def __init__(
        self,
        *,
        remote_url: str,
        cache_file_name: str,
        app_version: str,
        store: CacheStore,
        fetcher: AssetFetcher,
        materialize: Materializer[T],
        asset: Optional[T],
        status: AssetStatus,
        asset_pending: bool = False,
    ) -> None:
        self._remote_url = remote_url
        self._cache_file_name = cache_file_name
        self._app_version = app_version
        self._store = store
        self._fetcher = fetcher
        self._materialize = materialize
        self._asset = asset
        # Set when the initial materialize was skipped; the asset is built on first access.
        self._asset_pending = asset_pending
        self._status = status

        self._lock = asyncio.Lock()
        self._refreshing = False
        self._auto_refresh_task: Optional[asyncio.Task] = None
        self._auto_refresh_stop: Optional[asyncio.Event] = None
        self._init_refresh_task: Optional[asyncio.Task] = None
        self._background_tasks: Set[asyncio.Task] = set()

    @classmethod
    async def create(
        cls,
        *,
        remote_url: str,
        materialize: Materializer[T],
        base_path: Optional[PathLike] = None,
        base_data: Optional[bytes] = None,
        fetcher: Optional[AssetFetcher] = None,
        cache_dir: Optional[PathLike] = None,
        cache_file_name: Optional[str] = None,
        app_version: Optional[str] = None,
        auto_refresh_interval: Optional[float] = None,
        refresh_on_init: bool = True,
        skip_materialize_if_unchanged_and_exists_at: Optional[PathLike] = None,
        on_metadata_error: Optional[MetadataErrorSink] = None,
    ) -> RemoteAssetManager[T]:
        if (base_path is None) == (base_data is None):
            raise ValueError("Exactly one of base_path or base_data is required.")

        base = Path(base_path) if base_path is not None else None
        if base is not None:
            validate_base_path(base)

        resolved_version = resolve_app_version(app_version)
        directory = Path(cache_dir) if cache_dir is not None else default_cache_dir()
        file_name = cache_file_name or default_cache_file_name(base, remote_url)

        store = CacheStore(
            directory / file_name,
            base_path=base,
            base_data=base_data,
            on_metadata_error=on_metadata_error,
        )
        store.bootstrap(resolved_version)

        data = store.read_asset_bytes()
        metadata = store.read_metadata(resolved_version)
        digest = content_hash(data)

        skip_path = (
            Path(skip_materialize_if_unchanged_and_exists_at)
            if skip_materialize_if_unchanged_and_exists_at is not None
            else None
        )
        if skip_path is not None and metadata.content_hash == digest and skip_path.exists():
            logger.info(
                "Cached asset unchanged and derived artifact present, deferring materialize. path=%s artifact=%s",
                store.asset_path,
                skip_path,
            )
            asset: Optional[T] = None
            deferred = True
        else:
            asset = materialize_or_reject(materialize, data)
            deferred = False

        reconciled = _reconcile_metadata(metadata, data, digest, utc_now())
        if reconciled is not None:
            logger.info(
                "Reconciling asset metadata with cached bytes. path=%s bytes=%d content_hash=%s",
                store.asset_path,
                len(data),
                digest,
            )
            store.write_metadata(reconciled)
            metadata = reconciled

        manager = cls(
            remote_url=remote_url,
            cache_file_name=file_name,
            app_version=resolved_version,
            store=store,
            fetcher=fetcher if fetcher is not None else HttpAssetFetcher(),
            materialize=materialize,
            asset=asset,
            asset_pending=deferred,
            status=AssetStatus(
                remote_url=remote_url,
                cache_file_name=file_name,
                app_version=resolved_version,
                cache_headers=metadata.cache_headers,
                last_checked_at=metadata.last_checked_at,
                last_updated_at=metadata.last_updated_at,
                byte_count=len(data),
                content_hash=digest,
            ),
        )
        logger.info(
            "Remote asset ready. url=%s path=%s app_version=%s bytes=%d",
            remote_url,
            store.asset_path,
            resolved_version,
            len(data),
        )
        manager._configure_background_tasks(auto_refresh_interval=auto_refresh_interval, refresh_on_init=refresh_on_init)
        return manager

    @classmethod
    async def from_settings(
        cls,
        settings: RemoteAssetSettings,
        materialize: Materializer[T],
        *,
        base_data: Optional[bytes] = None,
        fetcher: Optional[AssetFetcher] = None,
        on_metadata_error: Optional[MetadataErrorSink] = None,
    ) -> RemoteAssetManager[T]:
        return await cls.create(
            remote_url=settings.remote_url,
            materialize=materialize,
            base_path=settings.base_path,
            base_data=base_data,
            fetcher=fetcher if fetcher is not None else HttpAssetFetcher(timeout_seconds=settings.fetch_timeout_seconds),
            cache_dir=settings.cache_dir,
            cache_file_name=settings.cache_file_name,
            app_version=settings.app_version,
            auto_refresh_interval=settings.auto_refresh_interval_seconds,
            refresh_on_init=settings.refresh_on_init,
            skip_materialize_if_unchanged_and_exists_at=settings.skip_materialize_if_unchanged_and_exists_at,
            on_metadata_error=on_metadata_error,
        )

    @property
    def asset(self) -> T:
        if self._asset_pending:
            data = self._store.read_asset_bytes()
            self._asset = materialize_or_reject(self._materialize, data)
            self._asset_pending = False
        return cast(T, self._asset)

    @property
    def status(self) -> AssetStatus:
        return self._status

    @property
    def is_refreshing(self) -> bool:
        return self._refreshing

    @property
    def remote_url(self) -> str:
        return self._remote_url

    @property
    def app_version(self) -> str:
        return self._app_version

    @property
    def cache_path(self) -> Path:
        return self._store.asset_path

    @property
    def metadata_path(self) -> Path:
        return self._store.metadata_path

    @property
    def auto_refresh_running(self) -> bool:
        return self._auto_refresh_task is not None and not self._auto_refresh_task.done()

    async def refresh(self) -> RefreshOutcome:
        """
        Check the remote copy once and commit it if it changed.

        Returns ``IN_FLIGHT`` without touching the network when another refresh
        is running. Fetch and materialize errors propagate; in every failure case
        the cached bytes, metadata and in-memory asset stay as they were.
        """
        async with self._lock:
            if self._refreshing:
                logger.debug("Refresh already in flight. url=%s", self._remote_url)
                return RefreshOutcome.IN_FLIGHT
            self._refreshing = True

        try:
            return await self._refresh_once()
        finally:
            self._refreshing = False

    async def _refresh_once(self) -> RefreshOutcome:
        metadata = self._store.read_metadata(self._app_version)
        outcome = await self._fetcher.fetch(self._remote_url, metadata.cache_headers)
        now = utc_now()

        if isinstance(outcome, Modified):
            asset = materialize_or_reject(self._materialize, outcome.data)
            digest = content_hash(outcome.data)
            async with self._lock:
                self._store.write_asset_bytes(outcome.data)
                updated = AssetMetadata(
                    app_version=self._app_version,
                    cache_headers=outcome.cache_headers,
                    last_checked_at=now,
                    last_updated_at=now,
                    byte_count=len(outcome.data),
                    content_hash=digest,
                )
                self._store.write_metadata(updated)
                self._asset = asset
                self._asset_pending = False
                self._status = replace(
                    self._status,
                    cache_headers=updated.cache_headers,
                    last_checked_at=now,
                    last_updated_at=now,
                    byte_count=len(outcome.data),
                    content_hash=digest,
                )
            logger.info(
                "Remote asset updated. url=%s bytes=%d content_hash=%s etag=%s",
                self._remote_url,
                len(outcome.data),
                digest,
                outcome.cache_headers.etag,
            )
            return RefreshOutcome.UPDATED

        if isinstance(outcome, NotModified):
            async with self._lock:
                updated = metadata.copy()
                updated.app_version = self._app_version
                updated.cache_headers = outcome.cache_headers
                updated.last_checked_at = now
                self._store.write_metadata(updated)
                self._status = replace(self._status, cache_headers=outcome.cache_headers, last_checked_at=now)
            logger.debug("Remote asset not modified. url=%s", self._remote_url)
            return RefreshOutcome.NOT_MODIFIED

        raise TypeError(f"Unsupported fetch outcome: {outcome!r}")

    def start_auto_refresh(self, interval_seconds: float) -> None:
        """Refresh now and then every ``interval_seconds``, replacing any running loop."""
        if interval_seconds <= 0:
            raise ValueError(f"Auto refresh interval must be positive, got: {interval_seconds}")
        self._signal_auto_refresh_stop()
        stop_event = asyncio.Event()
        self._auto_refresh_stop = stop_event
        self._auto_refresh_task = self._spawn(self._auto_refresh_loop(interval_seconds, stop_event))
        logger.info("Auto refresh started. url=%s interval_seconds=%s", self._remote_url, interval_seconds)

    async def stop_auto_refresh(self) -> None:
        task = self._auto_refresh_task
        self._signal_auto_refresh_stop()
        if task is not None:
            await task
            logger.info("Auto refresh stopped. url=%s", self._remote_url)

    async def close(self) -> None:
        await self.stop_auto_refresh()
        init_task = self._init_refresh_task
        self._init_refresh_task = None
        if init_task is not None and not init_task.done():
            init_task.cancel()
        # Replaced loops are already signalled; let them finish their last refresh.
        pending = [task for task in self._background_tasks if not task.done()]
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)

    async def __aenter__(self) -> RemoteAssetManager[T]:
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    def _signal_auto_refresh_stop(self) -> None:
        # A replaced loop finishes its current refresh, if any, and then exits.
        if self._auto_refresh_stop is not None:
            self._auto_refresh_stop.set()
        self._auto_refresh_stop = None
        self._auto_refresh_task = None

    async def _auto_refresh_loop(self, interval_seconds: float, stop_event: asyncio.Event) -> None:
        while not stop_event.is_set():
            await self._refresh_quietly()
            try:
                await asyncio.wait_for(stop_event.wait(), timeout=interval_seconds)
            except asyncio.TimeoutError:
                continue

    async def _refresh_quietly(self) -> None:
        try:
            outcome = await self.refresh()
        except Exception:
            logger.warning("Background refresh failed. url=%s", self._remote_url, exc_info=True)
            return
        logger.debug("Background refresh finished. url=%s outcome=%s", self._remote_url, outcome.value)

    def _configure_background_tasks(self, *, auto_refresh_interval: Optional[float], refresh_on_init: bool) -> None:
        if auto_refresh_interval is not None:
            self.start_auto_refresh(auto_refresh_interval)
        if refresh_on_init:
            self._init_refresh_task = self._spawn(self._refresh_quietly())

    def _spawn(self, coro) -> asyncio.Task:
        task = asyncio.create_task(coro)
        self._background_tasks.add(task)
        task.add_done_callback(self._background_tasks.discard)
        return task
