from __future__ import annotations

import logging
from pathlib import Path
from typing import Callable, Optional

from remote_asset.cache.io import atomic_write_bytes, atomic_write_json, encode_metadata, read_metadata_file
from remote_asset.cache.models import AssetMetadata
from remote_asset.errors import FilesystemFailure, InvalidBaseSource

logger = logging.getLogger(__name__)

MetadataErrorSink = Callable[[Path, Exception], None]


def metadata_path_for(asset_path: Path) -> Path:
    return asset_path.with_name(f"{asset_path.name}.metadata.json")


def validate_base_path(base_path: Path) -> None:
    if not base_path.exists():
        raise InvalidBaseSource(f"Base asset does not exist: {base_path}", path=base_path)
    if not base_path.is_file():
        raise InvalidBaseSource(f"Base asset is not a regular file: {base_path}", path=base_path)


class CacheStore:
    """
    Owns the cached asset file and its metadata side-file.

    The store never talks to the network and never materializes bytes. Asset
    bytes are written with atomic replace; metadata writes are best-effort and
    failures are reported to ``on_metadata_error`` instead of raised.
    """

    def __init__(
        self,
        asset_path: Path,
        metadata_path: Optional[Path] = None,
        *,
        base_path: Optional[Path] = None,
        base_data: Optional[bytes] = None,
        on_metadata_error: Optional[MetadataErrorSink] = None,
    ) -> None:
        self.asset_path = asset_path
        self.metadata_path = metadata_path or metadata_path_for(asset_path)
        self._base_path = base_path
        self._base_data = base_data
        self._on_metadata_error = on_metadata_error

    def bootstrap(self, app_version: str) -> None:
        directory = self.asset_path.parent
        try:
            directory.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise FilesystemFailure(f"Failed to create cache directory: {directory}", path=directory) from e

        existing = read_metadata_file(self.metadata_path)
        if existing is not None and existing.app_version != app_version:
            logger.info(
                "App version changed, purging cached asset. path=%s cached_version=%s app_version=%s",
                self.asset_path,
                existing.app_version,
                app_version,
            )
            self._remove_quietly(self.asset_path)
            self._remove_quietly(self.metadata_path)

        if not self.asset_path.exists():
            self._seed()

        current = read_metadata_file(self.metadata_path)
        if current is None or current.app_version != app_version:
            self.write_metadata(AssetMetadata(app_version=app_version))

    def read_asset_bytes(self) -> bytes:
        try:
            return self.asset_path.read_bytes()
        except OSError:
            logger.warning("Cached asset is unreadable, reseeding from base. path=%s", self.asset_path, exc_info=True)
        if self._seeds_in_place():
            raise InvalidBaseSource(f"Base asset is unreadable: {self._base_path}", path=self._base_path)
        self._remove_quietly(self.asset_path)
        self._seed()
        try:
            return self.asset_path.read_bytes()
        except OSError as e:
            raise FilesystemFailure(f"Failed to read reseeded asset: {self.asset_path}", path=self.asset_path) from e

    def write_asset_bytes(self, data: bytes) -> None:
        try:
            atomic_write_bytes(self.asset_path, data)
        except OSError as e:
            raise FilesystemFailure(f"Failed to write cached asset: {self.asset_path}", path=self.asset_path) from e

    def read_metadata(self, app_version: str) -> AssetMetadata:
        metadata = read_metadata_file(self.metadata_path)
        if metadata is not None and metadata.app_version == app_version:
            return metadata
        return AssetMetadata(app_version=app_version)

    def write_metadata(self, metadata: AssetMetadata) -> None:
        try:
            atomic_write_json(self.metadata_path, encode_metadata(metadata))
        except Exception as e:
            logger.warning("Failed to write asset metadata. path=%s error=%s", self.metadata_path, e)
            self._report_metadata_error(e)

    def _report_metadata_error(self, error: Exception) -> None:
        if self._on_metadata_error is None:
            return
        try:
            self._on_metadata_error(self.metadata_path, error)
        except Exception:
            logger.warning("Metadata error callback failed. path=%s", self.metadata_path, exc_info=True)

    def _seed(self) -> None:
        if self._base_path is not None:
            if self._seeds_in_place():
                return
            try:
                validate_base_path(self._base_path)
                data = self._base_path.read_bytes()
            except OSError as e:
                raise InvalidBaseSource(f"Base asset is unreadable: {self._base_path}", path=self._base_path) from e
            try:
                atomic_write_bytes(self.asset_path, data)
            except OSError as e:
                raise FilesystemFailure(
                    f"Failed to copy base asset into cache: {self._base_path}", path=self.asset_path
                ) from e
            logger.info("Seeded cache from base file. base=%s path=%s", self._base_path, self.asset_path)
            return

        if self._base_data is not None:
            self.write_asset_bytes(self._base_data)
            logger.info("Seeded cache from default bytes. path=%s bytes=%d", self.asset_path, len(self._base_data))
            return

        raise InvalidBaseSource("No base source available to seed the cache.")

    def _seeds_in_place(self) -> bool:
        return self._base_path is not None and self._base_path.resolve() == self.asset_path.resolve()

    @staticmethod
    def _remove_quietly(path: Path) -> None:
        try:
            path.unlink(missing_ok=True)
        except OSError as e:
            logger.warning("Failed to remove cache file. path=%s error=%s", path, e)
