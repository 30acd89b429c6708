from __future__ import annotations

from pathlib import Path
from typing import Optional


class RemoteAssetError(Exception):
    """Base class for every error raised by remote_asset."""


class InvalidBaseSource(RemoteAssetError):
    """The bundled base file is missing, unreadable, or not a regular file."""

    def __init__(self, message: str, *, path: Optional[Path] = None) -> None:
        super().__init__(message)
        self.path = path


class MaterializeRejected(RemoteAssetError):
    """The materialize function declined the bytes it was given."""


class TransportFailure(RemoteAssetError):
    """The remote exchange failed or returned an unusable response."""

    def __init__(self, message: str, *, url: str = "", status: Optional[int] = None) -> None:
        super().__init__(message)
        self.url = url
        self.status = status


class FilesystemFailure(RemoteAssetError):
    """A required cache write or bootstrap step failed on disk."""

    def __init__(self, message: str, *, path: Optional[Path] = None) -> None:
        super().__init__(message)
        self.path = path


__all__ = [
    "FilesystemFailure",
    "InvalidBaseSource",
    "MaterializeRejected",
    "RemoteAssetError",
    "TransportFailure",
]
