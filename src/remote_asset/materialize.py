from __future__ import annotations

import json
from typing import Any, Callable, TypeVar

from remote_asset.errors import MaterializeRejected

T = TypeVar("T")

Materializer = Callable[[bytes], T]


def materialize_or_reject(materializer: Materializer[T], data: bytes) -> T:
    """Run ``materializer`` and report any failure as ``MaterializeRejected``."""
    try:
        return materializer(data)
    except MaterializeRejected:
        raise
    except Exception as e:
        raise MaterializeRejected(f"Asset bytes were rejected ({len(data)} bytes): {e}") from e


def utf8_text(data: bytes) -> str:
    try:
        return data.decode("utf-8")
    except UnicodeDecodeError as e:
        raise MaterializeRejected("Asset is not valid UTF-8 text.") from e


def json_document(data: bytes) -> Any:
    try:
        return json.loads(utf8_text(data))
    except json.JSONDecodeError as e:
        raise MaterializeRejected(f"Asset is not valid JSON: {e}") from e
