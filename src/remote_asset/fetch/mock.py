from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from typing import Iterable, Optional, Union

from remote_asset.cache.models import CacheHeaders
from remote_asset.fetch.interfaces import AssetFetcher, FetchOutcome, NotModified

ScriptedResult = Union[FetchOutcome, BaseException]


@dataclass(slots=True)
class FetchCall:
    url: str
    cache_headers: CacheHeaders


class StaticAssetFetcher(AssetFetcher):
    """
    A deterministic fetcher for tests and offline runs.

    Returns the same outcome for every request. When ``gate`` is set, each call
    waits on it before answering so callers can hold a request open.
    """

    def __init__(self, outcome: ScriptedResult, *, gate: Optional[asyncio.Event] = None) -> None:
        self._outcome = outcome
        self._gate = gate
        self.calls: list[FetchCall] = []

    async def fetch(self, url: str, cache_headers: CacheHeaders) -> FetchOutcome:
        self.calls.append(FetchCall(url=url, cache_headers=cache_headers))
        if self._gate is not None:
            await self._gate.wait()
        if isinstance(self._outcome, BaseException):
            raise self._outcome
        return self._outcome


@dataclass
class SequenceAssetFetcher(AssetFetcher):
    """Replays scripted outcomes in order, then reports not-modified."""

    outcomes: list[ScriptedResult] = field(default_factory=list)
    calls: list[FetchCall] = field(default_factory=list)

    @classmethod
    def of(cls, outcomes: Iterable[ScriptedResult]) -> SequenceAssetFetcher:
        return cls(outcomes=list(outcomes))

    async def fetch(self, url: str, cache_headers: CacheHeaders) -> FetchOutcome:
        self.calls.append(FetchCall(url=url, cache_headers=cache_headers))
        if not self.outcomes:
            return NotModified(cache_headers=cache_headers)
        outcome = self.outcomes.pop(0)
        if isinstance(outcome, BaseException):
            raise outcome
        return outcome
