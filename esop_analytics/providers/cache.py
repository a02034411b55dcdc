"""Time-bounded in-memory cache for rate snapshots."""

from __future__ import annotations

import time
from typing import Callable, Generic, Mapping, MutableMapping, TypeVar

from esop_analytics.config import AppSettings
from esop_analytics.models import RateKind, Region

T = TypeVar("T")

Clock = Callable[[], float]


class RateCache(Generic[T]):
    """Cache keyed by ``(region, kind)`` with a TTL per kind.

    Entries are immutable snapshots that are replaced wholesale, so a reader
    sees either the previous snapshot or the new one and no lock is needed.
    """

    def __init__(self, ttl_seconds: Mapping[RateKind, float], *, clock: Clock = time.monotonic):
        self._ttl = dict(ttl_seconds)
        self._clock = clock
        self._entries: MutableMapping[tuple[Region, RateKind], tuple[float, T]] = {}

    def get(self, region: Region, kind: RateKind) -> T | None:
        entry = self._entries.get((region, kind))
        if entry is None:
            return None
        stored_at, value = entry
        if self._clock() - stored_at > self._ttl.get(kind, 0.0):
            return None
        return value

    def put(self, region: Region, kind: RateKind, value: T) -> T:
        self._entries[(region, kind)] = (self._clock(), value)
        return value

    def invalidate(self, region: Region | None = None, kind: RateKind | None = None) -> None:
        for key in list(self._entries):
            if (region is None or key[0] == region) and (kind is None or key[1] == kind):
                self._entries.pop(key, None)

    def __len__(self) -> int:
        return len(self._entries)


def build_rate_cache(settings: AppSettings, *, clock: Clock = time.monotonic) -> RateCache:
    """Create a cache using the per-kind TTLs from ``settings``."""

    return RateCache(
        {
            RateKind.CURRENCY: settings.currency_cache_ttl_seconds,
            RateKind.TAX: settings.tax_cache_ttl_seconds,
            RateKind.INFLATION: settings.inflation_cache_ttl_seconds,
            RateKind.BENCHMARK: settings.benchmark_cache_ttl_seconds,
        },
        clock=clock,
    )


__all__ = ["Clock", "RateCache", "build_rate_cache"]
