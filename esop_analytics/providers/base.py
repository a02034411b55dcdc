"""Ordered fallback chains shared by the tax, inflation and currency providers."""

from __future__ import annotations

import logging
import math
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Generic, Sequence, TypeVar

import httpx

from esop_analytics.core.errors import RatesUnavailableError, SourceError
from esop_analytics.core.telemetry import rate_fallbacks, rate_source_failures
from esop_analytics.models import RateKind, Region
from esop_analytics.providers.cache import RateCache

logger = logging.getLogger(__name__)

S = TypeVar("S")

SourceFetch = Callable[[Region, httpx.AsyncClient], Awaitable[Any]]

# Anything a single source can raise that should advance the chain instead of aborting it
SOURCE_FAILURES: tuple[type[BaseException], ...] = (
    httpx.HTTPError,
    SourceError,
    ValueError,
    KeyError,
    IndexError,
    TypeError,
    AttributeError,
)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class RateSource:
    """A named fetcher; ``regions`` limits which regions it can answer for."""

    name: str
    fetch: SourceFetch
    regions: frozenset[Region] = field(default_factory=lambda: frozenset(Region))

    def supports(self, region: Region) -> bool:
        return region in self.regions


async def get_json(
    client: httpx.AsyncClient,
    url: str,
    *,
    params: dict[str, Any] | None = None,
    headers: dict[str, str] | None = None,
    expect: type = dict,
) -> Any:
    """GET ``url`` and decode the JSON body.

    Raises ``SourceError`` on HTTP errors and when the decoded body is not an
    instance of ``expect`` (an object unless stated otherwise).
    """

    response = await client.get(url, params=params, headers=headers)
    if response.status_code >= 400:
        raise SourceError(f"{url} returned HTTP {response.status_code}")
    body = response.json()
    if not isinstance(body, expect):
        raise SourceError(f"{url} returned {type(body).__name__}, expected {expect.__name__}")
    return body


def as_mapping(value: Any, what: str) -> dict[str, Any]:
    """Return ``value`` when it is a JSON object, else raise ``SourceError``."""

    if not isinstance(value, dict):
        raise SourceError(f"{what} is {type(value).__name__}, expected an object")
    return value


def require_key(value: str | None, name: str) -> str:
    if not value:
        raise SourceError(f"{name} not configured")
    return value


def positive_number(value: Any) -> float | None:
    """Return ``value`` as a float when it is a finite positive number."""

    if value is None or isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(number) or number <= 0:
        return None
    return number


class RateProvider(ABC, Generic[S]):
    """Resolve a snapshot for a region through cache, source chain and fallback."""

    kind: RateKind

    def __init__(
        self,
        sources: Sequence[RateSource],
        cache: RateCache,
        *,
        timeout_seconds: float = 5.0,
        transport: httpx.AsyncBaseTransport | None = None,
        now: Callable[[], datetime] = utcnow,
    ) -> None:
        self.sources = list(sources)
        self.cache = cache
        self.timeout_seconds = timeout_seconds
        self._transport = transport
        self._now = now

    @property
    def source_names(self) -> list[str]:
        return [source.name for source in self.sources]

    async def get(self, region: Region) -> S:
        """Return the snapshot for ``region``.

        Raises:
            RatesUnavailableError: every source failed and no static fallback exists.
        """

        region = Region(region)
        cached = self.cache.get(region, self.kind)
        if cached is not None:
            return cached

        shortcut = self._resolve_without_network(region)
        if shortcut is not None:
            return self.cache.put(region, self.kind, shortcut)

        attempted: list[str] = []
        async with httpx.AsyncClient(timeout=self.timeout_seconds, transport=self._transport) as client:
            for source in self.sources:
                if not source.supports(region):
                    continue
                attempted.append(source.name)
                try:
                    raw = await source.fetch(region, client)
                except SOURCE_FAILURES as exc:
                    logger.warning("%s source %s failed for %s: %s", self.kind.value, source.name, region.value, exc)
                    rate_source_failures.add(1, {"kind": self.kind.value, "source": source.name})
                    continue
                value = self._validate(raw)
                if value is None:
                    rate_source_failures.add(1, {"kind": self.kind.value, "source": source.name})
                    logger.warning(
                        "%s source %s returned an unusable value for %s: %r",
                        self.kind.value,
                        source.name,
                        region.value,
                        raw,
                    )
                    continue
                snapshot = self._build_snapshot(region, value, source.name)
                logger.info("Resolved %s rates for %s via %s", self.kind.value, region.value, source.name)
                return self.cache.put(region, self.kind, snapshot)

        fallback = self._static_fallback(region)
        if fallback is None:
            logger.error("All %s sources failed for %s: %s", self.kind.value, region.value, attempted)
            raise RatesUnavailableError(self.kind.value, region.value, attempted)
        logger.warning(
            "All %s sources failed for %s (%s); using configured static fallback",
            self.kind.value,
            region.value,
            attempted or "none configured",
        )
        rate_fallbacks.add(1, {"kind": self.kind.value, "region": region.value})
        snapshot = self._build_snapshot(region, fallback, "fallback")
        return self.cache.put(region, self.kind, snapshot)

    def _resolve_without_network(self, region: Region) -> S | None:
        return None

    def _validate(self, raw: Any) -> Any | None:
        return positive_number(raw)

    @abstractmethod
    def _static_fallback(self, region: Region) -> Any | None:
        """Return the configured fallback value, or ``None`` when none is configured."""

    @abstractmethod
    def _build_snapshot(self, region: Region, value: Any, source: str) -> S:
        """Wrap a validated value in an immutable snapshot."""


__all__ = [
    "RateProvider",
    "RateSource",
    "SOURCE_FAILURES",
    "as_mapping",
    "get_json",
    "positive_number",
    "require_key",
    "utcnow",
]
