"""Inflation rate provider backed by FRED, the World Bank and Trading Economics.

Every source answers with an annual CPI inflation percentage; snapshots store
it as a decimal fraction.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Callable, Mapping, Sequence

import httpx

from esop_analytics.config import AppSettings
from esop_analytics.core.errors import SourceError
from esop_analytics.models import InflationSnapshot, RateKind, Region
from esop_analytics.providers.base import (
    RateProvider,
    RateSource,
    as_mapping,
    get_json,
    positive_number,
    require_key,
    utcnow,
)
from esop_analytics.providers.cache import RateCache

FRED_URL = "https://api.stlouisfed.org/fred/series/observations"
FRED_US_CPI_SERIES = "FPCPITOTLZGUSA"
WORLD_BANK_URL = "https://api.worldbank.org/v2/country/{country}/indicator/FP.CPI.TOTL.ZG"
TRADING_ECONOMICS_URL = "https://api.tradingeconomics.com/country/{country}/indicator/inflation rate"

WORLD_BANK_COUNTRIES = {Region.INDIA: "IN", Region.USA: "US"}
TRADING_ECONOMICS_COUNTRIES = {Region.INDIA: "india", Region.USA: "united states"}


def fred_source(api_key: str | None) -> RateSource:
    async def fetch_fred(region: Region, client: httpx.AsyncClient) -> Any:
        payload = await get_json(
            client,
            FRED_URL,
            params={
                "series_id": FRED_US_CPI_SERIES,
                "api_key": require_key(api_key, "FRED_API_KEY"),
                "file_type": "json",
                "sort_order": "desc",
                "limit": 1,
            },
        )
        observations = payload.get("observations") or []
        if not isinstance(observations, list) or not observations:
            raise SourceError("FRED returned no observations")
        # FRED marks missing observations with "."
        return positive_number(as_mapping(observations[0], "FRED observation").get("value"))

    return RateSource(name="fred", fetch=fetch_fred, regions=frozenset({Region.USA}))


def world_bank_source() -> RateSource:
    async def fetch_world_bank(region: Region, client: httpx.AsyncClient) -> Any:
        url = WORLD_BANK_URL.format(country=WORLD_BANK_COUNTRIES[region])
        payload = await get_json(
            client, url, params={"format": "json", "mrnev": 1, "per_page": 1}, expect=list
        )
        if len(payload) < 2 or not isinstance(payload[1], list) or not payload[1]:
            raise SourceError("World Bank response carried no data page")
        return as_mapping(payload[1][0], "World Bank observation").get("value")

    return RateSource(name="world_bank", fetch=fetch_world_bank)


def trading_economics_source(api_key: str | None) -> RateSource:
    async def fetch_trading_economics(region: Region, client: httpx.AsyncClient) -> Any:
        url = TRADING_ECONOMICS_URL.format(country=TRADING_ECONOMICS_COUNTRIES[region])
        payload = await get_json(
            client,
            url,
            params={"c": require_key(api_key, "TRADING_ECONOMICS_API_KEY"), "f": "json"},
            expect=list,
        )
        if not payload:
            raise SourceError("Trading Economics returned no rows")
        row = as_mapping(payload[0], "Trading Economics row")
        return row.get("LatestValue", row.get("Value"))

    return RateSource(name="trading_economics", fetch=fetch_trading_economics)


def default_inflation_sources(settings: AppSettings) -> list[RateSource]:
    return [
        fred_source(settings.fred_api_key),
        world_bank_source(),
        trading_economics_source(settings.trading_economics_api_key),
    ]


class InflationRateProvider(RateProvider[InflationSnapshot]):
    kind = RateKind.INFLATION

    def __init__(
        self,
        sources: Sequence[RateSource],
        cache: RateCache,
        *,
        fallback_pct: Mapping[Region, float] | None = None,
        now: Callable[[], datetime] = utcnow,
        **kwargs: Any,
    ) -> None:
        super().__init__(sources, cache, now=now, **kwargs)
        self._fallback_pct = dict(fallback_pct or {})

    def _static_fallback(self, region: Region) -> Any | None:
        return positive_number(self._fallback_pct.get(region))

    def _build_snapshot(self, region: Region, value: Any, source: str) -> InflationSnapshot:
        fetched_at = self._now()
        return InflationSnapshot(
            region=region,
            rate=float(value) / 100.0,
            year=fetched_at.year,
            fetched_at=fetched_at,
            source=source,
        )


def adjust_for_inflation(value: float, inflation_rate: float, years: float) -> float:
    """Discount a nominal value to today's money: ``value / (1 + rate) ** years``."""

    if years <= 0:
        return value
    return value / (1 + inflation_rate) ** years


def build_inflation_provider(
    settings: AppSettings,
    cache: RateCache,
    *,
    transport: httpx.AsyncBaseTransport | None = None,
) -> InflationRateProvider:
    return InflationRateProvider(
        default_inflation_sources(settings),
        cache,
        fallback_pct={
            Region.INDIA: settings.india_inflation_fallback_pct,
            Region.USA: settings.usa_inflation_fallback_pct,
        },
        timeout_seconds=settings.rate_source_timeout_seconds,
        transport=transport,
    )


__all__ = [
    "InflationRateProvider",
    "adjust_for_inflation",
    "build_inflation_provider",
    "default_inflation_sources",
    "fred_source",
    "trading_economics_source",
    "world_bank_source",
]
