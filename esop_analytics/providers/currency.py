"""USD conversion rates for each region's base currency."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable, Sequence

import httpx

from esop_analytics.config import AppSettings
from esop_analytics.core.errors import ValidationError
from esop_analytics.models import CurrencySnapshot, RateKind, Region
from esop_analytics.providers.base import (
    RateProvider,
    RateSource,
    get_json,
    positive_number,
    require_key,
    utcnow,
)
from esop_analytics.providers.cache import RateCache
from esop_analytics.providers.prices import fetch_chart_meta
from esop_analytics.services.regions import REGION_CURRENCIES, currency_for_region

BASE_CURRENCY = "USD"


def exchangerate_host_source() -> RateSource:
    async def fetch_exchangerate_host(region: Region, client: httpx.AsyncClient) -> Any:
        quote = currency_for_region(region)
        payload = await get_json(
            client,
            "https://api.exchangerate.host/latest",
            params={"base": BASE_CURRENCY, "symbols": quote},
        )
        return payload["rates"][quote]

    return RateSource(name="exchangerate_host", fetch=fetch_exchangerate_host)


def exchangerate_api_source(api_key: str | None) -> RateSource:
    async def fetch_exchangerate_api(region: Region, client: httpx.AsyncClient) -> Any:
        key = require_key(api_key, "EXCHANGERATE_API_KEY")
        payload = await get_json(client, f"https://v6.exchangerate-api.com/v6/{key}/latest/{BASE_CURRENCY}")
        return payload["conversion_rates"][currency_for_region(region)]

    return RateSource(name="exchangerate_api", fetch=fetch_exchangerate_api)


def freecurrency_api_source(api_key: str | None) -> RateSource:
    async def fetch_freecurrency_api(region: Region, client: httpx.AsyncClient) -> Any:
        quote = currency_for_region(region)
        payload = await get_json(
            client,
            "https://api.freecurrencyapi.com/v1/latest",
            params={
                "apikey": require_key(api_key, "FREECURRENCY_API_KEY"),
                "base_currency": BASE_CURRENCY,
                "currencies": quote,
            },
        )
        return payload["data"][quote]

    return RateSource(name="freecurrency_api", fetch=fetch_freecurrency_api)


def currencyapi_source(api_key: str | None) -> RateSource:
    async def fetch_currencyapi(region: Region, client: httpx.AsyncClient) -> Any:
        quote = currency_for_region(region)
        payload = await get_json(
            client,
            "https://api.currencyapi.com/v3/latest",
            params={
                "apikey": require_key(api_key, "CURRENCYAPI_KEY"),
                "base_currency": BASE_CURRENCY,
                "currencies": quote,
            },
        )
        return payload["data"][quote]["value"]

    return RateSource(name="currencyapi", fetch=fetch_currencyapi)


def yahoo_fx_source() -> RateSource:
    async def fetch_yahoo_fx(region: Region, client: httpx.AsyncClient) -> Any:
        meta = await fetch_chart_meta(client, f"{BASE_CURRENCY}{currency_for_region(region)}=X")
        return meta.get("regularMarketPrice")

    return RateSource(name="yahoo_finance", fetch=fetch_yahoo_fx)


def default_currency_sources(settings: AppSettings) -> list[RateSource]:
    return [
        exchangerate_host_source(),
        exchangerate_api_source(settings.exchangerate_api_key),
        freecurrency_api_source(settings.freecurrency_api_key),
        currencyapi_source(settings.currencyapi_key),
        yahoo_fx_source(),
    ]


@dataclass(frozen=True)
class Conversion:
    original_amount: float
    converted_amount: float
    from_currency: str
    to_currency: str
    rate: float
    fetched_at: datetime
    source: str


class CurrencyRateProvider(RateProvider[CurrencySnapshot]):
    """Resolve USD -> region currency; the USA resolves to the identity pair."""

    kind = RateKind.CURRENCY

    def __init__(
        self,
        sources: Sequence[RateSource],
        cache: RateCache,
        *,
        usd_inr_fallback: float | None = None,
        now: Callable[[], datetime] = utcnow,
        **kwargs: Any,
    ) -> None:
        super().__init__(sources, cache, now=now, **kwargs)
        self._usd_inr_fallback = usd_inr_fallback

    def _resolve_without_network(self, region: Region) -> CurrencySnapshot | None:
        if currency_for_region(region) == BASE_CURRENCY:
            return self._build_snapshot(region, 1.0, "identity")
        return None

    def _static_fallback(self, region: Region) -> Any | None:
        if region is Region.INDIA:
            return positive_number(self._usd_inr_fallback)
        return None

    def _build_snapshot(self, region: Region, value: Any, source: str) -> CurrencySnapshot:
        return CurrencySnapshot(
            region=region,
            base_currency=BASE_CURRENCY,
            quote_currency=currency_for_region(region),
            rate=float(value),
            fetched_at=self._now(),
            source=source,
        )

    async def get_pair(self, from_currency: str, to_currency: str) -> CurrencySnapshot:
        """Return the rate converting one unit of ``from_currency`` into ``to_currency``."""

        source_ccy = from_currency.strip().upper()
        target_ccy = to_currency.strip().upper()
        by_currency = {ccy: region for region, ccy in REGION_CURRENCIES.items()}
        if source_ccy not in by_currency or target_ccy not in by_currency:
            raise ValidationError(
                f"Currency pair {source_ccy}{target_ccy} not supported",
                details={"supported": sorted(by_currency)},
            )
        if source_ccy == target_ccy:
            return CurrencySnapshot(
                region=by_currency[target_ccy],
                base_currency=source_ccy,
                quote_currency=target_ccy,
                rate=1.0,
                fetched_at=self._now(),
                source="identity",
            )
        if source_ccy == BASE_CURRENCY:
            return await self.get(by_currency[target_ccy])
        forward = await self.get(by_currency[source_ccy])
        return CurrencySnapshot(
            region=forward.region,
            base_currency=source_ccy,
            quote_currency=target_ccy,
            rate=1.0 / forward.rate,
            fetched_at=forward.fetched_at,
            source=forward.source,
        )

    async def convert(self, amount: float, from_currency: str, to_currency: str) -> Conversion:
        snapshot = await self.get_pair(from_currency, to_currency)
        return Conversion(
            original_amount=amount,
            converted_amount=amount * snapshot.rate,
            from_currency=snapshot.base_currency,
            to_currency=snapshot.quote_currency,
            rate=snapshot.rate,
            fetched_at=snapshot.fetched_at,
            source=snapshot.source,
        )


def build_currency_provider(
    settings: AppSettings,
    cache: RateCache,
    *,
    transport: httpx.AsyncBaseTransport | None = None,
) -> CurrencyRateProvider:
    return CurrencyRateProvider(
        default_currency_sources(settings),
        cache,
        usd_inr_fallback=settings.usd_inr_fallback_rate,
        timeout_seconds=settings.rate_source_timeout_seconds,
        transport=transport,
    )


__all__ = [
    "Conversion",
    "CurrencyRateProvider",
    "build_currency_provider",
    "currencyapi_source",
    "default_currency_sources",
    "exchangerate_api_source",
    "exchangerate_host_source",
    "freecurrency_api_source",
    "yahoo_fx_source",
]
