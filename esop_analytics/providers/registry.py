"""Wiring for the rate and benchmark providers sharing one cache."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass

import httpx

from esop_analytics.config import AppSettings
from esop_analytics.models import CurrencySnapshot, InflationSnapshot, Region, TaxSnapshot
from esop_analytics.providers.cache import RateCache, build_rate_cache
from esop_analytics.providers.currency import CurrencyRateProvider, build_currency_provider
from esop_analytics.providers.history import BenchmarkProvider, build_benchmark_provider
from esop_analytics.providers.inflation import InflationRateProvider, build_inflation_provider
from esop_analytics.providers.tax import TaxRateProvider, build_tax_provider


@dataclass(frozen=True)
class RateBundle:
    tax: TaxSnapshot
    inflation: InflationSnapshot
    currency: CurrencySnapshot


@dataclass
class RateProviders:
    tax: TaxRateProvider
    inflation: InflationRateProvider
    currency: CurrencyRateProvider
    cache: RateCache
    benchmark: BenchmarkProvider | None = None

    async def resolve(self, region: Region) -> RateBundle:
        """Fetch all three snapshots for ``region`` concurrently."""

        tax, inflation, currency = await asyncio.gather(
            self.tax.get(region),
            self.inflation.get(region),
            self.currency.get(region),
        )
        return RateBundle(tax=tax, inflation=inflation, currency=currency)


def build_rate_providers(
    settings: AppSettings,
    *,
    cache: RateCache | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> RateProviders:
    cache = cache if cache is not None else build_rate_cache(settings)
    return RateProviders(
        tax=build_tax_provider(settings, cache, transport=transport),
        inflation=build_inflation_provider(settings, cache, transport=transport),
        currency=build_currency_provider(settings, cache, transport=transport),
        cache=cache,
        benchmark=build_benchmark_provider(settings, cache, transport=transport),
    )


__all__ = ["RateBundle", "RateProviders", "build_rate_providers"]
