"""Rate provider fallback chain and cache tests."""

from __future__ import annotations

import httpx
import pytest

from esop_analytics.config import AppSettings
from esop_analytics.core.errors import RatesUnavailableError, ValidationError
from esop_analytics.models import IndiaTaxSchedule, RateKind, Region, USTaxSchedule
from esop_analytics.providers.cache import RateCache, build_rate_cache
from esop_analytics.providers.currency import CurrencyRateProvider, default_currency_sources
from esop_analytics.providers.inflation import InflationRateProvider, default_inflation_sources
from esop_analytics.providers.tax import TaxRateProvider, remote_schedule_source

from conftest import FIXED_NOW


def _settings(**overrides) -> AppSettings:
    base = {
        "fred_api_key": None,
        "exchangerate_api_key": None,
        "freecurrency_api_key": None,
        "currencyapi_key": None,
        "trading_economics_api_key": None,
    }
    base.update(overrides)
    return AppSettings(_env_file=None, **base)


class RecordingTransport(httpx.MockTransport):
    def __init__(self, handler) -> None:
        self.requests: list[httpx.Request] = []

        def record(request: httpx.Request) -> httpx.Response:
            self.requests.append(request)
            return handler(request)

        super().__init__(record)


def _failing(request: httpx.Request) -> httpx.Response:
    return httpx.Response(500, json={"error": "down"})


def _world_bank(request: httpx.Request) -> httpx.Response:
    if request.url.host == "api.worldbank.org":
        return httpx.Response(200, json=[{"page": 1}, [{"date": "2024", "value": 4.95}]])
    return httpx.Response(404)


def _inflation_provider(cache, transport, **kwargs) -> InflationRateProvider:
    return InflationRateProvider(
        default_inflation_sources(_settings()),
        cache,
        fallback_pct=kwargs.pop("fallback_pct", {Region.INDIA: 5.5, Region.USA: 3.2}),
        transport=transport,
        now=lambda: FIXED_NOW,
        **kwargs,
    )


def _cache(clock) -> RateCache:
    return RateCache({RateKind.TAX: 3600, RateKind.INFLATION: 86400, RateKind.CURRENCY: 300}, clock=clock)


@pytest.mark.asyncio
async def test_inflation_uses_first_working_source(fake_clock):
    transport = RecordingTransport(_world_bank)
    provider = _inflation_provider(_cache(fake_clock), transport)

    snapshot = await provider.get(Region.INDIA)

    assert snapshot.source == "world_bank"
    assert snapshot.rate == pytest.approx(0.0495)
    assert snapshot.year == 2025
    assert snapshot.fetched_at == FIXED_NOW
    # FRED only serves the USA and Trading Economics is never reached
    assert [request.url.host for request in transport.requests] == ["api.worldbank.org"]


@pytest.mark.asyncio
async def test_inflation_falls_back_to_static_rate(fake_clock):
    provider = _inflation_provider(_cache(fake_clock), RecordingTransport(_failing))

    snapshot = await provider.get(Region.USA)

    assert snapshot.source == "fallback"
    assert snapshot.rate == pytest.approx(0.032)


@pytest.mark.asyncio
async def test_exhausted_chain_without_fallback_raises(fake_clock):
    provider = _inflation_provider(
        _cache(fake_clock),
        RecordingTransport(_failing),
        fallback_pct={Region.INDIA: 0.0},
    )

    with pytest.raises(RatesUnavailableError) as excinfo:
        await provider.get(Region.INDIA)

    assert excinfo.value.status_code == 503
    assert excinfo.value.attempted == ["world_bank", "trading_economics"]


@pytest.mark.asyncio
async def test_cache_hit_skips_network_until_ttl_expires(fake_clock):
    transport = RecordingTransport(_world_bank)
    provider = _inflation_provider(_cache(fake_clock), transport)

    first = await provider.get(Region.INDIA)
    fake_clock.advance(3600)
    second = await provider.get(Region.INDIA)
    assert second is first
    assert len(transport.requests) == 1

    fake_clock.advance(86400)
    await provider.get(Region.INDIA)
    assert len(transport.requests) == 2


@pytest.mark.asyncio
async def test_malformed_payload_advances_chain(fake_clock):
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.host == "api.worldbank.org":
            return httpx.Response(200, json={"message": "unexpected"})
        return httpx.Response(200, json=[{"LatestValue": 6.1}])

    settings = _settings(trading_economics_api_key="te-key")
    provider = InflationRateProvider(
        default_inflation_sources(settings),
        _cache(fake_clock),
        transport=RecordingTransport(handler),
        now=lambda: FIXED_NOW,
    )

    snapshot = await provider.get(Region.INDIA)

    assert snapshot.source == "trading_economics"
    assert snapshot.rate == pytest.approx(0.061)


@pytest.mark.parametrize(
    "fred_body",
    [[], "maintenance", 42, {"observations": ["4.1"]}, {"observations": {"value": "4.1"}}],
)
@pytest.mark.asyncio
async def test_wrongly_shaped_json_advances_chain(fake_clock, fred_body):
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.host == "api.stlouisfed.org":
            return httpx.Response(200, json=fred_body)
        return _world_bank(request)

    settings = _settings(fred_api_key="fred-key")
    provider = InflationRateProvider(
        default_inflation_sources(settings),
        _cache(fake_clock),
        transport=RecordingTransport(handler),
        now=lambda: FIXED_NOW,
    )

    snapshot = await provider.get(Region.USA)

    assert snapshot.source == "world_bank"
    assert snapshot.rate == pytest.approx(0.0495)


@pytest.mark.asyncio
async def test_world_bank_rows_must_be_objects(fake_clock):
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.host == "api.worldbank.org":
            return httpx.Response(200, json=[{"page": 1}, ["4.95"]])
        return httpx.Response(200, json=["6.1"])

    provider = InflationRateProvider(
        default_inflation_sources(_settings(trading_economics_api_key="te-key")),
        _cache(fake_clock),
        fallback_pct={Region.INDIA: 5.5},
        transport=RecordingTransport(handler),
        now=lambda: FIXED_NOW,
    )

    snapshot = await provider.get(Region.INDIA)

    assert snapshot.source == "fallback"
    assert snapshot.rate == pytest.approx(0.055)


def _currency_provider(cache, transport, **settings_overrides) -> CurrencyRateProvider:
    return CurrencyRateProvider(
        default_currency_sources(_settings(**settings_overrides)),
        cache,
        usd_inr_fallback=83.0,
        transport=transport,
        now=lambda: FIXED_NOW,
    )


@pytest.mark.asyncio
async def test_usa_currency_is_identity_without_network(fake_clock):
    def handler(request: httpx.Request) -> httpx.Response:
        raise AssertionError("no request expected")

    provider = _currency_provider(_cache(fake_clock), httpx.MockTransport(handler))

    snapshot = await provider.get(Region.USA)

    assert snapshot.rate == 1.0
    assert snapshot.pair == "USDUSD"
    assert snapshot.source == "identity"


@pytest.mark.asyncio
async def test_currency_skips_invalid_rate_and_keyless_sources(fake_clock):
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.host == "api.exchangerate.host":
            return httpx.Response(200, json={"rates": {"INR": -1}})
        if request.url.host == "query1.finance.yahoo.com":
            assert request.url.path.endswith("/USDINR=X")
            return httpx.Response(200, json={"chart": {"result": [{"meta": {"regularMarketPrice": 83.42}}]}})
        return httpx.Response(404)

    transport = RecordingTransport(handler)
    provider = _currency_provider(_cache(fake_clock), transport)

    snapshot = await provider.get(Region.INDIA)

    assert snapshot.source == "yahoo_finance"
    assert snapshot.rate == pytest.approx(83.42)
    assert snapshot.pair == "USDINR"
    assert [request.url.host for request in transport.requests] == [
        "api.exchangerate.host",
        "query1.finance.yahoo.com",
    ]


@pytest.mark.asyncio
async def test_currency_fallback_and_pairs(fake_clock):
    provider = _currency_provider(_cache(fake_clock), RecordingTransport(_failing))

    forward = await provider.get_pair("usd", "inr")
    inverse = await provider.get_pair("INR", "USD")
    identity = await provider.get_pair("INR", "INR")
    conversion = await provider.convert(1000, "INR", "USD")

    assert forward.rate == 83.0
    assert forward.source == "fallback"
    assert inverse.rate == pytest.approx(1 / 83.0)
    assert inverse.pair == "INRUSD"
    assert identity.rate == 1.0
    assert conversion.converted_amount == pytest.approx(1000 / 83.0)


@pytest.mark.asyncio
async def test_unsupported_currency_pair_rejected(fake_clock):
    provider = _currency_provider(_cache(fake_clock), RecordingTransport(_failing))

    with pytest.raises(ValidationError):
        await provider.get_pair("USD", "EUR")


@pytest.mark.asyncio
async def test_tax_defaults_to_statutory_schedule(fake_clock):
    provider = TaxRateProvider([], _cache(fake_clock), now=lambda: FIXED_NOW)

    india = await provider.get(Region.INDIA)
    usa = await provider.get(Region.USA)

    assert india.source == "statutory_schedule"
    assert isinstance(india.schedule, IndiaTaxSchedule)
    assert india.schedule.ltcg_rate == 0.125
    assert india.schedule.fiscal_year == "FY 2025-2026"
    assert isinstance(usa.schedule, USTaxSchedule)
    assert usa.schedule.tax_year == 2025
    assert usa.holding_period_months == 12


@pytest.mark.asyncio
async def test_tax_reads_remote_schedule(fake_clock):
    document = {
        "india": {
            "stcg_rate": 0.2,
            "ltcg_rate": 0.125,
            "surcharge": [{"upper": 5000000, "rate": 0.0}, {"upper": None, "rate": 0.1}],
            "cess_rate": 0.04,
            "holding_period_months": 12,
        }
    }

    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json=document)

    provider = TaxRateProvider(
        [remote_schedule_source("https://rates.example.com/tax.json")],
        _cache(fake_clock),
        transport=httpx.MockTransport(handler),
        now=lambda: FIXED_NOW,
    )

    snapshot = await provider.get(Region.INDIA)

    assert snapshot.source == "remote_tax_table"
    assert snapshot.schedule.stcg_rate == 0.2


@pytest.mark.asyncio
async def test_tax_without_fallback_raises(fake_clock):
    provider = TaxRateProvider(
        [remote_schedule_source("https://rates.example.com/tax.json")],
        _cache(fake_clock),
        static_fallback=False,
        transport=httpx.MockTransport(_failing),
    )

    with pytest.raises(RatesUnavailableError):
        await provider.get(Region.USA)


def test_build_rate_cache_uses_configured_ttls(fake_clock):
    cache = build_rate_cache(_settings(currency_cache_ttl_seconds=10), clock=fake_clock)

    cache.put(Region.INDIA, RateKind.CURRENCY, "snapshot")
    fake_clock.advance(10)
    assert cache.get(Region.INDIA, RateKind.CURRENCY) == "snapshot"
    fake_clock.advance(1)
    assert cache.get(Region.INDIA, RateKind.CURRENCY) is None

    cache.invalidate(region=Region.INDIA)
    assert len(cache) == 0


def _remote_tax_provider(cache, document) -> TaxRateProvider:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json=document)

    return TaxRateProvider(
        [remote_schedule_source("https://rates.example.com/tax.json")],
        cache,
        transport=httpx.MockTransport(handler),
        now=lambda: FIXED_NOW,
    )


INDIA_DOCUMENT = {
    "stcg_rate": 0.2,
    "ltcg_rate": 0.125,
    "surcharge": [{"upper": 5000000, "rate": 0.0}, {"upper": None, "rate": 0.1}],
    "cess_rate": 0.04,
}


@pytest.mark.parametrize(
    "overrides",
    [
        {"stcg_rate": -0.15},
        {"ltcg_rate": 12.5},
        {"cess_rate": "NaN"},
        {"surcharge": [{"upper": None, "rate": 1.37}]},
        {"surcharge": {"upper": None, "rate": 0.1}},
    ],
)
@pytest.mark.asyncio
async def test_remote_tax_rates_out_of_range_use_statutory_schedule(fake_clock, overrides):
    provider = _remote_tax_provider(_cache(fake_clock), {"india": {**INDIA_DOCUMENT, **overrides}})

    snapshot = await provider.get(Region.INDIA)

    assert snapshot.source == "statutory_schedule"
    assert snapshot.schedule.stcg_rate == 0.15


@pytest.mark.asyncio
async def test_remote_us_state_rates_must_be_an_object(fake_clock):
    document = {
        "usa": {
            "short_term_federal": [{"upper": None, "rate": 0.3}],
            "long_term_federal": [{"upper": None, "rate": 0.2}],
            "niit": {"rate": 0.038, "threshold_single": 200000, "threshold_married": 250000},
            "state_rates": [["california", 0.133]],
        }
    }
    provider = _remote_tax_provider(_cache(fake_clock), document)

    snapshot = await provider.get(Region.USA)

    assert snapshot.source == "statutory_schedule"
    assert snapshot.schedule.state_rates["median"] == 0.05
