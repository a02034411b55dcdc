"""Benchmark statistics and per-ticker history tests."""

from __future__ import annotations

import math

import httpx
import pandas as pd
import pytest

from esop_analytics.config import AppSettings
from esop_analytics.models import RateKind, Region
from esop_analytics.providers.cache import RateCache
from esop_analytics.providers.history import (
    STATIC_BENCHMARKS,
    YahooHistoryOracle,
    annualized_volatility,
    build_benchmark_provider,
    closes_from_chart,
    compound_annual_growth,
    sharpe_ratio,
    trailing_returns,
)

from conftest import DAY_SECONDS, FIXED_NOW, daily_chart


def _series(*closes: float, step_days: int = 1) -> pd.Series:
    index = pd.date_range(end=pd.Timestamp(FIXED_NOW), periods=len(closes), freq=f"{step_days}D")
    return pd.Series(closes, index=index)


def _symbol(request: httpx.Request) -> str:
    return request.url.path.rsplit("/", 1)[-1]


def test_compound_annual_growth():
    assert compound_annual_growth(_series(100.0, 121.0), 2) == pytest.approx(10.0)
    assert compound_annual_growth(_series(100.0), 1) is None
    assert compound_annual_growth(_series(100.0, 121.0), 0) is None


def test_volatility_of_alternating_returns():
    volatility = annualized_volatility(_series(100.0, 110.0, 100.0, 110.0, 100.0))
    assert volatility == pytest.approx(math.log(1.1) * math.sqrt(252) * 100)


def test_steady_growth_has_no_volatility_or_sharpe():
    closes = _series(*(100.0 * 1.001**day for day in range(30)))
    assert annualized_volatility(closes) == pytest.approx(0.0, abs=1e-9)
    assert sharpe_ratio(10.0, 0.0) is None
    assert sharpe_ratio(None, 12.0) is None
    assert sharpe_ratio(10.0, 5.0, risk_free_pct=4.0) == pytest.approx(1.2)


def test_trailing_returns_cover_only_the_available_history():
    full = closes_from_chart(daily_chart(10.0, days=3650)["chart"]["result"][0], "FULL")
    short = closes_from_chart(daily_chart(10.0, days=730)["chart"]["result"][0], "SHORT")

    assert trailing_returns(full, FIXED_NOW) == {
        "year1": pytest.approx(10.0),
        "year3": pytest.approx(10.0),
        "year5": pytest.approx(10.0),
        "year10": pytest.approx(10.0),
    }
    assert list(trailing_returns(short, FIXED_NOW)) == ["year1"]


def test_closes_prefer_adjusted_and_drop_unusable_points():
    end = int(FIXED_NOW.timestamp())
    result = {
        "timestamp": [end - 3 * DAY_SECONDS, end - 2 * DAY_SECONDS, end - DAY_SECONDS, end],
        "indicators": {
            "quote": [{"close": [200.0, 210.0, 220.0, 230.0]}],
            "adjclose": [{"adjclose": [100.0, None, -5.0, 115.0]}],
        },
    }

    closes = closes_from_chart(result, "AAPL")

    assert closes.tolist() == [100.0, 115.0]
    assert closes.index[-1] == pd.Timestamp(FIXED_NOW)

    del result["indicators"]["adjclose"]
    assert closes_from_chart(result, "AAPL").tolist() == [200.0, 210.0, 220.0, 230.0]


def _benchmark_provider(handler, clock):
    cache = RateCache({RateKind.BENCHMARK: 3600}, clock=clock)
    return build_benchmark_provider(
        AppSettings(_env_file=None),
        cache,
        transport=httpx.MockTransport(handler),
        now=lambda: FIXED_NOW,
    )


@pytest.mark.asyncio
async def test_benchmarks_are_computed_from_history_and_cached(fake_clock):
    requested: list[str] = []

    def handler(request: httpx.Request) -> httpx.Response:
        symbol = _symbol(request)
        requested.append(symbol)
        assert request.url.params["range"] == "10y"
        if symbol == "^GSPC":
            return httpx.Response(200, json=daily_chart(10.0, days=3650))
        if symbol == "^IXIC":
            return httpx.Response(200, json=daily_chart(15.0, days=3650, wiggle=True))
        return httpx.Response(404)

    provider = _benchmark_provider(handler, fake_clock)
    snapshot = await provider.get(Region.USA)

    assert snapshot.source == "yahoo_history"
    assert snapshot.fetched_at == FIXED_NOW
    assert (snapshot.primary.name, snapshot.primary.symbol) == ("S&P 500", "^GSPC")
    assert snapshot.primary.cagr == pytest.approx(10.0, abs=0.05)
    assert snapshot.primary.volatility == pytest.approx(0.0, abs=0.01)
    assert snapshot.primary.sharpe is None
    assert snapshot.primary.returns["year5"] == pytest.approx(10.0)

    secondary = snapshot.secondary
    assert secondary.symbol == "^IXIC"
    assert secondary.returns == {
        "year1": pytest.approx(15.0),
        "year3": pytest.approx(15.0),
        "year5": pytest.approx(15.0),
        "year10": pytest.approx(15.0),
    }
    assert secondary.volatility > 0
    assert secondary.sharpe == pytest.approx(secondary.cagr / secondary.volatility, abs=0.02)

    await provider.get(Region.USA)
    assert sorted(requested) == ["^GSPC", "^IXIC"]


@pytest.mark.asyncio
async def test_one_missing_index_falls_back_to_static_table(fake_clock):
    def handler(request: httpx.Request) -> httpx.Response:
        if _symbol(request) == "^NSEI":
            return httpx.Response(200, json=daily_chart(12.0, days=3650))
        return httpx.Response(500)

    snapshot = await _benchmark_provider(handler, fake_clock).get(Region.INDIA)

    assert snapshot.source == "static_table"
    assert (snapshot.primary, snapshot.secondary) == STATIC_BENCHMARKS[Region.INDIA]
    assert snapshot.primary.cagr == 12.5


@pytest.mark.parametrize(
    "result",
    [
        {"indicators": {"quote": [{"close": [100.0, 110.0]}]}},
        {"timestamp": [1, 2, 3], "indicators": {"quote": [{"close": [100.0, 110.0]}]}},
        {"timestamp": [1, 2], "indicators": {"quote": [{"close": [None, None]}]}},
        {"timestamp": [1, 2], "indicators": ["close"]},
        {"timestamp": [1, 2], "indicators": {"quote": ["close"]}},
    ],
)
@pytest.mark.asyncio
async def test_malformed_history_uses_static_table(fake_clock, result):
    body = {"chart": {"result": [result], "error": None}}
    snapshot = await _benchmark_provider(lambda request: httpx.Response(200, json=body), fake_clock).get(Region.USA)

    assert snapshot.source == "static_table"
    assert snapshot.primary.name == "S&P 500"


@pytest.mark.asyncio
async def test_history_shorter_than_a_year_uses_static_table(fake_clock):
    transport_body = daily_chart(10.0, days=200)
    snapshot = await _benchmark_provider(lambda request: httpx.Response(200, json=transport_body), fake_clock).get(
        Region.USA
    )

    assert snapshot.source == "static_table"


@pytest.mark.asyncio
async def test_symbol_history_skips_failures_and_caches(fake_clock):
    requested: list[str] = []

    def handler(request: httpx.Request) -> httpx.Response:
        symbol = _symbol(request)
        requested.append(symbol)
        if symbol == "AAPL":
            return httpx.Response(200, json=daily_chart(10.0, days=3650))
        if symbol == "INFY.NS":
            return httpx.Response(200, json=daily_chart(8.0, days=730))
        return httpx.Response(404)

    oracle = YahooHistoryOracle(
        ttl_seconds=60,
        transport=httpx.MockTransport(handler),
        clock=fake_clock,
        now=lambda: FIXED_NOW,
    )
    history = await oracle.get_history(["AAPL", "NSE:INFY", "GONE", "AAPL"])

    assert list(history) == ["AAPL", "NSE:INFY"]
    assert history["AAPL"].returns["year10"] == pytest.approx(10.0)
    assert history["AAPL"].period_years == pytest.approx(9.99, abs=0.01)
    infy = history["NSE:INFY"]
    assert list(infy.returns) == ["year1"]
    assert infy.period_cagr == pytest.approx(8.0, abs=0.05)
    assert infy.last_close == pytest.approx(100.0 * 1.08**2)
    assert sorted(requested) == ["AAPL", "GONE", "INFY.NS"]

    await oracle.get_history(["AAPL"])
    assert len(requested) == 3

    fake_clock.advance(61)
    await oracle.get_history(["AAPL"])
    assert requested[-1] == "AAPL"
    assert len(requested) == 4
