"""Price-history statistics: index benchmarks per region and trailing growth per ticker.

Histories come from the Yahoo Finance chart API. Benchmarks resolve through
the same source chain and cache as the other rates, falling back to the
static table below when no history can be fetched.
"""

from __future__ import annotations

import asyncio
import logging
import math
import time
from datetime import datetime
from typing import Any, Callable, Iterable, Mapping, MutableMapping, Protocol, Sequence

import httpx
import numpy as np
import pandas as pd

from esop_analytics.config import AppSettings
from esop_analytics.core.errors import SourceError
from esop_analytics.models import Benchmark, BenchmarkSnapshot, RateKind, Region, SymbolHistory
from esop_analytics.providers.base import SOURCE_FAILURES, RateProvider, RateSource, as_mapping, utcnow
from esop_analytics.providers.cache import Clock, RateCache
from esop_analytics.providers.prices import fetch_chart, yahoo_symbol

logger = logging.getLogger(__name__)

TRADING_DAYS_PER_YEAR = 252
HORIZONS_YEARS = (1, 3, 5, 10)
# A horizon is reported only when the history starts within this many days of its cutoff
HORIZON_TOLERANCE_DAYS = 15
MIN_BENCHMARK_SPAN_YEARS = 1.0
_SECONDS_PER_YEAR = 365.25 * 24 * 60 * 60

BENCHMARK_SYMBOLS: Mapping[Region, tuple[tuple[str, str], tuple[str, str]]] = {
    Region.USA: (("^GSPC", "S&P 500"), ("^IXIC", "NASDAQ Composite")),
    Region.INDIA: (("^NSEI", "Nifty 50"), ("^BSESN", "BSE Sensex")),
}

STATIC_BENCHMARKS: Mapping[Region, tuple[Benchmark, Benchmark]] = {
    Region.USA: (Benchmark(name="S&P 500", cagr=10.2), Benchmark(name="Nasdaq 100", cagr=14.5)),
    Region.INDIA: (Benchmark(name="Nifty 50", cagr=12.5), Benchmark(name="Nifty Midcap 150", cagr=16.2)),
}


def _first_row(indicators: Mapping[str, Any], key: str, symbol: str) -> Any:
    rows = indicators.get(key)
    if not isinstance(rows, list) or not rows:
        return None
    return as_mapping(rows[0], f"Yahoo {key} indicators for {symbol}")


def closes_from_chart(result: Mapping[str, Any], symbol: str) -> pd.Series:
    """Build a UTC-indexed close series from a chart result, preferring adjusted closes.

    Null, non-numeric and non-positive closes are dropped. Raises ``SourceError``
    when fewer than two usable points remain.
    """

    timestamps = result.get("timestamp")
    indicators = as_mapping(result.get("indicators") or {}, f"Yahoo indicators for {symbol}")
    closes = None
    adjusted = _first_row(indicators, "adjclose", symbol)
    if adjusted is not None:
        closes = adjusted.get("adjclose")
    if closes is None:
        quote = _first_row(indicators, "quote", symbol)
        closes = quote.get("close") if quote is not None else None
    if not isinstance(timestamps, list) or not isinstance(closes, list) or len(timestamps) != len(closes):
        raise SourceError(f"Yahoo history for {symbol} has no aligned timestamp and close arrays")

    index = pd.DatetimeIndex(pd.to_datetime(pd.to_numeric(pd.Series(timestamps), errors="coerce"), unit="s", utc=True))
    values = pd.to_numeric(pd.Series(closes), errors="coerce").to_numpy(dtype=float)
    finite = np.isfinite(values)
    mask = finite & (np.where(finite, values, 0.0) > 0) & ~index.isna()
    series = pd.Series(values[mask], index=index[mask], name=symbol).sort_index()
    series = series[~series.index.duplicated(keep="last")]
    if len(series) < 2:
        raise SourceError(f"Yahoo history for {symbol} has fewer than two usable closes")
    return series


async def fetch_history(
    client: httpx.AsyncClient, symbol: str, *, range_: str = "10y", interval: str = "1d"
) -> pd.Series:
    result = await fetch_chart(client, symbol, range_=range_, interval=interval)
    return closes_from_chart(result, symbol)


def span_years(closes: pd.Series) -> float:
    if len(closes) < 2:
        return 0.0
    return (closes.index[-1] - closes.index[0]).total_seconds() / _SECONDS_PER_YEAR


def compound_annual_growth(closes: pd.Series, years: float) -> float | None:
    """CAGR in percent between the first and last close over ``years``."""

    if len(closes) < 2 or years <= 0:
        return None
    first = float(closes.iloc[0])
    last = float(closes.iloc[-1])
    if first <= 0 or last <= 0:
        return None
    return ((last / first) ** (1 / years) - 1) * 100


def annualized_volatility(closes: pd.Series) -> float | None:
    """Population standard deviation of daily log returns, annualized, in percent."""

    if len(closes) < 2:
        return None
    log_returns = np.log(closes / closes.shift(1)).dropna()
    if log_returns.empty:
        return None
    return float(log_returns.std(ddof=0) * math.sqrt(TRADING_DAYS_PER_YEAR) * 100)


def sharpe_ratio(cagr: float | None, volatility: float | None, risk_free_pct: float = 0.0) -> float | None:
    if cagr is None or not volatility:
        return None
    return (cagr - risk_free_pct) / volatility


def _as_timestamp(now: datetime) -> pd.Timestamp:
    stamp = pd.Timestamp(now)
    return stamp.tz_localize("UTC") if stamp.tzinfo is None else stamp


def trailing_returns(closes: pd.Series, now: datetime) -> dict[str, float]:
    """CAGR over each of the trailing 1, 3, 5 and 10 year windows the history covers."""

    as_of = _as_timestamp(now)
    tolerance = pd.Timedelta(days=HORIZON_TOLERANCE_DAYS)
    returns: dict[str, float] = {}
    for years in HORIZONS_YEARS:
        cutoff = as_of - pd.Timedelta(days=365 * years)
        if closes.empty or closes.index[0] > cutoff + tolerance:
            continue
        cagr = compound_annual_growth(closes[closes.index >= cutoff], years)
        if cagr is not None:
            returns[f"year{years}"] = round(cagr, 2)
    return returns


def benchmark_from_history(
    name: str,
    symbol: str,
    closes: pd.Series,
    *,
    now: datetime,
    risk_free_pct: float = 0.0,
) -> Benchmark:
    years = span_years(closes)
    if years < MIN_BENCHMARK_SPAN_YEARS:
        raise SourceError(f"{symbol} history spans {years:.2f} years; at least {MIN_BENCHMARK_SPAN_YEARS:g} required")
    cagr = compound_annual_growth(closes, years)
    if cagr is None:
        raise SourceError(f"{symbol} history yields no growth rate")
    volatility = annualized_volatility(closes)
    if volatility is not None:
        volatility = round(volatility, 2)
    sharpe = sharpe_ratio(cagr, volatility, risk_free_pct)
    return Benchmark(
        name=name,
        cagr=round(cagr, 2),
        symbol=symbol,
        volatility=volatility,
        sharpe=round(sharpe, 2) if sharpe is not None else None,
        returns=trailing_returns(closes, now),
    )


def yahoo_history_source(
    *,
    range_: str = "10y",
    risk_free_pct: float = 0.0,
    now: Callable[[], datetime] = utcnow,
) -> RateSource:
    async def fetch_benchmarks(region: Region, client: httpx.AsyncClient) -> tuple[Benchmark, Benchmark]:
        pairs = BENCHMARK_SYMBOLS[region]
        histories = await asyncio.gather(
            *(fetch_history(client, symbol, range_=range_) for symbol, _ in pairs),
            return_exceptions=True,
        )
        for outcome in histories:
            if isinstance(outcome, BaseException):
                raise outcome
        as_of = now()
        primary, secondary = (
            benchmark_from_history(name, symbol, closes, now=as_of, risk_free_pct=risk_free_pct)
            for (symbol, name), closes in zip(pairs, histories)
        )
        return primary, secondary

    return RateSource(name="yahoo_history", fetch=fetch_benchmarks, regions=frozenset(BENCHMARK_SYMBOLS))


class BenchmarkProvider(RateProvider[BenchmarkSnapshot]):
    kind = RateKind.BENCHMARK

    def __init__(
        self,
        sources: Sequence[RateSource],
        cache: RateCache,
        *,
        static_table: Mapping[Region, tuple[Benchmark, Benchmark]] | None = STATIC_BENCHMARKS,
        **kwargs: Any,
    ) -> None:
        super().__init__(sources, cache, **kwargs)
        self._static_table = dict(static_table or {})

    def _validate(self, raw: Any) -> Any | None:
        if not isinstance(raw, tuple) or len(raw) != 2:
            return None
        if not all(isinstance(item, Benchmark) and math.isfinite(item.cagr) for item in raw):
            return None
        return raw

    def _static_fallback(self, region: Region) -> Any | None:
        return self._static_table.get(region)

    def _build_snapshot(self, region: Region, value: Any, source: str) -> BenchmarkSnapshot:
        if source == "fallback":
            source = "static_table"
        primary, secondary = value
        return BenchmarkSnapshot(
            region=region,
            primary=primary,
            secondary=secondary,
            fetched_at=self._now(),
            source=source,
        )


def build_benchmark_provider(
    settings: AppSettings,
    cache: RateCache,
    *,
    transport: httpx.AsyncBaseTransport | None = None,
    now: Callable[[], datetime] = utcnow,
) -> BenchmarkProvider:
    return BenchmarkProvider(
        [
            yahoo_history_source(
                range_=settings.benchmark_history_range,
                risk_free_pct=settings.benchmark_risk_free_pct,
                now=now,
            )
        ],
        cache,
        timeout_seconds=settings.price_timeout_seconds,
        transport=transport,
        now=now,
    )


class HistoryOracle(Protocol):
    """Pluggable per-ticker history lookups."""

    async def get_history(self, tickers: Iterable[str]) -> dict[str, SymbolHistory]:
        ...


def symbol_history(ticker: str, closes: pd.Series, now: datetime) -> SymbolHistory:
    years = span_years(closes)
    period_cagr = compound_annual_growth(closes, years) if years >= MIN_BENCHMARK_SPAN_YEARS else None
    return SymbolHistory(
        symbol=ticker,
        returns=trailing_returns(closes, now),
        period_cagr=round(period_cagr, 2) if period_cagr is not None else None,
        period_years=round(years, 2),
        last_close=float(closes.iloc[-1]),
    )


class YahooHistoryOracle:
    """Concurrent per-ticker history lookups with a per-ticker TTL.

    A ticker whose history cannot be fetched or parsed is left out of the
    result and never aborts the others.
    """

    def __init__(
        self,
        *,
        range_: str = "10y",
        ttl_seconds: float = 6 * 60 * 60,
        timeout_seconds: float = 8.0,
        transport: httpx.AsyncBaseTransport | None = None,
        clock: Clock = time.monotonic,
        now: Callable[[], datetime] = utcnow,
    ) -> None:
        self.range_ = range_
        self.ttl_seconds = ttl_seconds
        self.timeout_seconds = timeout_seconds
        self._transport = transport
        self._clock = clock
        self._now = now
        self._entries: MutableMapping[str, tuple[float, SymbolHistory]] = {}

    def _cached(self, ticker: str) -> SymbolHistory | None:
        entry = self._entries.get(ticker)
        if entry is None or self._clock() - entry[0] > self.ttl_seconds:
            return None
        return entry[1]

    async def get_history(self, tickers: Iterable[str]) -> dict[str, SymbolHistory]:
        unique = list(dict.fromkeys(ticker for ticker in tickers if ticker))
        found: dict[str, SymbolHistory] = {}
        missing: list[str] = []
        for ticker in unique:
            cached = self._cached(ticker)
            if cached is None:
                missing.append(ticker)
            else:
                found[ticker] = cached
        if missing:
            logger.info("Fetching price history for %d symbols", len(missing))
            async with httpx.AsyncClient(timeout=self.timeout_seconds, transport=self._transport) as client:
                fetched = await asyncio.gather(*(self._history(client, ticker) for ticker in missing))
            for ticker, history in zip(missing, fetched):
                if history is not None:
                    self._entries[ticker] = (self._clock(), history)
                    found[ticker] = history
        return {ticker: found[ticker] for ticker in unique if ticker in found}

    async def _history(self, client: httpx.AsyncClient, ticker: str) -> SymbolHistory | None:
        try:
            closes = await fetch_history(client, yahoo_symbol(ticker), range_=self.range_)
        except SOURCE_FAILURES as exc:
            logger.warning("History lookup failed for %s: %s", ticker, exc)
            return None
        return symbol_history(ticker, closes, self._now())


def build_history_oracle(settings: AppSettings) -> YahooHistoryOracle:
    return YahooHistoryOracle(
        range_=settings.benchmark_history_range,
        ttl_seconds=settings.history_cache_ttl_seconds,
        timeout_seconds=settings.price_timeout_seconds,
    )


__all__ = [
    "BENCHMARK_SYMBOLS",
    "BenchmarkProvider",
    "HistoryOracle",
    "STATIC_BENCHMARKS",
    "YahooHistoryOracle",
    "annualized_volatility",
    "benchmark_from_history",
    "build_benchmark_provider",
    "build_history_oracle",
    "closes_from_chart",
    "compound_annual_growth",
    "fetch_history",
    "sharpe_ratio",
    "span_years",
    "symbol_history",
    "trailing_returns",
    "yahoo_history_source",
]
