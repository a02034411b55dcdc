"""Latest-price lookups for holdings.

The engine only needs a ticker -> quote mapping. A failed lookup for one
ticker leaves that ticker out of the mapping and never aborts the others.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone
from typing import Any, Iterable, Mapping, Protocol

import httpx

from esop_analytics.core.errors import SourceError
from esop_analytics.models import Quote
from esop_analytics.providers.base import SOURCE_FAILURES, as_mapping, get_json, positive_number

logger = logging.getLogger(__name__)

YAHOO_CHART_URL = "https://query1.finance.yahoo.com/v8/finance/chart/{symbol}"
_YAHOO_HEADERS = {"User-Agent": "Mozilla/5.0"}


class PriceOracle(Protocol):
    """Pluggable price provider."""

    async def get_quotes(self, tickers: Iterable[str]) -> dict[str, Quote]:
        ...


def yahoo_symbol(ticker: str) -> str:
    """Translate exchange-qualified tickers into Yahoo Finance symbols."""

    normalized = ticker.strip().upper()
    if normalized.startswith("NSE:"):
        return normalized[4:] + ".NS"
    if normalized.startswith("BSE:"):
        return normalized[4:] + ".BO"
    for prefix in ("NASDAQ:", "NYSE:", "AMEX:"):
        if normalized.startswith(prefix):
            normalized = normalized[len(prefix):]
            break
    if "." in normalized and not normalized.endswith((".NS", ".BO")):
        # Share classes such as BRK.B are dash-separated on Yahoo
        normalized = normalized.replace(".", "-")
    return normalized


async def fetch_chart(
    client: httpx.AsyncClient, symbol: str, *, range_: str = "5d", interval: str = "1d"
) -> dict[str, Any]:
    """Return the first chart result for ``symbol``; meta plus any timestamp and indicator arrays."""

    payload = await get_json(
        client,
        YAHOO_CHART_URL.format(symbol=symbol),
        params={"interval": interval, "range": range_},
        headers=_YAHOO_HEADERS,
    )
    chart = as_mapping(payload.get("chart"), f"Yahoo chart for {symbol}")
    results = chart.get("result") or []
    if not isinstance(results, list) or not results:
        error = chart.get("error")
        description = error.get("description", "unknown") if isinstance(error, dict) else "unknown"
        raise SourceError(f"Yahoo chart has no result for {symbol}: {description}")
    return as_mapping(results[0], f"Yahoo chart result for {symbol}")


async def fetch_chart_meta(client: httpx.AsyncClient, symbol: str) -> dict[str, Any]:
    result = await fetch_chart(client, symbol)
    return as_mapping(result.get("meta") or {}, f"Yahoo chart meta for {symbol}")


def _timestamp(raw: Any) -> datetime | None:
    if isinstance(raw, (int, float)) and not isinstance(raw, bool):
        return datetime.fromtimestamp(raw, tz=timezone.utc)
    return None


class YahooPriceOracle:
    """Concurrent per-ticker quote lookups against the Yahoo Finance chart API."""

    def __init__(
        self,
        *,
        timeout_seconds: float = 8.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.timeout_seconds = timeout_seconds
        self._transport = transport

    async def get_quotes(self, tickers: Iterable[str]) -> dict[str, Quote]:
        unique = list(dict.fromkeys(ticker for ticker in tickers if ticker))
        if not unique:
            return {}
        logger.info("Fetching quotes for %d symbols", len(unique))
        async with httpx.AsyncClient(timeout=self.timeout_seconds, transport=self._transport) as client:
            results = await asyncio.gather(*(self._quote(client, ticker) for ticker in unique))
        return {quote.symbol: quote for quote in results if quote is not None}

    async def _quote(self, client: httpx.AsyncClient, ticker: str) -> Quote | None:
        try:
            meta = await fetch_chart_meta(client, yahoo_symbol(ticker))
        except SOURCE_FAILURES as exc:
            logger.warning("Quote lookup failed for %s: %s", ticker, exc)
            return None
        price = positive_number(meta.get("regularMarketPrice"))
        if price is None:
            logger.warning("Quote for %s carried no usable price", ticker)
            return None
        return Quote(
            symbol=ticker,
            price=price,
            previous_close=positive_number(meta.get("chartPreviousClose") or meta.get("previousClose")),
            timestamp=_timestamp(meta.get("regularMarketTime")),
        )


class InMemoryPriceOracle:
    """Simple price oracle for tests and examples."""

    def __init__(self, prices: Mapping[str, float | Quote]):
        self._quotes: dict[str, Quote] = {}
        for ticker, value in prices.items():
            if isinstance(value, Quote):
                self._quotes[ticker] = value
            else:
                self._quotes[ticker] = Quote(symbol=ticker, price=float(value))
        self.calls: list[list[str]] = []

    async def get_quotes(self, tickers: Iterable[str]) -> dict[str, Quote]:
        requested = list(tickers)
        self.calls.append(requested)
        return {ticker: self._quotes[ticker] for ticker in requested if ticker in self._quotes}


__all__ = [
    "InMemoryPriceOracle",
    "PriceOracle",
    "YahooPriceOracle",
    "fetch_chart",
    "fetch_chart_meta",
    "yahoo_symbol",
]
