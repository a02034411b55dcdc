"""Market-region classification for ticker batches.

A ticker is assigned to India or the USA from its exchange suffix, its
exchange prefix, or membership in a curated symbol set, defaulting to the USA.
A batch must resolve to exactly one region; mixing regions would blend two
currencies and tax regimes into one report, so it is rejected outright.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable, Mapping

from esop_analytics.core.errors import MixedRegionError, ValidationError
from esop_analytics.models import Region

logger = logging.getLogger(__name__)

INDIA_SUFFIXES = (".NS", ".BO")
INDIA_PREFIXES = ("NSE:", "BSE:")
USA_SUFFIXES: tuple[str, ...] = ()
USA_PREFIXES = ("NASDAQ:", "NYSE:", "AMEX:")

KNOWN_INDIAN_TICKERS = frozenset(
    {
        "INFY", "TCS", "HDFCBANK", "ICICIBANK", "RELIANCE", "SBIN",
        "BHARTIARTL", "ITC", "LT", "WIPRO", "AXISBANK", "KOTAKBANK",
        "HINDUNILVR", "ASIANPAINT", "MARUTI", "TITAN", "BAJFINANCE",
        "SUNPHARMA", "NESTLEIND", "ULTRACEMCO", "TECHM", "HCLTECH",
        "POWERGRID", "NTPC", "ONGC", "COALINDIA", "GRASIM", "JSWSTEEL",
        "TATASTEEL", "HINDALCO", "ADANIPORTS", "M&M", "BAJAJFINSV",
        "TATAMOTORS", "DIVISLAB", "DRREDDY", "CIPLA", "EICHERMOT",
        "BRITANNIA", "SHREECEM", "BPCL", "IOC", "HEROMOTOCO",
    }
)

KNOWN_US_TICKERS = frozenset(
    {
        "AAPL", "MSFT", "GOOGL", "GOOG", "AMZN", "TSLA", "META", "FB",
        "NVDA", "BRK.B", "BRK.A", "V", "JNJ", "WMT", "JPM", "MA",
        "PG", "UNH", "DIS", "HD", "BAC", "XOM", "ADBE", "NFLX",
        "CRM", "CSCO", "PFE", "KO", "ABT", "TMO", "COST", "MRK",
        "AVGO", "NKE", "INTC", "WFC", "DHR", "VZ", "CMCSA", "TXN",
        "QCOM", "UPS", "NEE", "AMD", "PM", "HON", "ORCL", "LIN",
        "BMY", "IBM", "INTU", "BA", "GE", "SBUX", "CAT", "PYPL",
    }
)

REGION_CURRENCIES: Mapping[Region, str] = {Region.INDIA: "INR", Region.USA: "USD"}
REGION_EXCHANGES: Mapping[Region, str] = {Region.INDIA: "NSE/BSE", Region.USA: "NASDAQ/NYSE"}


@dataclass(frozen=True)
class RegionClassification:
    region: Region
    currency: str
    assignments: dict[str, Region]
    summary: dict[str, float]


def normalize_ticker(ticker: str) -> str:
    if not isinstance(ticker, str) or not ticker.strip():
        raise ValidationError("Invalid ticker: must be a non-empty string", details={"ticker": ticker})
    return ticker.strip().upper()


def base_symbol(ticker: str) -> str:
    """Strip any exchange prefix and suffix from a normalized ticker."""

    symbol = ticker.split(":", 1)[-1]
    return symbol.split(".", 1)[0]


def classify_ticker(ticker: str) -> Region:
    """Return the market region a single ticker belongs to."""

    normalized = normalize_ticker(ticker)

    if normalized.endswith(INDIA_SUFFIXES):
        return Region.INDIA
    if normalized.startswith(INDIA_PREFIXES):
        return Region.INDIA
    base = base_symbol(normalized)
    if base in KNOWN_INDIAN_TICKERS:
        return Region.INDIA

    if USA_SUFFIXES and normalized.endswith(USA_SUFFIXES):
        return Region.USA
    if normalized.startswith(USA_PREFIXES):
        return Region.USA
    if normalized in KNOWN_US_TICKERS or base in KNOWN_US_TICKERS:
        return Region.USA

    # Bare US listings carry no suffix; anything unrecognized lands here too
    return Region.USA


def classify_batch(tickers: Iterable[str]) -> RegionClassification:
    """Classify every ticker and require the batch to share one region.

    Raises:
        ValidationError: when the batch is empty or holds an invalid ticker.
        MixedRegionError: when tickers resolve to more than one region.
    """

    assignments: dict[str, Region] = {}
    for ticker in tickers:
        assignments[ticker] = classify_ticker(ticker)
    if not assignments:
        raise ValidationError("Tickers must be a non-empty collection")

    breakdown: dict[str, list[str]] = {region.value: [] for region in Region}
    for ticker, region in assignments.items():
        breakdown[region.value].append(ticker)

    total = len(assignments)
    summary: dict[str, float] = {"total_tickers": total}
    for region in Region:
        count = len(breakdown[region.value])
        summary[f"{region.value}_tickers"] = count
        summary[f"{region.value}_percentage"] = round(count / total * 100)

    present = [region for region in Region if breakdown[region.value]]
    if len(present) > 1:
        counts = ", ".join(f"{len(breakdown[r.value])} {r.value}" for r in present)
        logger.warning("Rejecting mixed-region batch: %s", counts)
        raise MixedRegionError(
            f"Holdings contain tickers from multiple regions ({counts}); "
            "all tickers in a batch must belong to the same region.",
            breakdown={region.value: breakdown[region.value] for region in present},
        )

    region = present[0]
    return RegionClassification(
        region=region,
        currency=currency_for_region(region),
        assignments=assignments,
        summary=summary,
    )


def currency_for_region(region: Region) -> str:
    return REGION_CURRENCIES[Region(region)]


def primary_exchange_for_region(region: Region) -> str:
    return REGION_EXCHANGES[Region(region)]


__all__ = [
    "KNOWN_INDIAN_TICKERS",
    "KNOWN_US_TICKERS",
    "RegionClassification",
    "classify_batch",
    "classify_ticker",
    "currency_for_region",
    "primary_exchange_for_region",
]
