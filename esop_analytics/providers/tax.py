"""Tax rate provider.

India and the USA tax equity gains in different shapes: India applies a flat
short/long-term rate with an income-banded surcharge and a cess on top, the
USA applies federal brackets (ordinary or long-term) plus NIIT and a state
rate. Each region therefore gets its own schedule type.
"""

from __future__ import annotations

from datetime import date, datetime
from typing import Any, Callable, Mapping, Sequence

import httpx

from esop_analytics.config import AppSettings
from esop_analytics.core.errors import SourceError
from esop_analytics.models import (
    Bracket,
    IndiaTaxSchedule,
    RateKind,
    Region,
    TaxSnapshot,
    USTaxSchedule,
)
from esop_analytics.providers.base import RateProvider, RateSource, as_mapping, get_json, utcnow
from esop_analytics.providers.cache import RateCache

HOLDING_PERIOD_MONTHS = 12


def indian_fiscal_year(today: date) -> str:
    """Indian fiscal years run April to March."""

    if today.month >= 4:
        return f"FY {today.year}-{today.year + 1}"
    return f"FY {today.year - 1}-{today.year}"


def statutory_india_schedule(today: date) -> IndiaTaxSchedule:
    return IndiaTaxSchedule(
        stcg_rate=0.15,
        ltcg_rate=0.125,
        surcharge=(
            Bracket(upper=5_000_000, rate=0.0),
            Bracket(upper=10_000_000, rate=0.10),
            Bracket(upper=20_000_000, rate=0.15),
            Bracket(upper=50_000_000, rate=0.25),
            Bracket(upper=None, rate=0.37),
        ),
        cess_rate=0.04,
        stt_delivery_rate=0.001,
        holding_period_months=HOLDING_PERIOD_MONTHS,
        fiscal_year=indian_fiscal_year(today),
    )


def statutory_us_schedule(today: date) -> USTaxSchedule:
    return USTaxSchedule(
        short_term_federal=(
            Bracket(upper=11_000, rate=0.10),
            Bracket(upper=44_725, rate=0.12),
            Bracket(upper=95_375, rate=0.22),
            Bracket(upper=182_100, rate=0.24),
            Bracket(upper=231_250, rate=0.32),
            Bracket(upper=578_125, rate=0.35),
            Bracket(upper=None, rate=0.37),
        ),
        long_term_federal=(
            Bracket(upper=44_625, rate=0.0),
            Bracket(upper=492_300, rate=0.15),
            Bracket(upper=None, rate=0.20),
        ),
        niit_rate=0.038,
        niit_threshold_single=200_000,
        niit_threshold_married=250_000,
        state_rates={"california": 0.133, "texas": 0.0, "newYork": 0.109, "median": 0.05},
        holding_period_months=HOLDING_PERIOD_MONTHS,
        tax_year=today.year,
    )


def statutory_schedule(region: Region, today: date) -> IndiaTaxSchedule | USTaxSchedule:
    if region is Region.INDIA:
        return statutory_india_schedule(today)
    return statutory_us_schedule(today)


def _rate(value: Any, name: str) -> float:
    """Parse a tax rate published as a fraction; anything outside [0, 1] is rejected."""

    rate = float(value)
    if not 0.0 <= rate <= 1.0:
        raise SourceError(f"{name} rate {rate!r} outside [0, 1]")
    return rate


def _brackets(raw: Any, name: str) -> tuple[Bracket, ...]:
    if not isinstance(raw, list):
        raise SourceError(f"{name} must be a list of brackets")
    brackets = tuple(
        Bracket(
            upper=None if as_mapping(item, name).get("upper") is None else float(item["upper"]),
            rate=_rate(item["rate"], name),
        )
        for item in raw
    )
    if not brackets or brackets[-1].upper is not None:
        raise SourceError("bracket table must end with an unbounded bracket")
    return brackets


def schedule_from_payload(
    region: Region, payload: Mapping[str, Any], today: date
) -> IndiaTaxSchedule | USTaxSchedule:
    """Build a schedule from a published JSON document section."""

    months = int(payload.get("holding_period_months", HOLDING_PERIOD_MONTHS))
    if region is Region.INDIA:
        return IndiaTaxSchedule(
            stcg_rate=_rate(payload["stcg_rate"], "stcg"),
            ltcg_rate=_rate(payload["ltcg_rate"], "ltcg"),
            surcharge=_brackets(payload["surcharge"], "surcharge"),
            cess_rate=_rate(payload["cess_rate"], "cess"),
            stt_delivery_rate=_rate(payload.get("stt_delivery_rate", 0.001), "stt_delivery"),
            holding_period_months=months,
            fiscal_year=str(payload.get("fiscal_year") or indian_fiscal_year(today)),
        )
    niit = as_mapping(payload["niit"], "niit")
    state_rates = as_mapping(payload["state_rates"], "state_rates")
    return USTaxSchedule(
        short_term_federal=_brackets(payload["short_term_federal"], "short_term_federal"),
        long_term_federal=_brackets(payload["long_term_federal"], "long_term_federal"),
        niit_rate=_rate(niit["rate"], "niit"),
        niit_threshold_single=float(niit["threshold_single"]),
        niit_threshold_married=float(niit["threshold_married"]),
        state_rates={str(k): _rate(v, f"state {k}") for k, v in state_rates.items()},
        holding_period_months=months,
        tax_year=int(payload.get("tax_year", today.year)),
    )


def remote_schedule_source(url: str, *, today: Callable[[], date] = date.today) -> RateSource:
    async def fetch_remote_schedule(region: Region, client: httpx.AsyncClient) -> Any:
        payload = await get_json(client, url)
        section = payload.get(region.value) if isinstance(payload, dict) else None
        if not isinstance(section, dict):
            raise SourceError(f"no {region.value} section in tax document")
        return schedule_from_payload(region, section, today())

    return RateSource(name="remote_tax_table", fetch=fetch_remote_schedule)


def default_tax_sources(settings: AppSettings) -> list[RateSource]:
    sources: list[RateSource] = []
    if settings.tax_rates_url:
        sources.append(remote_schedule_source(settings.tax_rates_url))
    return sources


class TaxRateProvider(RateProvider[TaxSnapshot]):
    kind = RateKind.TAX

    def __init__(
        self,
        sources: Sequence[RateSource],
        cache: RateCache,
        *,
        static_fallback: bool = True,
        now: Callable[[], datetime] = utcnow,
        **kwargs: Any,
    ) -> None:
        super().__init__(sources, cache, now=now, **kwargs)
        self._use_statutory = static_fallback

    def _validate(self, raw: Any) -> Any | None:
        if isinstance(raw, (IndiaTaxSchedule, USTaxSchedule)):
            return raw
        return None

    def _static_fallback(self, region: Region) -> Any | None:
        if not self._use_statutory:
            return None
        return statutory_schedule(region, self._now().date())

    def _build_snapshot(self, region: Region, value: Any, source: str) -> TaxSnapshot:
        if source == "fallback":
            source = "statutory_schedule"
        return TaxSnapshot(region=region, schedule=value, fetched_at=self._now(), source=source)


def build_tax_provider(
    settings: AppSettings,
    cache: RateCache,
    *,
    transport: httpx.AsyncBaseTransport | None = None,
) -> TaxRateProvider:
    return TaxRateProvider(
        default_tax_sources(settings),
        cache,
        static_fallback=settings.tax_static_fallback_enabled,
        timeout_seconds=settings.rate_source_timeout_seconds,
        transport=transport,
    )


__all__ = [
    "TaxRateProvider",
    "build_tax_provider",
    "default_tax_sources",
    "indian_fiscal_year",
    "remote_schedule_source",
    "schedule_from_payload",
    "statutory_schedule",
]
