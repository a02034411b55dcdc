"""Capital-gains tax computation against a resolved tax snapshot."""

from __future__ import annotations

from typing import Sequence

from esop_analytics.models import (
    Bracket,
    IndiaTaxSchedule,
    TaxBreakdown,
    TaxContext,
    TaxSnapshot,
    USTaxSchedule,
)

DAYS_PER_YEAR = 365


def long_term_threshold_days(holding_period_months: int) -> int:
    """Express a holding period in months as a whole number of days (12 -> 365)."""

    return round(holding_period_months * DAYS_PER_YEAR / 12)


def is_long_term(holding_days: int, holding_period_months: int) -> bool:
    return holding_days >= long_term_threshold_days(holding_period_months)


def bracket_rate(brackets: Sequence[Bracket], amount: float) -> float:
    """Return the rate of the first bracket whose upper bound covers ``amount``."""

    for bracket in brackets:
        if bracket.upper is None or amount <= bracket.upper:
            return bracket.rate
    return brackets[-1].rate if brackets else 0.0


def _regime_label(schedule: IndiaTaxSchedule | USTaxSchedule, long_term: bool) -> str:
    if isinstance(schedule, IndiaTaxSchedule):
        return "LTCG" if long_term else "STCG"
    return "Long-Term Capital Gains" if long_term else "Short-Term Capital Gains"


def _india_tax(
    schedule: IndiaTaxSchedule, gain: float, long_term: bool, context: TaxContext
) -> TaxBreakdown:
    base_rate = schedule.ltcg_rate if long_term else schedule.stcg_rate
    surcharge_rate = bracket_rate(schedule.surcharge, context.total_income)
    base_tax = gain * base_rate
    surcharge = base_tax * surcharge_rate
    cess = (base_tax + surcharge) * schedule.cess_rate
    total = base_tax + surcharge + cess
    return TaxBreakdown(
        regime=_regime_label(schedule, long_term),
        is_long_term=long_term,
        base_rate=base_rate,
        effective_rate=total / gain,
        total_tax=total,
        components={"base_tax": base_tax, "surcharge": surcharge, "cess": cess},
    )


def _us_tax(schedule: USTaxSchedule, gain: float, long_term: bool, context: TaxContext) -> TaxBreakdown:
    table = schedule.long_term_federal if long_term else schedule.short_term_federal
    federal_rate = bracket_rate(table, context.total_income)
    threshold = (
        schedule.niit_threshold_married
        if context.filing_status == "married"
        else schedule.niit_threshold_single
    )
    niit_rate = schedule.niit_rate if context.total_income > threshold else 0.0
    state_rate = schedule.state_rates.get(context.state, schedule.state_rates.get("median", 0.0))

    federal_tax = gain * federal_rate
    niit = gain * niit_rate
    state_tax = gain * state_rate
    total = federal_tax + niit + state_tax
    return TaxBreakdown(
        regime=_regime_label(schedule, long_term),
        is_long_term=long_term,
        base_rate=federal_rate,
        effective_rate=total / gain,
        total_tax=total,
        components={"federal_tax": federal_tax, "niit": niit, "state_tax": state_tax},
    )


def compute_tax(
    snapshot: TaxSnapshot,
    *,
    holding_days: int,
    gain: float,
    context: TaxContext | None = None,
) -> TaxBreakdown:
    """Return the tax owed on ``gain`` held for ``holding_days`` under ``snapshot``.

    India taxes the gain at the STCG/LTCG rate, adds an income-banded surcharge
    on that tax and a cess on tax plus surcharge. The USA applies the federal
    rate for the investor's income band (ordinary or long-term table), NIIT
    above the filing-status threshold and the state rate. Losses and zero gains
    owe nothing.
    """

    context = context or TaxContext()
    schedule = snapshot.schedule
    long_term = is_long_term(holding_days, schedule.holding_period_months)

    if gain <= 0:
        return TaxBreakdown(
            regime=_regime_label(schedule, long_term),
            is_long_term=long_term,
            base_rate=0.0,
            effective_rate=0.0,
            total_tax=0.0,
            components={},
        )

    if isinstance(schedule, IndiaTaxSchedule):
        return _india_tax(schedule, gain, long_term, context)
    return _us_tax(schedule, gain, long_term, context)


def headline_rates(snapshot: TaxSnapshot) -> dict[str, object]:
    """Summarize the schedule in force for report metadata and narratives."""

    schedule = snapshot.schedule
    if isinstance(schedule, IndiaTaxSchedule):
        return {
            "regime": "india",
            "short_term_rate": schedule.stcg_rate,
            "long_term_rate": schedule.ltcg_rate,
            "cess_rate": schedule.cess_rate,
            "stt_delivery_rate": schedule.stt_delivery_rate,
            "holding_period_months": schedule.holding_period_months,
            "fiscal_year": schedule.fiscal_year,
        }
    return {
        "regime": "usa",
        "short_term_rate": schedule.short_term_federal[0].rate,
        "long_term_rate": long_term_rate(snapshot),
        "niit_rate": schedule.niit_rate,
        "state_rates": dict(schedule.state_rates),
        "holding_period_months": schedule.holding_period_months,
        "tax_year": schedule.tax_year,
    }


def long_term_rate(snapshot: TaxSnapshot) -> float:
    """Headline long-term rate: India's LTCG rate or the US middle federal band."""

    schedule = snapshot.schedule
    if isinstance(schedule, IndiaTaxSchedule):
        return schedule.ltcg_rate
    rates = [bracket.rate for bracket in schedule.long_term_federal if bracket.rate > 0]
    return rates[0] if rates else 0.0


__all__ = [
    "bracket_rate",
    "compute_tax",
    "headline_rates",
    "is_long_term",
    "long_term_rate",
    "long_term_threshold_days",
]
