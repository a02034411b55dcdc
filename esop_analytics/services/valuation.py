"""Per-holding valuation.

The holding's status drives everything: unvested grants carry nothing, vested
and exercised grants carry an unrealized gain on the vested shares, and sold
grants carry a realized gain on the full quantity.
"""

from __future__ import annotations

import logging
from datetime import date

from esop_analytics.models import (
    Holding,
    HoldingStatus,
    InflationSnapshot,
    Quote,
    RowCalculation,
    TaxContext,
    TaxSnapshot,
)
from esop_analytics.providers.inflation import adjust_for_inflation
from esop_analytics.services.tax import DAYS_PER_YEAR, compute_tax

logger = logging.getLogger(__name__)

NO_PRICE_ERROR = "No price data available"


def days_between(start: date | None, end: date) -> int:
    if start is None:
        return 0
    return (end - start).days


def compute_cagr(current_price: float, cost_price: float, years: float) -> float:
    """Compound annual growth rate as a fraction; zero when it is undefined."""

    if cost_price <= 0 or years <= 0 or current_price <= 0:
        return 0.0
    return (current_price / cost_price) ** (1 / years) - 1


def resolve_price(holding: Holding, quote: Quote | None) -> tuple[float, str | None]:
    """Prefer the live quote, then the price recorded on the holding."""

    if quote is not None and quote.price > 0:
        return quote.price, "live"
    if holding.current_price is not None and holding.current_price > 0:
        return holding.current_price, "record"
    return 0.0, None


def value_holding(
    holding: Holding,
    quote: Quote | None,
    tax: TaxSnapshot,
    inflation: InflationSnapshot,
    *,
    as_of: date,
    context: TaxContext | None = None,
) -> RowCalculation:
    """Compute one row of the analytics report for ``holding`` valued on ``as_of``."""

    status = HoldingStatus.parse(holding.status)
    price, price_source = resolve_price(holding, quote)
    echo = dict(
        ticker=holding.ticker,
        company=holding.company,
        status=status,
        type=holding.type,
        quantity=holding.quantity,
        vested_quantity=holding.vested_quantity,
        exercise_price=holding.effective_exercise_price,
        grant_date=holding.grant_date,
        vesting_start_date=holding.vesting_start_date,
        vesting_end_date=holding.vesting_end_date,
        sale_date=holding.sale_date,
        sale_price=holding.sale_price,
    )

    if price_source is None:
        logger.info("No price for %s; row marked inactive", holding.ticker)
        return RowCalculation(is_active=False, error=NO_PRICE_ERROR, **echo)

    if status is HoldingStatus.SOLD and holding.sale_date is not None:
        period_end = holding.sale_date
    else:
        period_end = as_of
    holding_days = max(days_between(holding.grant_date, period_end), 0)
    holding_years = holding_days / DAYS_PER_YEAR

    row = RowCalculation(
        is_active=True,
        current_price=price,
        price_source=price_source,
        holding_period_days=holding_days,
        holding_period_years=round(holding_years, 2),
        **echo,
    )
    if status is HoldingStatus.UNVESTED:
        return row

    exercise_price = holding.effective_exercise_price
    if status is HoldingStatus.SOLD:
        exit_price = holding.sale_price if holding.sale_price else price
        shares = holding.quantity
        cost_basis = exercise_price * shares
        current_value = exit_price * shares
        gain = current_value - cost_basis
        unrealized, realized = 0.0, gain
        cagr = 0.0
    else:
        shares = holding.effective_vested_quantity
        cost_basis = exercise_price * shares
        current_value = price * shares
        gain = current_value - cost_basis
        unrealized, realized = gain, 0.0
        years_since_vesting = days_between(holding.vesting_start_date, as_of) / DAYS_PER_YEAR
        cagr = compute_cagr(price, exercise_price, years_since_vesting)

    breakdown = compute_tax(tax, holding_days=holding_days, gain=gain, context=context)
    post_tax = gain - breakdown.total_tax
    real = adjust_for_inflation(post_tax, inflation.rate, holding_years)

    return RowCalculation(
        is_active=True,
        current_price=price,
        price_source=price_source,
        holding_period_days=holding_days,
        holding_period_years=round(holding_years, 2),
        cost_basis=cost_basis,
        current_value=current_value,
        unrealized_pnl=unrealized,
        realized_pnl=realized,
        tax=breakdown.total_tax,
        tax_regime=breakdown.regime,
        post_tax_pnl=post_tax,
        inflation_adjusted_pnl=real,
        cagr=cagr,
        **echo,
    )


__all__ = [
    "NO_PRICE_ERROR",
    "compute_cagr",
    "days_between",
    "resolve_price",
    "value_holding",
]
