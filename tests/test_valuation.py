"""Per-holding valuation tests."""

from __future__ import annotations

from datetime import date

import pytest

from esop_analytics.core.errors import ValidationError
from esop_analytics.models import Holding, HoldingStatus, Quote
from esop_analytics.services.valuation import NO_PRICE_ERROR, compute_cagr, value_holding

AS_OF = date(2025, 6, 30)


def _holding(**overrides) -> Holding:
    fields = dict(
        ticker="AAPL",
        company="Apple",
        status=HoldingStatus.VESTED,
        quantity=100,
        vested_quantity=100,
        exercise_price=80.0,
        grant_date=date(2022, 6, 30),
        vesting_start_date=date(2023, 6, 30),
        vesting_end_date=date(2026, 6, 30),
    )
    fields.update(overrides)
    return Holding(**fields)


def test_underwater_vested_grant_reports_negative_unrealized(us_tax, us_inflation):
    row = value_holding(_holding(), Quote(symbol="AAPL", price=50.0), us_tax, us_inflation, as_of=AS_OF)

    assert row.is_active
    assert row.price_source == "live"
    assert row.cost_basis == 8000.0
    assert row.current_value == 5000.0
    assert row.unrealized_pnl == -3000.0
    assert row.realized_pnl == 0.0
    assert row.tax == 0.0
    assert row.post_tax_pnl == -3000.0


def test_cagr_over_two_years(us_tax, zero_inflation):
    holding = _holding(exercise_price=50.0, vesting_start_date=date(2023, 6, 30))
    row = value_holding(holding, Quote(symbol="AAPL", price=80.0), us_tax, zero_inflation, as_of=date(2025, 6, 29))

    # 730 days since vesting start is exactly two 365-day years
    assert row.cagr == pytest.approx(0.2649, abs=1e-4)
    assert compute_cagr(80.0, 50.0, 2.0) == pytest.approx((80 / 50) ** 0.5 - 1)


@pytest.mark.parametrize("cost, years", [(0.0, 2.0), (50.0, 0.0), (50.0, -1.0)])
def test_cagr_undefined_is_zero(cost, years):
    assert compute_cagr(80.0, cost, years) == 0.0


def test_unvested_grant_carries_nothing(us_tax, us_inflation):
    row = value_holding(
        _holding(status=HoldingStatus.UNVESTED),
        Quote(symbol="AAPL", price=150.0),
        us_tax,
        us_inflation,
        as_of=AS_OF,
    )

    assert row.is_active
    assert row.cost_basis == row.current_value == 0.0
    assert row.unrealized_pnl == row.realized_pnl == 0.0
    assert row.tax == row.post_tax_pnl == row.inflation_adjusted_pnl == 0.0
    assert row.cagr == 0.0


def test_sold_grant_realizes_full_quantity(us_tax, zero_inflation):
    holding = _holding(
        status=HoldingStatus.SOLD,
        quantity=200,
        vested_quantity=100,
        exercise_price=10.0,
        sale_price=30.0,
        sale_date=date(2023, 6, 29),
    )
    row = value_holding(holding, Quote(symbol="AAPL", price=99.0), us_tax, zero_inflation, as_of=AS_OF)

    assert row.realized_pnl == 4000.0
    assert row.unrealized_pnl == 0.0
    assert row.current_value == 6000.0
    assert row.cagr == 0.0
    # Held grant -> sale: 364 days, short-term at 10% federal + 5% state
    assert row.holding_period_days == 364
    assert row.tax_regime == "Short-Term Capital Gains"
    assert row.tax == pytest.approx(600.0)
    assert row.post_tax_pnl == pytest.approx(3400.0)


def test_sold_without_sale_price_uses_current_price(us_tax, zero_inflation):
    holding = _holding(status=HoldingStatus.SOLD, exercise_price=10.0, sale_date=date(2024, 1, 1))
    row = value_holding(holding, None, us_tax, zero_inflation, as_of=AS_OF)
    assert row.is_active is False

    holding = _holding(status=HoldingStatus.SOLD, exercise_price=10.0, current_price=25.0)
    row = value_holding(holding, None, us_tax, zero_inflation, as_of=AS_OF)
    assert row.price_source == "record"
    assert row.realized_pnl == 1500.0


def test_vested_quantity_and_exercise_price_fallbacks(us_tax, zero_inflation):
    holding = _holding(vested_quantity=0, exercise_price=0.0, strike_price=20.0)
    row = value_holding(holding, Quote(symbol="AAPL", price=30.0), us_tax, zero_inflation, as_of=AS_OF)

    assert row.exercise_price == 20.0
    assert row.cost_basis == 2000.0
    assert row.unrealized_pnl == 1000.0


def test_missing_price_marks_row_inactive(us_tax, us_inflation):
    row = value_holding(_holding(current_price=0.0), None, us_tax, us_inflation, as_of=AS_OF)

    assert row.is_active is False
    assert row.error == NO_PRICE_ERROR
    assert row.ticker == "AAPL"
    assert row.unrealized_pnl == row.tax == row.cost_basis == 0.0


def test_inflation_discounts_post_tax_gain(us_tax, us_inflation):
    holding = _holding(exercise_price=10.0, grant_date=date(2023, 6, 30))
    row = value_holding(holding, Quote(symbol="AAPL", price=20.0), us_tax, us_inflation, as_of=AS_OF)

    years = row.holding_period_days / 365
    assert row.inflation_adjusted_pnl == pytest.approx(row.post_tax_pnl / 1.032**years)
    assert row.inflation_adjusted_pnl < row.post_tax_pnl


def test_repeat_valuation_is_identical(us_tax, us_inflation):
    holding = _holding(exercise_price=12.5, current_price=41.3)
    first = value_holding(holding, None, us_tax, us_inflation, as_of=AS_OF)
    second = value_holding(holding, None, us_tax, us_inflation, as_of=AS_OF)
    assert first == second


def test_unknown_status_rejected(us_tax, us_inflation):
    holding = _holding(status="Cancelled")
    with pytest.raises(ValidationError):
        value_holding(holding, None, us_tax, us_inflation, as_of=AS_OF)
