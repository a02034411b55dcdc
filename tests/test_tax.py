"""Capital-gains tax computation tests."""

from __future__ import annotations

import pytest

from esop_analytics.models import TaxContext
from esop_analytics.services.tax import (
    compute_tax,
    headline_rates,
    is_long_term,
    long_term_rate,
    long_term_threshold_days,
)


def test_twelve_month_threshold_is_365_days():
    assert long_term_threshold_days(12) == 365
    assert long_term_threshold_days(24) == 730
    assert is_long_term(365, 12)
    assert not is_long_term(364, 12)


def test_india_boundary_switches_regime(india_tax):
    long_term = compute_tax(india_tax, holding_days=365, gain=1000.0)
    short_term = compute_tax(india_tax, holding_days=364, gain=1000.0)

    assert long_term.regime == "LTCG"
    assert long_term.total_tax == pytest.approx(1000 * 0.125 * 1.04)
    assert short_term.regime == "STCG"
    assert short_term.total_tax == pytest.approx(1000 * 0.15 * 1.04)


def test_india_surcharge_and_cess(india_tax):
    breakdown = compute_tax(
        india_tax,
        holding_days=400,
        gain=100_000.0,
        context=TaxContext(total_income=7_500_000),
    )

    assert breakdown.components["base_tax"] == pytest.approx(12_500.0)
    assert breakdown.components["surcharge"] == pytest.approx(1_250.0)
    assert breakdown.components["cess"] == pytest.approx(550.0)
    assert breakdown.total_tax == pytest.approx(14_300.0)
    assert breakdown.effective_rate == pytest.approx(0.143)


def test_us_boundary_switches_federal_table(us_tax):
    long_term = compute_tax(us_tax, holding_days=365, gain=1000.0)
    short_term = compute_tax(us_tax, holding_days=364, gain=1000.0)

    # Zero income: 0% long-term band, 10% ordinary band, median 5% state rate
    assert long_term.regime == "Long-Term Capital Gains"
    assert long_term.total_tax == pytest.approx(50.0)
    assert short_term.regime == "Short-Term Capital Gains"
    assert short_term.total_tax == pytest.approx(150.0)


def test_us_niit_and_state_rates(us_tax):
    context = TaxContext(total_income=300_000, filing_status="married", state="texas")
    breakdown = compute_tax(us_tax, holding_days=800, gain=10_000.0, context=context)

    assert breakdown.base_rate == 0.15
    assert breakdown.components["niit"] == pytest.approx(380.0)
    assert breakdown.components["state_tax"] == 0.0
    assert breakdown.total_tax == pytest.approx(1_880.0)


def test_unknown_state_uses_median(us_tax):
    breakdown = compute_tax(us_tax, holding_days=10, gain=100.0, context=TaxContext(state="atlantis"))
    assert breakdown.components["state_tax"] == pytest.approx(5.0)


@pytest.mark.parametrize("gain", [0.0, -3000.0])
def test_non_positive_gain_owes_nothing(us_tax, india_tax, gain):
    for snapshot in (us_tax, india_tax):
        breakdown = compute_tax(snapshot, holding_days=500, gain=gain)
        assert breakdown.total_tax == 0.0
        assert breakdown.effective_rate == 0.0


def test_headline_rates(us_tax, india_tax):
    assert long_term_rate(india_tax) == 0.125
    assert long_term_rate(us_tax) == 0.15
    india = headline_rates(india_tax)
    assert india["short_term_rate"] == 0.15
    assert india["fiscal_year"] == "FY 2025-2026"
    usa = headline_rates(us_tax)
    assert usa["niit_rate"] == 0.038
    assert usa["holding_period_months"] == 12
