"""Deterministic future-value projections for a monthly savings plan."""

from __future__ import annotations

from dataclasses import dataclass

from esop_analytics.models import RiskTier
from esop_analytics.providers.inflation import adjust_for_inflation

# Share of the region's primary benchmark CAGR expected from each tier
TIER_BENCHMARK_FACTORS = {
    RiskTier.LOW: 0.75,
    RiskTier.MEDIUM: 0.95,
    RiskTier.HIGH: 1.05,
}


@dataclass(frozen=True)
class ProjectionPoint:
    year: int
    value: float
    real_value: float


def expected_cagr(benchmark_cagr_pct: float, tier: RiskTier) -> float:
    """Expected annual return (percent) for ``tier`` scaled off a benchmark CAGR."""

    return benchmark_cagr_pct * TIER_BENCHMARK_FACTORS.get(tier, TIER_BENCHMARK_FACTORS[RiskTier.MEDIUM])


def future_value(principal: float, payment: float, annual_rate: float, periods_per_year: int, years: float) -> float:
    """Future value of ``principal`` plus a level payment stream compounded per period."""

    periods = periods_per_year * years
    if annual_rate == 0:
        return principal + payment * periods
    periodic = annual_rate / periods_per_year
    growth = (1 + periodic) ** periods
    return principal * growth + payment * (growth - 1) / periodic


def build_projection_series(
    monthly_contribution: float,
    horizon_years: int,
    annual_return_pct: float,
    inflation_rate: float,
    *,
    principal: float = 0.0,
) -> list[ProjectionPoint]:
    """One point per year of the horizon; ``inflation_rate`` is a fraction."""

    rate = annual_return_pct / 100.0
    series: list[ProjectionPoint] = []
    for year in range(1, horizon_years + 1):
        value = future_value(principal, monthly_contribution, rate, 12, year)
        series.append(
            ProjectionPoint(
                year=year,
                value=round(value),
                real_value=round(adjust_for_inflation(value, inflation_rate, year)),
            )
        )
    return series


__all__ = [
    "ProjectionPoint",
    "TIER_BENCHMARK_FACTORS",
    "build_projection_series",
    "expected_cagr",
    "future_value",
]
