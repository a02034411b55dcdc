"""Allocation advice, strategies and risk framing per region and risk tier.

Every figure quoted in the narrative comes from the resolved tax and
inflation snapshots or from the region tables below.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Mapping

from esop_analytics.models import (
    Benchmark,
    BenchmarkSnapshot,
    GoalParameters,
    InflationSnapshot,
    PortfolioTotals,
    Region,
    RiskTier,
    TaxSnapshot,
)
from esop_analytics.providers.history import STATIC_BENCHMARKS
from esop_analytics.services.projection import ProjectionPoint, build_projection_series, expected_cagr
from esop_analytics.services.regions import currency_for_region
from esop_analytics.services.tax import long_term_rate

CONCENTRATION_LIMIT_PCT = 20.0
TAX_FUND_SHARE_OF_LIQUID = 0.2


@dataclass(frozen=True)
class Allocation:
    equity: int
    bonds: int
    alternatives: int

    def as_dict(self) -> dict[str, int]:
        return {"equity": self.equity, "bonds": self.bonds, "alternatives": self.alternatives}


@dataclass(frozen=True)
class RegionProfile:
    label: str
    equity_return_pct: Mapping[RiskTier, float]
    volatility_pct: Mapping[RiskTier, float]
    primary_benchmark: Benchmark
    secondary_benchmark: Benchmark
    risk_free_instrument: str
    core_examples: tuple[str, ...]
    liquidity_examples: tuple[str, ...]
    liquidity_note: str


_ALLOCATIONS: Mapping[RiskTier, Allocation] = {
    RiskTier.LOW: Allocation(equity=40, bonds=50, alternatives=10),
    RiskTier.MEDIUM: Allocation(equity=60, bonds=30, alternatives=10),
    RiskTier.HIGH: Allocation(equity=80, bonds=10, alternatives=10),
}

ALLOCATION_TABLE: Mapping[tuple[Region, RiskTier], Allocation] = {
    (region, tier): allocation for region in Region for tier, allocation in _ALLOCATIONS.items()
}

REGION_PROFILES: Mapping[Region, RegionProfile] = {
    Region.USA: RegionProfile(
        label="US",
        equity_return_pct={RiskTier.LOW: 6, RiskTier.MEDIUM: 8, RiskTier.HIGH: 10},
        volatility_pct={RiskTier.LOW: 6, RiskTier.MEDIUM: 12, RiskTier.HIGH: 18},
        primary_benchmark=STATIC_BENCHMARKS[Region.USA][0],
        secondary_benchmark=STATIC_BENCHMARKS[Region.USA][1],
        risk_free_instrument="US T-Bills",
        core_examples=("Vanguard Total Stock (VTI)", "Total Bond Market (BND)", "International Equity (VXUS)"),
        liquidity_examples=("T-Bills", "High Yield Savings", "Money Market Funds"),
        liquidity_note="T-Bills currently offer competitive risk-free yields",
    ),
    Region.INDIA: RegionProfile(
        label="Indian",
        equity_return_pct={RiskTier.LOW: 9, RiskTier.MEDIUM: 12, RiskTier.HIGH: 15},
        volatility_pct={RiskTier.LOW: 8, RiskTier.MEDIUM: 15, RiskTier.HIGH: 22},
        primary_benchmark=STATIC_BENCHMARKS[Region.INDIA][0],
        secondary_benchmark=STATIC_BENCHMARKS[Region.INDIA][1],
        risk_free_instrument="Liquid BeES/Arbitrage Funds",
        core_examples=(
            "Nifty 50 Index Fund (Low Cost)",
            "Flexi-Cap Funds (Alpha)",
            "Corporate Bond Funds (Stability)",
        ),
        liquidity_examples=("Liquid BeES", "Arbitrage Funds (Tax Efficient)", "Overnight Funds"),
        liquidity_note="Arbitrage funds offer equity taxation with debt-like safety",
    ),
}


@dataclass(frozen=True)
class AllocationAdvice:
    region: Region
    risk_tier: RiskTier
    allocation: Allocation
    narrative: str


@dataclass(frozen=True)
class Strategy:
    title: str
    description: str
    allocation: int
    examples: tuple[str, ...]
    detailed_advice: str


@dataclass(frozen=True)
class StressTest:
    inflation_spike: float
    recession: float
    market_crash: float


@dataclass(frozen=True)
class DownsideMetrics:
    volatility: float
    max_drawdown: float
    recovery_time: str
    stress_test: StressTest
    advisories: tuple[str, ...]


@dataclass(frozen=True)
class ActionStep:
    step: str
    details: str
    timeline: str


@dataclass(frozen=True)
class EsopStrategy:
    concentration_pct: float
    potential_tax: float
    overview: str
    tax_planning: str
    risk_assessment: str
    action_steps: list[ActionStep] = field(default_factory=list)


@dataclass(frozen=True)
class AdvisoryReport:
    advice: AllocationAdvice
    strategies: list[Strategy]
    benchmarks: tuple[Benchmark, Benchmark]
    benchmark_source: str
    downside: DownsideMetrics
    esop_strategy: EsopStrategy
    expected_cagr_pct: float
    projections: list[ProjectionPoint]


def _tier(tier: RiskTier | str) -> RiskTier:
    try:
        return RiskTier(tier)
    except ValueError:
        return RiskTier.MEDIUM


def get_allocation(region: Region, tier: RiskTier | str) -> Allocation:
    return ALLOCATION_TABLE[(Region(region), _tier(tier))]


def allocation_narrative(
    region: Region,
    tier: RiskTier,
    allocation: Allocation,
    tax: TaxSnapshot,
    inflation: InflationSnapshot,
) -> str:
    profile = REGION_PROFILES[region]
    ltcg_pct = long_term_rate(tax) * 100
    inflation_pct = inflation.rate_pct
    nominal = profile.equity_return_pct[tier]
    real_return = ((1 + nominal / 100) / (1 + inflation.rate) - 1) * 100
    return (
        f"A {tier.value}-risk {profile.label} portfolio holds {allocation.equity}% equity, "
        f"{allocation.bonds}% bonds and {allocation.alternatives}% alternatives. "
        f"Gains held at least {tax.holding_period_months} months qualify for the "
        f"{ltcg_pct:.1f}% long-term rate. With inflation at {inflation_pct:.1f}%, "
        f"a {nominal:.1f}% nominal equity return is about {real_return:.1f}% in real terms."
    )


def advise_allocation(
    region: Region, tier: RiskTier | str, tax: TaxSnapshot, inflation: InflationSnapshot
) -> AllocationAdvice:
    region = Region(region)
    tier = _tier(tier)
    allocation = get_allocation(region, tier)
    return AllocationAdvice(
        region=region,
        risk_tier=tier,
        allocation=allocation,
        narrative=allocation_narrative(region, tier, allocation, tax, inflation),
    )


def benchmarks_for_region(region: Region) -> tuple[Benchmark, Benchmark]:
    profile = REGION_PROFILES[Region(region)]
    return profile.primary_benchmark, profile.secondary_benchmark


def detailed_strategies(region: Region, tier: RiskTier | str, horizon_years: int) -> list[Strategy]:
    """Core, tactical and liquidity sleeves (60/25/15) for the region."""

    region = Region(region)
    tier = _tier(tier)
    profile = REGION_PROFILES[region]
    allocation = get_allocation(region, tier)
    if tier is RiskTier.HIGH:
        tactical_examples = ("Momentum Factor ETFs", "Small-Cap Value", "Technology Sector")
        tactical_advice = "Aggressive factor investing (Momentum/Value) suits a long horizon."
    else:
        tactical_examples = ("Dividend Aristocrats", "Quality Factor ETFs", "Healthcare Sector")
        tactical_advice = "Focus on quality factors (high ROE, low debt) to compound steadily."
    return [
        Strategy(
            title="Core Strategic Allocation",
            description=f"Primary wealth engine tailored for {region.value.upper()} tax efficiency and {tier.value} risk.",
            allocation=60,
            examples=profile.core_examples,
            detailed_advice=(
                f"Allocate 60% of capital here. For {profile.label} markets this mix targets a "
                f"{profile.equity_return_pct[tier]}% annualized return over {horizon_years} years. "
                f"Rebalance annually to maintain the {allocation.equity}/{allocation.bonds} split."
            ),
        ),
        Strategy(
            title="Tactical Growth Satellites",
            description="High-conviction bets to outperform the benchmark.",
            allocation=25,
            examples=tactical_examples,
            detailed_advice=f"Use this 25% to capture excess returns. {tactical_advice}",
        ),
        Strategy(
            title="Liquidity & Opportunity Fund",
            description="Dry powder for market corrections and emergencies.",
            allocation=15,
            examples=profile.liquidity_examples,
            detailed_advice=(
                f"Keep 15% liquid in {profile.risk_free_instrument}; {profile.liquidity_note}. "
                "Deploy this capital when the market falls more than 10%."
            ),
        ),
    ]


def downside_metrics(region: Region, tier: RiskTier | str) -> DownsideMetrics:
    tier = _tier(tier)
    vol = float(REGION_PROFILES[Region(region)].volatility_pct[tier])
    return DownsideMetrics(
        volatility=vol,
        max_drawdown=-(vol * 2),
        recovery_time="18-24 Months" if tier is RiskTier.HIGH else "12-18 Months",
        stress_test=StressTest(inflation_spike=-5.0, recession=-(vol * 1.5), market_crash=-(vol * 2.5)),
        advisories=(
            f"Expect daily fluctuations of ±{vol / 16:.1f}%",
            f"A 1-year loss of {vol:g}% is statistically normal (1 in 6 years)",
            "Stay invested: missing the 10 best days halves long-term returns",
        ),
    )


def esop_strategy(
    totals: PortfolioTotals,
    goals: GoalParameters,
    tax: TaxSnapshot,
) -> EsopStrategy:
    """Concentration and tax-readiness plan for the equity-compensation position."""

    esop_value = totals.total_current_value
    gain = max(esop_value - totals.total_cost_basis, 0.0)
    rate = long_term_rate(tax)
    potential_tax = gain * rate

    liquid = goals.current_savings + goals.other_investments
    net_worth = liquid + esop_value
    concentration = esop_value / net_worth * 100 if net_worth > 0 else 0.0
    currency = currency_for_region(tax.region)

    steps: list[ActionStep] = []
    if concentration > CONCENTRATION_LIMIT_PCT:
        assessment = f"CRITICAL: High Concentration Risk (>{CONCENTRATION_LIMIT_PCT:g}%)"
        steps.append(
            ActionStep(
                step="Systematic Liquidation",
                details="Sell 5-10% of vested shares quarterly regardless of price to diversify.",
                timeline="Starting Next Quarter",
            )
        )
    else:
        assessment = "Healthy: Concentration within manageable limits."
        steps.append(
            ActionStep(
                step="Hold & Compound",
                details="Retain shares for long-term compounding, tax-deferred growth.",
                timeline="Review Annually",
            )
        )
    if potential_tax > liquid * TAX_FUND_SHARE_OF_LIQUID:
        steps.append(
            ActionStep(
                step="Tax Fund Creation",
                details="Start setting aside cash monthly to cover future tax liability upon exercise.",
                timeline="Immediate",
            )
        )

    return EsopStrategy(
        concentration_pct=round(concentration, 1),
        potential_tax=round(potential_tax, 2),
        overview=f"Managing {concentration:.1f}% portfolio concentration in company stock.",
        tax_planning=(
            f"Estimated tax liability: {currency} {round(potential_tax):,} at the "
            f"{rate * 100:.1f}% long-term rate after {tax.holding_period_months} months."
        ),
        risk_assessment=assessment,
        action_steps=steps,
    )


def build_advisory_report(
    goals: GoalParameters,
    totals: PortfolioTotals,
    tax: TaxSnapshot,
    inflation: InflationSnapshot,
    benchmarks: BenchmarkSnapshot | None = None,
) -> AdvisoryReport:
    """Assemble the advice; expected returns scale off the primary benchmark's CAGR.

    Without a resolved ``benchmarks`` snapshot the static region table is used.
    """

    region = Region(goals.planning_region)
    tier = _tier(goals.risk_tier)
    if benchmarks is None or benchmarks.region is not region:
        primary, secondary = benchmarks_for_region(region)
        benchmark_source = "static_table"
    else:
        primary, secondary = benchmarks.primary, benchmarks.secondary
        benchmark_source = benchmarks.source
    cagr_pct = expected_cagr(primary.cagr, tier)
    return AdvisoryReport(
        advice=advise_allocation(region, tier, tax, inflation),
        strategies=detailed_strategies(region, tier, goals.investment_horizon_years),
        benchmarks=(primary, secondary),
        benchmark_source=benchmark_source,
        downside=downside_metrics(region, tier),
        esop_strategy=esop_strategy(totals, goals, tax),
        expected_cagr_pct=round(cagr_pct, 2),
        projections=build_projection_series(
            goals.monthly_contribution,
            goals.investment_horizon_years,
            cagr_pct,
            inflation.rate,
        ),
    )


__all__ = [
    "ALLOCATION_TABLE",
    "ActionStep",
    "AdvisoryReport",
    "Allocation",
    "AllocationAdvice",
    "Benchmark",
    "DownsideMetrics",
    "EsopStrategy",
    "REGION_PROFILES",
    "Strategy",
    "StressTest",
    "advise_allocation",
    "allocation_narrative",
    "benchmarks_for_region",
    "build_advisory_report",
    "detailed_strategies",
    "downside_metrics",
    "esop_strategy",
    "get_allocation",
]
