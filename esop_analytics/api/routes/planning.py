"""Goal planning endpoints: success probabilities and allocation advice."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from esop_analytics.api.dependencies import get_engine
from esop_analytics.schemas import (
    AllocationRequest,
    AllocationResponse,
    SimulationCellSchema,
    SuccessProbabilityRequest,
    SuccessProbabilityResponse,
)
from esop_analytics.services.analytics import AnalyticsEngine
from esop_analytics.services.simulation import headline_horizon

router = APIRouter()


@router.post("/success-probability", response_model=SuccessProbabilityResponse)
async def success_probability(
    request: SuccessProbabilityRequest,
    engine: AnalyticsEngine = Depends(get_engine),
) -> SuccessProbabilityResponse:
    """Run the Monte Carlo grid across risk tiers and horizons."""

    holdings = [holding.to_domain() for holding in request.holdings]
    goals = request.goals.to_domain()
    result = engine.simulate(holdings, goals)
    return SuccessProbabilityResponse(
        initial_capital=round(result.initial_capital, 2),
        annual_contribution=result.annual_contribution,
        runs=result.runs,
        grid=result.grid(),
        cells=[SimulationCellSchema.model_validate(cell) for cell in result.cells],
        headline_probability=result.probability(goals.risk_tier, headline_horizon(goals.investment_horizon_years)),
    )


@router.post("/allocation", response_model=AllocationResponse)
async def allocation(
    request: AllocationRequest,
    engine: AnalyticsEngine = Depends(get_engine),
) -> AllocationResponse:
    """Return the asset mix, strategies and risk framing for the planning region."""

    totals = request.portfolio.to_domain() if request.portfolio else None
    report = await engine.advise(request.goals.to_domain(), totals)
    return AllocationResponse.model_validate(
        {
            "region": report.advice.region,
            "risk_tier": report.advice.risk_tier,
            "allocation": report.advice.allocation,
            "narrative": report.advice.narrative,
            "strategies": report.strategies,
            "benchmarks": list(report.benchmarks),
            "benchmark_source": report.benchmark_source,
            "downside": report.downside,
            "esop_strategy": report.esop_strategy,
            "expected_cagr_pct": report.expected_cagr_pct,
            "projections": report.projections,
        },
        from_attributes=True,
    )


__all__ = ["allocation", "success_probability"]
