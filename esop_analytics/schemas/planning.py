"""Schemas for goal simulation and allocation advice."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

from esop_analytics.models import GoalParameters, PortfolioTotals, Region, RiskTier
from esop_analytics.schemas.analytics import HoldingSchema


class GoalsSchema(BaseModel):
    monthly_contribution: float = Field(default=0.0, ge=0)
    investment_horizon_years: int = Field(default=10, ge=1, le=60)
    risk_tier: RiskTier = RiskTier.MEDIUM
    goal_amount: float = Field(default=0.0, ge=0)
    planning_region: Region = Region.USA
    current_savings: float = Field(default=0.0, ge=0)
    other_investments: float = Field(default=0.0, ge=0)

    def to_domain(self) -> GoalParameters:
        return GoalParameters(
            monthly_contribution=self.monthly_contribution,
            investment_horizon_years=self.investment_horizon_years,
            risk_tier=self.risk_tier,
            goal_amount=self.goal_amount,
            planning_region=self.planning_region,
            current_savings=self.current_savings,
            other_investments=self.other_investments,
        )


class SuccessProbabilityRequest(BaseModel):
    holdings: list[HoldingSchema] = Field(default_factory=list)
    goals: GoalsSchema = Field(default_factory=GoalsSchema)


class SimulationCellSchema(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    risk_tier: RiskTier
    horizon_years: int
    target: float
    success_probability: float = Field(..., ge=0, le=100)


class SuccessProbabilityResponse(BaseModel):
    initial_capital: float
    annual_contribution: float
    runs: int
    grid: dict[str, dict[int, float]]
    cells: list[SimulationCellSchema]
    headline_probability: float | None = None


class PortfolioPositionSchema(BaseModel):
    """Current equity-compensation position, typically taken from a prior analytics report."""

    total_current_value: float = Field(default=0.0, ge=0)
    total_cost_basis: float = Field(default=0.0, ge=0)

    def to_domain(self) -> PortfolioTotals:
        return PortfolioTotals(
            total_current_value=self.total_current_value,
            total_cost_basis=self.total_cost_basis,
        )


class AllocationRequest(BaseModel):
    goals: GoalsSchema = Field(default_factory=GoalsSchema)
    portfolio: PortfolioPositionSchema | None = None


class AllocationSchema(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    equity: int
    bonds: int
    alternatives: int


class StrategySchema(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    title: str
    description: str
    allocation: int
    examples: list[str]
    detailed_advice: str


class BenchmarkSchema(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    name: str
    cagr: float
    symbol: str | None = None
    volatility: float | None = None
    sharpe: float | None = None
    returns: dict[str, float] = Field(default_factory=dict)


class StressTestSchema(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    inflation_spike: float
    recession: float
    market_crash: float


class DownsideMetricsSchema(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    volatility: float
    max_drawdown: float
    recovery_time: str
    stress_test: StressTestSchema
    advisories: list[str]


class ActionStepSchema(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    step: str
    details: str
    timeline: str


class EsopStrategySchema(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    concentration_pct: float
    potential_tax: float
    overview: str
    tax_planning: str
    risk_assessment: str
    action_steps: list[ActionStepSchema]


class ProjectionPointSchema(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    year: int
    value: float
    real_value: float


class AllocationResponse(BaseModel):
    region: Region
    risk_tier: RiskTier
    allocation: AllocationSchema
    narrative: str
    strategies: list[StrategySchema]
    benchmarks: list[BenchmarkSchema]
    benchmark_source: str
    downside: DownsideMetricsSchema
    esop_strategy: EsopStrategySchema
    expected_cagr_pct: float
    projections: list[ProjectionPointSchema]


__all__ = [
    "ActionStepSchema",
    "AllocationRequest",
    "AllocationResponse",
    "AllocationSchema",
    "BenchmarkSchema",
    "DownsideMetricsSchema",
    "EsopStrategySchema",
    "GoalsSchema",
    "PortfolioPositionSchema",
    "ProjectionPointSchema",
    "SimulationCellSchema",
    "StrategySchema",
    "StressTestSchema",
    "SuccessProbabilityRequest",
    "SuccessProbabilityResponse",
]
