"""Monte Carlo estimate of the chance of reaching a wealth goal.

Each cell of the grid (risk tier x horizon) runs independent paths where the
capital plus the year's contribution compounds at a normally distributed
annual return. Normal variates come from a Box-Muller transform over two
uniform draws supplied by a pluggable random source.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Iterable, Mapping, Protocol

import numpy as np

from esop_analytics.models import GoalParameters, Holding, RiskTier

logger = logging.getLogger(__name__)

DEFAULT_RUNS = 1000
HORIZONS: tuple[int, ...] = (5, 10, 15, 20)


@dataclass(frozen=True)
class ReturnProfile:
    mean: float
    std_dev: float


RISK_PROFILES: Mapping[RiskTier, ReturnProfile] = {
    RiskTier.LOW: ReturnProfile(mean=0.045, std_dev=0.08),
    RiskTier.MEDIUM: ReturnProfile(mean=0.07, std_dev=0.15),
    RiskTier.HIGH: ReturnProfile(mean=0.095, std_dev=0.22),
}


class RandomSource(Protocol):
    """Source of uniform draws in ``[0, 1)``."""

    def uniform(self, size: tuple[int, ...]) -> np.ndarray:
        ...


class NumpyRandomSource:
    """Uniform draws from a numpy ``Generator``; pass ``seed`` for reproducible runs."""

    def __init__(self, seed: int | None = None) -> None:
        self._rng = np.random.default_rng(seed)

    def uniform(self, size: tuple[int, ...]) -> np.ndarray:
        return self._rng.random(size)


def box_muller(u1: np.ndarray, u2: np.ndarray) -> np.ndarray:
    """Standard normal variates from two uniform arrays; ``u1`` must be in ``(0, 1]``."""

    return np.sqrt(-2.0 * np.log(u1)) * np.cos(2.0 * np.pi * u2)


def resolve_profile(tier: RiskTier | str | None) -> ReturnProfile:
    try:
        return RISK_PROFILES[RiskTier(tier)]
    except ValueError:
        logger.warning("Unknown risk tier %r; using medium", tier)
        return RISK_PROFILES[RiskTier.MEDIUM]


def target_multiplier(horizon: int) -> float:
    if horizon <= 7:
        return 1.2
    if horizon <= 12:
        return 1.3
    return 1.4


def horizon_target(initial_capital: float, annual_contribution: float, horizon: int, goal_amount: float) -> float:
    """The larger of the explicit goal and contributed capital scaled for the horizon."""

    baseline = (initial_capital + annual_contribution * horizon) * target_multiplier(horizon)
    if goal_amount > 0:
        return max(goal_amount, baseline)
    return baseline


def initial_capital_from_holdings(holdings: Iterable[Holding]) -> float:
    return sum(holding.vested_quantity * holding.effective_exercise_price for holding in holdings)


@dataclass(frozen=True)
class SimulationCell:
    risk_tier: RiskTier
    horizon_years: int
    target: float
    success_probability: float


@dataclass(frozen=True)
class SimulationResult:
    initial_capital: float
    annual_contribution: float
    runs: int
    cells: list[SimulationCell] = field(default_factory=list)

    def grid(self) -> dict[str, dict[int, float]]:
        table: dict[str, dict[int, float]] = {}
        for cell in self.cells:
            table.setdefault(cell.risk_tier.value, {})[cell.horizon_years] = cell.success_probability
        return table

    def probability(self, tier: RiskTier, horizon: int) -> float | None:
        for cell in self.cells:
            if cell.risk_tier is tier and cell.horizon_years == horizon:
                return cell.success_probability
        return None


class GoalSimulator:
    def __init__(self, random_source: RandomSource | None = None, *, runs: int = DEFAULT_RUNS) -> None:
        if runs <= 0:
            raise ValueError("runs must be positive")
        self.random_source = random_source or NumpyRandomSource()
        self.runs = runs

    def success_probability(
        self,
        tier: RiskTier | str,
        horizon: int,
        initial_capital: float,
        annual_contribution: float,
        target: float,
    ) -> float:
        """Percentage of paths whose final capital reaches ``target``, in ``[0, 100]``."""

        profile = resolve_profile(tier)
        if horizon <= 0:
            return 100.0 if initial_capital >= target else 0.0
        shape = (self.runs, horizon)
        # 1 - U keeps the log argument away from zero
        u1 = 1.0 - self.random_source.uniform(shape)
        u2 = self.random_source.uniform(shape)
        returns = profile.mean + box_muller(u1, u2) * profile.std_dev

        capital = np.full(self.runs, float(initial_capital))
        for year in range(horizon):
            capital = (capital + annual_contribution) * (1.0 + returns[:, year])
        successes = int(np.count_nonzero(capital >= target))
        return round(successes / self.runs * 100.0, 2)

    def run_grid(
        self,
        initial_capital: float,
        goals: GoalParameters,
        *,
        tiers: Iterable[RiskTier] = tuple(RiskTier),
        horizons: Iterable[int] = HORIZONS,
    ) -> SimulationResult:
        annual = goals.annual_contribution
        cells: list[SimulationCell] = []
        for tier in tiers:
            for horizon in horizons:
                target = horizon_target(initial_capital, annual, horizon, goals.goal_amount)
                cells.append(
                    SimulationCell(
                        risk_tier=tier,
                        horizon_years=horizon,
                        target=round(target, 2),
                        success_probability=self.success_probability(
                            tier, horizon, initial_capital, annual, target
                        ),
                    )
                )
        logger.info("Simulated %d cells x %d runs", len(cells), self.runs)
        return SimulationResult(
            initial_capital=initial_capital,
            annual_contribution=annual,
            runs=self.runs,
            cells=cells,
        )


def generate_success_probabilities(
    holdings: Iterable[Holding],
    goals: GoalParameters,
    *,
    simulator: GoalSimulator | None = None,
) -> SimulationResult:
    simulator = simulator or GoalSimulator()
    return simulator.run_grid(initial_capital_from_holdings(holdings), goals)


def headline_horizon(horizon_years: int) -> int:
    """Snap a requested horizon onto the simulated grid."""

    for horizon in HORIZONS:
        if horizon_years <= horizon:
            return horizon
    return HORIZONS[-1]


__all__ = [
    "DEFAULT_RUNS",
    "GoalSimulator",
    "HORIZONS",
    "NumpyRandomSource",
    "RISK_PROFILES",
    "RandomSource",
    "ReturnProfile",
    "SimulationCell",
    "SimulationResult",
    "box_muller",
    "generate_success_probabilities",
    "headline_horizon",
    "horizon_target",
    "initial_capital_from_holdings",
    "target_multiplier",
]
