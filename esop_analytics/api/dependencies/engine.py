"""Shared analytics engine wiring for API routes."""

from __future__ import annotations

from functools import lru_cache

from esop_analytics.config import get_settings
from esop_analytics.providers import YahooPriceOracle, build_rate_providers
from esop_analytics.providers.history import build_history_oracle
from esop_analytics.services.analytics import AnalyticsEngine
from esop_analytics.services.simulation import GoalSimulator


@lru_cache(maxsize=1)
def get_engine() -> AnalyticsEngine:
    """Return the process-wide engine; its rate cache is shared by every request."""

    settings = get_settings()
    return AnalyticsEngine(
        build_rate_providers(settings),
        YahooPriceOracle(timeout_seconds=settings.price_timeout_seconds),
        simulator=GoalSimulator(runs=settings.simulation_runs),
        history_oracle=build_history_oracle(settings),
    )


__all__ = ["get_engine"]
