"""Orchestration of one analytics request.

Rates and prices are fetched concurrently, after which every holding is
valued synchronously against the same snapshots.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import date, datetime
from typing import Callable, Iterable, Sequence

from esop_analytics.core.errors import ValidationError
from esop_analytics.core.telemetry import analytics_span, holdings_valued
from esop_analytics.models import (
    AnalyticsReport,
    GoalParameters,
    Holding,
    HoldingStatus,
    PortfolioTotals,
    Region,
    ReportMeta,
    SnapshotMeta,
    SymbolHistory,
    TaxContext,
)
from esop_analytics.providers.base import utcnow
from esop_analytics.providers.history import HistoryOracle
from esop_analytics.providers.prices import PriceOracle
from esop_analytics.providers.registry import RateBundle, RateProviders
from esop_analytics.services.advisor import AdvisoryReport, build_advisory_report
from esop_analytics.services.portfolio import aggregate_totals
from esop_analytics.services.regions import classify_batch
from esop_analytics.services.series import build_series
from esop_analytics.services.simulation import GoalSimulator, SimulationResult, generate_success_probabilities
from esop_analytics.services.tax import headline_rates
from esop_analytics.services.valuation import value_holding

logger = logging.getLogger(__name__)


def _validated(holdings: Iterable[Holding]) -> list[Holding]:
    holdings = list(holdings)
    if not holdings:
        raise ValidationError("At least one holding is required")
    for holding in holdings:
        HoldingStatus.parse(holding.status)
    return holdings


class AnalyticsEngine:
    """Entry point tying the region classifier, providers and valuation together."""

    def __init__(
        self,
        providers: RateProviders,
        price_oracle: PriceOracle,
        *,
        simulator: GoalSimulator | None = None,
        history_oracle: HistoryOracle | None = None,
        today: Callable[[], date] = date.today,
        now: Callable[[], datetime] = utcnow,
    ) -> None:
        self.providers = providers
        self.price_oracle = price_oracle
        self.simulator = simulator or GoalSimulator()
        self.history_oracle = history_oracle
        self._today = today
        self._now = now

    async def rates_in_force(self, region: Region) -> RateBundle:
        return await self.providers.resolve(Region(region))

    async def compute(
        self,
        holdings: Sequence[Holding],
        *,
        context: TaxContext | None = None,
        as_of: date | None = None,
    ) -> AnalyticsReport:
        """Value every holding and aggregate the portfolio.

        Raises:
            ValidationError: empty batch, invalid ticker or unknown status.
            MixedRegionError: tickers from more than one region.
            RatesUnavailableError: a required rate could not be resolved.
        """

        holdings = _validated(holdings)
        classification = classify_batch([holding.ticker for holding in holdings])
        region = classification.region
        valuation_date = as_of or self._today()
        tickers = list(dict.fromkeys(holding.ticker for holding in holdings))

        with analytics_span("analytics.fetch_inputs", region=region.value, tickers=len(tickers)):
            tax, inflation, currency, quotes = await asyncio.gather(
                self.providers.tax.get(region),
                self.providers.inflation.get(region),
                self.providers.currency.get(region),
                self.price_oracle.get_quotes(tickers),
            )
        price_fetched_at = self._now()

        rows = [
            value_holding(
                holding,
                quotes.get(holding.ticker),
                tax,
                inflation,
                as_of=valuation_date,
                context=context,
            )
            for holding in holdings
        ]
        totals = aggregate_totals(rows)
        charts = build_series(holdings, rows)
        holdings_valued.add(totals.active_rows, {"region": region.value, "active": True})
        holdings_valued.add(totals.inactive_rows, {"region": region.value, "active": False})
        logger.info(
            "Computed analytics for %d holdings in %s (%d active, %d live quotes)",
            len(rows),
            region.value,
            totals.active_rows,
            len(quotes),
        )

        return AnalyticsReport(
            region=region,
            base_currency=classification.currency,
            fx_rate=currency.rate,
            totals=totals,
            rows=rows,
            charts=charts,
            meta=ReportMeta(
                tax_rates_used=headline_rates(tax),
                holding_period_months=tax.holding_period_months,
                inflation_rate_pct=round(inflation.rate_pct, 4),
                price_fetch_timestamp=price_fetched_at,
                tax=SnapshotMeta(source=tax.source, fetched_at=tax.fetched_at),
                inflation=SnapshotMeta(source=inflation.source, fetched_at=inflation.fetched_at),
                currency=SnapshotMeta(source=currency.source, fetched_at=currency.fetched_at),
                valuation_date=valuation_date,
            ),
        )

    def simulate(self, holdings: Sequence[Holding], goals: GoalParameters) -> SimulationResult:
        return generate_success_probabilities(holdings, goals, simulator=self.simulator)

    async def advise(self, goals: GoalParameters, totals: PortfolioTotals | None = None) -> AdvisoryReport:
        region = Region(goals.planning_region)
        if self.providers.benchmark is None:
            bundle, benchmarks = await self.providers.resolve(region), None
        else:
            bundle, benchmarks = await asyncio.gather(
                self.providers.resolve(region),
                self.providers.benchmark.get(region),
            )
        return build_advisory_report(goals, totals or PortfolioTotals(), bundle.tax, bundle.inflation, benchmarks)

    async def symbol_history(self, tickers: Sequence[str]) -> dict[str, SymbolHistory]:
        """Trailing growth per ticker; tickers without usable history are omitted.

        Raises:
            ValidationError: no tickers were supplied.
        """

        tickers = [ticker.strip() for ticker in tickers if ticker and ticker.strip()]
        if not tickers:
            raise ValidationError("At least one ticker is required")
        if self.history_oracle is None:
            logger.info("No history oracle configured; skipping history for %d tickers", len(tickers))
            return {}
        with analytics_span("analytics.symbol_history", tickers=len(tickers)):
            return await self.history_oracle.get_history(tickers)


__all__ = ["AnalyticsEngine"]
