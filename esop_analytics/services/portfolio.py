"""Portfolio-level aggregation of valued rows."""

from __future__ import annotations

from typing import Iterable

from esop_analytics.models import HoldingStatus, PortfolioTotals, RowCalculation

_CAGR_ELIGIBLE = (HoldingStatus.VESTED, HoldingStatus.EXERCISED)


def weighted_cagr(rows: Iterable[RowCalculation]) -> float:
    """Cost-basis weighted CAGR over active vested/exercised rows."""

    weighted = 0.0
    invested = 0.0
    for row in rows:
        if not row.is_active or row.status not in _CAGR_ELIGIBLE or row.cost_basis <= 0:
            continue
        weighted += row.cagr * row.cost_basis
        invested += row.cost_basis
    if invested <= 0:
        return 0.0
    return weighted / invested


def aggregate_totals(rows: Iterable[RowCalculation]) -> PortfolioTotals:
    rows = list(rows)
    active = [row for row in rows if row.is_active]

    unrealized = round(sum(row.unrealized_pnl for row in active), 2)
    realized = round(sum(row.realized_pnl for row in active), 2)
    return PortfolioTotals(
        total_unrealized_pnl=unrealized,
        total_realized_pnl=realized,
        total_pnl=round(unrealized + realized, 2),
        total_tax=round(sum(row.tax for row in active), 2),
        total_post_tax_pnl=round(sum(row.post_tax_pnl for row in active), 2),
        inflation_adjusted_pnl=round(sum(row.inflation_adjusted_pnl for row in active), 2),
        total_cost_basis=round(sum(row.cost_basis for row in active), 2),
        total_current_value=round(sum(row.current_value for row in active), 2),
        portfolio_cagr=round(weighted_cagr(active), 4),
        active_rows=len(active),
        inactive_rows=len(rows) - len(active),
    )


__all__ = ["aggregate_totals", "weighted_cagr"]
