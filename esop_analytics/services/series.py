"""Chart series bucketed by calendar year or month."""

from __future__ import annotations

from typing import Sequence

import pandas as pd

from esop_analytics.models import (
    ChartSeries,
    Holding,
    HoldingStatus,
    PnLPoint,
    QuantityPoint,
    RealizedPoint,
    RowCalculation,
)


def esops_per_year(holdings: Sequence[Holding]) -> list[QuantityPoint]:
    """Granted quantity per grant year; holdings without a grant date are skipped."""

    records = [
        {"year": holding.grant_date.year, "quantity": holding.quantity}
        for holding in holdings
        if holding.grant_date is not None
    ]
    if not records:
        return []
    grouped = pd.DataFrame.from_records(records).groupby("year", sort=True)["quantity"].sum()
    return [QuantityPoint(year=int(year), quantity=float(quantity)) for year, quantity in grouped.items()]


def realized_pnl_timeline(rows: Sequence[RowCalculation]) -> list[RealizedPoint]:
    """Realized P&L per ``YYYY-MM``, keyed by sale date, else grant date, else vesting end."""

    records = []
    for row in rows:
        if not row.is_active or row.status is not HoldingStatus.SOLD:
            continue
        when = row.sale_date or row.grant_date or row.vesting_end_date
        if when is None:
            continue
        records.append({"month": f"{when.year:04d}-{when.month:02d}", "realized_pnl": row.realized_pnl})
    if not records:
        return []
    grouped = pd.DataFrame.from_records(records).groupby("month", sort=True)["realized_pnl"].sum()
    return [RealizedPoint(month=str(month), realized_pnl=round(float(value), 2)) for month, value in grouped.items()]


def pnl_by_grant_year(rows: Sequence[RowCalculation]) -> list[PnLPoint]:
    records = [
        {
            "year": row.grant_date.year,
            "raw_unrealized_pnl": row.unrealized_pnl,
            "post_tax_pnl": row.post_tax_pnl,
            "inflation_adjusted_pnl": row.inflation_adjusted_pnl,
        }
        for row in rows
        if row.is_active and row.grant_date is not None
    ]
    if not records:
        return []
    grouped = pd.DataFrame.from_records(records).groupby("year", sort=True).sum().round(2)
    return [
        PnLPoint(
            year=int(year),
            raw_unrealized_pnl=float(values["raw_unrealized_pnl"]),
            post_tax_pnl=float(values["post_tax_pnl"]),
            inflation_adjusted_pnl=float(values["inflation_adjusted_pnl"]),
        )
        for year, values in grouped.iterrows()
    ]


def build_series(holdings: Sequence[Holding], rows: Sequence[RowCalculation]) -> ChartSeries:
    return ChartSeries(
        esops_per_year=esops_per_year(holdings),
        realized_pnl_timeline=realized_pnl_timeline(rows),
        unrealized_vs_post_tax_vs_inflation=pnl_by_grant_year(rows),
    )


__all__ = ["build_series", "esops_per_year", "pnl_by_grant_year", "realized_pnl_timeline"]
