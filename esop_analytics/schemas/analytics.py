"""Schemas for the analytics computation endpoint."""

from __future__ import annotations

from datetime import date, datetime
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

from esop_analytics.models import Holding, HoldingStatus, Region, TaxContext


class HoldingSchema(BaseModel):
    ticker: str = Field(..., examples=["INFY.NS"])
    company: str = ""
    status: str = Field(..., description="Unvested, Vested, Exercised or Sold", examples=["Vested"])
    quantity: float = Field(..., ge=0)
    vested_quantity: float = Field(default=0.0, ge=0)
    exercise_price: float = Field(default=0.0, ge=0)
    strike_price: float = Field(default=0.0, ge=0)
    grant_date: date | None = None
    vesting_start_date: date | None = None
    vesting_end_date: date | None = None
    expiration_date: date | None = None
    sale_date: date | None = None
    sale_price: float | None = Field(default=None, ge=0)
    current_price: float | None = Field(default=None, ge=0, description="Price recorded with the holding")
    type: str = "Stock Option"

    def to_domain(self) -> Holding:
        return Holding(
            ticker=self.ticker,
            company=self.company,
            status=HoldingStatus.parse(self.status),
            quantity=self.quantity,
            vested_quantity=self.vested_quantity,
            exercise_price=self.exercise_price,
            strike_price=self.strike_price,
            grant_date=self.grant_date,
            vesting_start_date=self.vesting_start_date,
            vesting_end_date=self.vesting_end_date,
            expiration_date=self.expiration_date,
            sale_date=self.sale_date,
            sale_price=self.sale_price,
            current_price=self.current_price,
            type=self.type,
        )


class TaxContextSchema(BaseModel):
    total_income: float = Field(default=0.0, ge=0)
    filing_status: Literal["single", "married"] = "single"
    state: str = "median"

    def to_domain(self) -> TaxContext:
        return TaxContext(total_income=self.total_income, filing_status=self.filing_status, state=self.state)


class AnalyticsRequest(BaseModel):
    holdings: list[HoldingSchema] = Field(..., min_length=1)
    tax_context: TaxContextSchema | None = None
    valuation_date: date | None = None


class RowSchema(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    ticker: str
    company: str
    status: HoldingStatus
    type: str
    is_active: bool
    quantity: float
    vested_quantity: float
    exercise_price: float
    current_price: float
    price_source: str | None = None
    grant_date: date | None = None
    vesting_start_date: date | None = None
    vesting_end_date: date | None = None
    sale_date: date | None = None
    sale_price: float | None = None
    holding_period_days: int
    holding_period_years: float
    cost_basis: float
    current_value: float
    unrealized_pnl: float
    realized_pnl: float
    tax: float
    tax_regime: str | None = None
    post_tax_pnl: float
    inflation_adjusted_pnl: float
    cagr: float
    error: str | None = None


class TotalsSchema(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    total_unrealized_pnl: float
    total_realized_pnl: float
    total_pnl: float
    total_tax: float
    total_post_tax_pnl: float
    inflation_adjusted_pnl: float
    total_cost_basis: float
    total_current_value: float
    portfolio_cagr: float
    active_rows: int
    inactive_rows: int


class QuantityPointSchema(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    year: int
    quantity: float


class RealizedPointSchema(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    month: str
    realized_pnl: float


class PnLPointSchema(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    year: int
    raw_unrealized_pnl: float
    post_tax_pnl: float
    inflation_adjusted_pnl: float


class ChartSeriesSchema(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    esops_per_year: list[QuantityPointSchema]
    realized_pnl_timeline: list[RealizedPointSchema]
    unrealized_vs_post_tax_vs_inflation: list[PnLPointSchema]


class SnapshotMetaSchema(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    source: str
    fetched_at: datetime


class ReportMetaSchema(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    tax_rates_used: dict[str, Any]
    holding_period_months: int
    inflation_rate_pct: float
    price_fetch_timestamp: datetime
    tax: SnapshotMetaSchema
    inflation: SnapshotMetaSchema
    currency: SnapshotMetaSchema
    valuation_date: date


class AnalyticsReportSchema(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    region: Region
    base_currency: str
    fx_rate: float
    totals: TotalsSchema
    rows: list[RowSchema]
    charts: ChartSeriesSchema
    meta: ReportMetaSchema


class SymbolHistoryRequest(BaseModel):
    tickers: list[str] = Field(..., min_length=1, max_length=50)


class SymbolHistorySchema(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    symbol: str
    returns: dict[str, float]
    period_cagr: float | None = None
    period_years: float
    last_close: float


class SymbolHistoryResponse(BaseModel):
    history: dict[str, SymbolHistorySchema]
    missing: list[str] = Field(default_factory=list)


__all__ = [
    "AnalyticsReportSchema",
    "AnalyticsRequest",
    "ChartSeriesSchema",
    "HoldingSchema",
    "PnLPointSchema",
    "QuantityPointSchema",
    "RealizedPointSchema",
    "ReportMetaSchema",
    "RowSchema",
    "SnapshotMetaSchema",
    "SymbolHistoryRequest",
    "SymbolHistoryResponse",
    "SymbolHistorySchema",
    "TaxContextSchema",
    "TotalsSchema",
]
