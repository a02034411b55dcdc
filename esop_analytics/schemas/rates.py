"""Schemas describing the rate snapshots currently in force."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel

from esop_analytics.models import Region


class TaxRatesSchema(BaseModel):
    source: str
    fetched_at: datetime
    holding_period_months: int
    rates: dict[str, Any]


class InflationRateSchema(BaseModel):
    source: str
    fetched_at: datetime
    rate_pct: float
    year: int


class CurrencyRateSchema(BaseModel):
    source: str
    fetched_at: datetime
    pair: str
    rate: float


class RatesResponse(BaseModel):
    region: Region
    currency: str
    tax: TaxRatesSchema
    inflation: InflationRateSchema
    fx: CurrencyRateSchema


class ConversionResponse(BaseModel):
    original_amount: float
    converted_amount: float
    from_currency: str
    to_currency: str
    rate: float
    source: str
    fetched_at: datetime


__all__ = [
    "ConversionResponse",
    "CurrencyRateSchema",
    "InflationRateSchema",
    "RatesResponse",
    "TaxRatesSchema",
]
