"""Rate snapshot inspection and currency conversion."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query

from esop_analytics.api.dependencies import get_engine
from esop_analytics.models import Region
from esop_analytics.schemas import ConversionResponse, RatesResponse
from esop_analytics.services.analytics import AnalyticsEngine
from esop_analytics.services.regions import currency_for_region
from esop_analytics.services.tax import headline_rates

router = APIRouter()


@router.get("/convert", response_model=ConversionResponse)
async def convert_currency(
    amount: float = Query(...),
    from_currency: str = Query(..., alias="from", min_length=3, max_length=3),
    to_currency: str = Query(..., alias="to", min_length=3, max_length=3),
    engine: AnalyticsEngine = Depends(get_engine),
) -> ConversionResponse:
    conversion = await engine.providers.currency.convert(amount, from_currency, to_currency)
    return ConversionResponse(
        original_amount=conversion.original_amount,
        converted_amount=round(conversion.converted_amount, 4),
        from_currency=conversion.from_currency,
        to_currency=conversion.to_currency,
        rate=conversion.rate,
        source=conversion.source,
        fetched_at=conversion.fetched_at,
    )


@router.get("/{region}", response_model=RatesResponse)
async def rates_in_force(region: Region, engine: AnalyticsEngine = Depends(get_engine)) -> RatesResponse:
    """Return the tax, inflation and currency snapshots used for ``region``."""

    bundle = await engine.rates_in_force(region)
    return RatesResponse.model_validate(
        {
            "region": region,
            "currency": currency_for_region(region),
            "tax": {
                "source": bundle.tax.source,
                "fetched_at": bundle.tax.fetched_at,
                "holding_period_months": bundle.tax.holding_period_months,
                "rates": headline_rates(bundle.tax),
            },
            "inflation": {
                "source": bundle.inflation.source,
                "fetched_at": bundle.inflation.fetched_at,
                "rate_pct": round(bundle.inflation.rate_pct, 4),
                "year": bundle.inflation.year,
            },
            "fx": {
                "source": bundle.currency.source,
                "fetched_at": bundle.currency.fetched_at,
                "pair": bundle.currency.pair,
                "rate": bundle.currency.rate,
            },
        }
    )


__all__ = ["convert_currency", "rates_in_force"]
