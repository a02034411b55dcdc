"""Portfolio analytics endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from esop_analytics.api.dependencies import get_engine
from esop_analytics.schemas import (
    AnalyticsReportSchema,
    AnalyticsRequest,
    SymbolHistoryRequest,
    SymbolHistoryResponse,
)
from esop_analytics.services.analytics import AnalyticsEngine

router = APIRouter()


@router.post("/compute", response_model=AnalyticsReportSchema)
async def compute_analytics(
    request: AnalyticsRequest,
    engine: AnalyticsEngine = Depends(get_engine),
) -> AnalyticsReportSchema:
    """Value every holding against live rates and prices and aggregate the portfolio."""

    holdings = [holding.to_domain() for holding in request.holdings]
    context = request.tax_context.to_domain() if request.tax_context else None
    report = await engine.compute(holdings, context=context, as_of=request.valuation_date)
    return AnalyticsReportSchema.model_validate(report, from_attributes=True)


@router.post("/history", response_model=SymbolHistoryResponse)
async def symbol_history(
    request: SymbolHistoryRequest,
    engine: AnalyticsEngine = Depends(get_engine),
) -> SymbolHistoryResponse:
    """Trailing 1, 3, 5 and 10 year CAGR for each requested ticker."""

    history = await engine.symbol_history(request.tickers)
    requested = list(dict.fromkeys(ticker.strip() for ticker in request.tickers if ticker.strip()))
    return SymbolHistoryResponse.model_validate(
        {"history": history, "missing": [ticker for ticker in requested if ticker not in history]},
        from_attributes=True,
    )


__all__ = ["compute_analytics", "symbol_history"]
