"""Pydantic schema exports."""

from .analytics import (
    AnalyticsReportSchema,
    AnalyticsRequest,
    ChartSeriesSchema,
    HoldingSchema,
    ReportMetaSchema,
    RowSchema,
    SymbolHistoryRequest,
    SymbolHistoryResponse,
    TaxContextSchema,
    TotalsSchema,
)
from .planning import (
    AllocationRequest,
    AllocationResponse,
    GoalsSchema,
    PortfolioPositionSchema,
    SimulationCellSchema,
    SuccessProbabilityRequest,
    SuccessProbabilityResponse,
)
from .rates import ConversionResponse, RatesResponse

__all__ = [
    "AnalyticsReportSchema",
    "AnalyticsRequest",
    "ChartSeriesSchema",
    "HoldingSchema",
    "ReportMetaSchema",
    "RowSchema",
    "SymbolHistoryRequest",
    "SymbolHistoryResponse",
    "TaxContextSchema",
    "TotalsSchema",
    "AllocationRequest",
    "AllocationResponse",
    "GoalsSchema",
    "PortfolioPositionSchema",
    "SimulationCellSchema",
    "SuccessProbabilityRequest",
    "SuccessProbabilityResponse",
    "ConversionResponse",
    "RatesResponse",
]
