"""Domain models used by the ESOP analytics engine."""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import Any, Mapping, Optional

from esop_analytics.core.errors import ValidationError


class Region(str, Enum):
    INDIA = "india"
    USA = "usa"


class HoldingStatus(str, Enum):
    UNVESTED = "Unvested"
    VESTED = "Vested"
    EXERCISED = "Exercised"
    SOLD = "Sold"

    @classmethod
    def parse(cls, raw: Any) -> "HoldingStatus":
        """Return the status for ``raw`` or raise when the tag is not recognized."""

        if isinstance(raw, cls):
            return raw
        text = str(raw or "").strip().lower()
        for member in cls:
            if member.value.lower() == text:
                return member
        raise ValidationError(
            f"Unrecognized holding status: {raw!r}",
            details={"allowed": [member.value for member in cls]},
        )


class RateKind(str, Enum):
    TAX = "tax"
    INFLATION = "inflation"
    CURRENCY = "currency"
    BENCHMARK = "benchmark"


class RiskTier(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


@dataclass(frozen=True)
class Holding:
    """One equity-compensation grant as supplied by the ingestion layer."""

    ticker: str
    company: str
    status: HoldingStatus
    quantity: float
    vested_quantity: float = 0.0
    exercise_price: float = 0.0
    strike_price: float = 0.0
    grant_date: Optional[date] = None
    vesting_start_date: Optional[date] = None
    vesting_end_date: Optional[date] = None
    expiration_date: Optional[date] = None
    sale_date: Optional[date] = None
    sale_price: Optional[float] = None
    current_price: Optional[float] = None
    type: str = "Stock Option"

    @property
    def effective_exercise_price(self) -> float:
        return self.exercise_price or self.strike_price or 0.0

    @property
    def effective_vested_quantity(self) -> float:
        return self.vested_quantity or self.quantity


@dataclass(frozen=True)
class Quote:
    """Latest tradable price for a ticker."""

    symbol: str
    price: float
    previous_close: Optional[float] = None
    timestamp: Optional[datetime] = None


@dataclass(frozen=True)
class Bracket:
    """A rate that applies up to ``upper`` (inclusive); ``None`` means unbounded."""

    upper: Optional[float]
    rate: float


@dataclass(frozen=True)
class IndiaTaxSchedule:
    stcg_rate: float
    ltcg_rate: float
    surcharge: tuple[Bracket, ...]
    cess_rate: float
    stt_delivery_rate: float
    holding_period_months: int
    fiscal_year: str


@dataclass(frozen=True)
class USTaxSchedule:
    short_term_federal: tuple[Bracket, ...]
    long_term_federal: tuple[Bracket, ...]
    niit_rate: float
    niit_threshold_single: float
    niit_threshold_married: float
    state_rates: Mapping[str, float]
    holding_period_months: int
    tax_year: int


@dataclass(frozen=True)
class TaxSnapshot:
    region: Region
    schedule: IndiaTaxSchedule | USTaxSchedule
    fetched_at: datetime
    source: str
    kind: RateKind = field(default=RateKind.TAX, init=False)

    @property
    def holding_period_months(self) -> int:
        return self.schedule.holding_period_months


@dataclass(frozen=True)
class InflationSnapshot:
    region: Region
    rate: float
    year: int
    fetched_at: datetime
    source: str
    kind: RateKind = field(default=RateKind.INFLATION, init=False)

    @property
    def rate_pct(self) -> float:
        return self.rate * 100.0


@dataclass(frozen=True)
class CurrencySnapshot:
    region: Region
    base_currency: str
    quote_currency: str
    rate: float
    fetched_at: datetime
    source: str
    kind: RateKind = field(default=RateKind.CURRENCY, init=False)

    @property
    def pair(self) -> str:
        return f"{self.base_currency}{self.quote_currency}"


@dataclass(frozen=True)
class Benchmark:
    """Market index used to frame expected returns; the statistics are percentages."""

    name: str
    cagr: float
    symbol: Optional[str] = None
    volatility: Optional[float] = None
    sharpe: Optional[float] = None
    returns: Mapping[str, float] = field(default_factory=dict)


@dataclass(frozen=True)
class BenchmarkSnapshot:
    region: Region
    primary: Benchmark
    secondary: Benchmark
    fetched_at: datetime
    source: str
    kind: RateKind = field(default=RateKind.BENCHMARK, init=False)


@dataclass(frozen=True)
class SymbolHistory:
    """Trailing compound growth for one ticker, keyed ``year1`` .. ``year10``."""

    symbol: str
    returns: Mapping[str, float]
    period_cagr: Optional[float]
    period_years: float
    last_close: float


@dataclass(frozen=True)
class TaxContext:
    """Investor details that select brackets within a region's schedule."""

    total_income: float = 0.0
    filing_status: str = "single"
    state: str = "median"


@dataclass(frozen=True)
class TaxBreakdown:
    regime: str
    is_long_term: bool
    base_rate: float
    effective_rate: float
    total_tax: float
    components: Mapping[str, float]


@dataclass(frozen=True)
class RowCalculation:
    ticker: str
    company: str
    status: HoldingStatus
    type: str
    is_active: bool
    quantity: float = 0.0
    vested_quantity: float = 0.0
    exercise_price: float = 0.0
    current_price: float = 0.0
    price_source: Optional[str] = None
    grant_date: Optional[date] = None
    vesting_start_date: Optional[date] = None
    vesting_end_date: Optional[date] = None
    sale_date: Optional[date] = None
    sale_price: Optional[float] = None
    holding_period_days: int = 0
    holding_period_years: float = 0.0
    cost_basis: float = 0.0
    current_value: float = 0.0
    unrealized_pnl: float = 0.0
    realized_pnl: float = 0.0
    tax: float = 0.0
    tax_regime: Optional[str] = None
    post_tax_pnl: float = 0.0
    inflation_adjusted_pnl: float = 0.0
    cagr: float = 0.0
    error: Optional[str] = None


@dataclass(frozen=True)
class PortfolioTotals:
    total_unrealized_pnl: float = 0.0
    total_realized_pnl: float = 0.0
    total_pnl: float = 0.0
    total_tax: float = 0.0
    total_post_tax_pnl: float = 0.0
    inflation_adjusted_pnl: float = 0.0
    total_cost_basis: float = 0.0
    total_current_value: float = 0.0
    portfolio_cagr: float = 0.0
    active_rows: int = 0
    inactive_rows: int = 0


@dataclass(frozen=True)
class QuantityPoint:
    year: int
    quantity: float


@dataclass(frozen=True)
class RealizedPoint:
    month: str
    realized_pnl: float


@dataclass(frozen=True)
class PnLPoint:
    year: int
    raw_unrealized_pnl: float
    post_tax_pnl: float
    inflation_adjusted_pnl: float


@dataclass(frozen=True)
class ChartSeries:
    esops_per_year: list[QuantityPoint]
    realized_pnl_timeline: list[RealizedPoint]
    unrealized_vs_post_tax_vs_inflation: list[PnLPoint]


@dataclass(frozen=True)
class SnapshotMeta:
    source: str
    fetched_at: datetime


@dataclass(frozen=True)
class ReportMeta:
    tax_rates_used: Mapping[str, Any]
    holding_period_months: int
    inflation_rate_pct: float
    price_fetch_timestamp: datetime
    tax: SnapshotMeta
    inflation: SnapshotMeta
    currency: SnapshotMeta
    valuation_date: date


@dataclass(frozen=True)
class AnalyticsReport:
    region: Region
    base_currency: str
    fx_rate: float
    totals: PortfolioTotals
    rows: list[RowCalculation]
    charts: ChartSeries
    meta: ReportMeta


@dataclass(frozen=True)
class GoalParameters:
    monthly_contribution: float = 0.0
    investment_horizon_years: int = 10
    risk_tier: RiskTier = RiskTier.MEDIUM
    goal_amount: float = 0.0
    planning_region: Region = Region.USA
    current_savings: float = 0.0
    other_investments: float = 0.0

    @property
    def annual_contribution(self) -> float:
        return self.monthly_contribution * 12


__all__ = [
    "AnalyticsReport",
    "Benchmark",
    "BenchmarkSnapshot",
    "Bracket",
    "ChartSeries",
    "CurrencySnapshot",
    "GoalParameters",
    "Holding",
    "HoldingStatus",
    "IndiaTaxSchedule",
    "InflationSnapshot",
    "PnLPoint",
    "PortfolioTotals",
    "QuantityPoint",
    "Quote",
    "RateKind",
    "RealizedPoint",
    "Region",
    "ReportMeta",
    "RiskTier",
    "RowCalculation",
    "SnapshotMeta",
    "SymbolHistory",
    "TaxBreakdown",
    "TaxContext",
    "TaxSnapshot",
    "USTaxSchedule",
]
