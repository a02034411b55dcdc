"""External data providers: rate chains, the rate cache and price oracles."""

from .cache import RateCache, build_rate_cache
from .currency import CurrencyRateProvider
from .history import BenchmarkProvider, HistoryOracle, YahooHistoryOracle
from .inflation import InflationRateProvider, adjust_for_inflation
from .prices import InMemoryPriceOracle, PriceOracle, YahooPriceOracle
from .registry import RateBundle, RateProviders, build_rate_providers
from .tax import TaxRateProvider

__all__ = [
    "BenchmarkProvider",
    "CurrencyRateProvider",
    "HistoryOracle",
    "InMemoryPriceOracle",
    "InflationRateProvider",
    "PriceOracle",
    "RateBundle",
    "RateCache",
    "RateProviders",
    "TaxRateProvider",
    "YahooHistoryOracle",
    "YahooPriceOracle",
    "adjust_for_inflation",
    "build_rate_cache",
    "build_rate_providers",
]
