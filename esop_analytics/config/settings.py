"""Application configuration and environment helpers."""

from __future__ import annotations

from functools import lru_cache
from typing import Any

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_BASE_CURRENCY = "USD"


class AppSettings(BaseSettings):
    """Configuration options for the ESOP analytics service."""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    app_name: str = Field(default="ESOP Analytics & Projection Engine")
    log_level: str = Field(default="INFO")
    base_currency: str = Field(default=DEFAULT_BASE_CURRENCY)
    cors_origins: list[str] = Field(default_factory=lambda: ["http://localhost:3000"])

    fred_api_key: str | None = Field(default=None)
    exchangerate_api_key: str | None = Field(default=None)
    freecurrency_api_key: str | None = Field(default=None)
    currencyapi_key: str | None = Field(default=None)
    trading_economics_api_key: str | None = Field(default=None)
    tax_rates_url: str | None = Field(
        default=None,
        description="Optional JSON document publishing per-region tax schedules.",
    )

    rate_source_timeout_seconds: float = Field(default=5.0, gt=0)
    price_timeout_seconds: float = Field(default=8.0, gt=0)

    currency_cache_ttl_seconds: int = Field(default=5 * 60)
    tax_cache_ttl_seconds: int = Field(default=60 * 60)
    inflation_cache_ttl_seconds: int = Field(default=24 * 60 * 60)
    benchmark_cache_ttl_seconds: int = Field(default=24 * 60 * 60)
    history_cache_ttl_seconds: int = Field(default=6 * 60 * 60)

    usd_inr_fallback_rate: float = Field(
        default=83.0,
        description="Static USD/INR rate used when every live source fails; <= 0 disables it.",
    )
    india_inflation_fallback_pct: float = Field(default=5.5)
    usa_inflation_fallback_pct: float = Field(default=3.2)
    tax_static_fallback_enabled: bool = Field(
        default=True,
        description="Use the bundled statutory schedule when no remote tax source answers.",
    )

    benchmark_history_range: str = Field(default="10y", description="Yahoo chart range used for benchmark statistics.")
    benchmark_risk_free_pct: float = Field(
        default=0.0,
        description="Annual risk-free return, in percent, subtracted before computing Sharpe ratios.",
    )

    simulation_runs: int = Field(default=1000, gt=0)

    telemetry_enabled: bool = Field(default=False)
    telemetry_service_name: str = Field(default="esop-analytics")
    telemetry_otlp_endpoint: str | None = Field(default=None)
    telemetry_otlp_insecure: bool = Field(default=True)
    telemetry_sample_ratio: float = Field(default=1.0, ge=0.0, le=1.0)

    def dict_for_logging(self) -> dict[str, Any]:
        """Return a sanitized dict for logging purposes."""

        hidden = {
            "fred_api_key",
            "exchangerate_api_key",
            "freecurrency_api_key",
            "currencyapi_key",
            "trading_economics_api_key",
        }
        return {k: ("***" if k in hidden and v else v) for k, v in self.model_dump().items()}


@lru_cache(maxsize=1)
def get_settings(**overrides: Any) -> AppSettings:
    """Return cached application settings with optional overrides."""

    if overrides:
        return AppSettings(**overrides)
    return AppSettings()


__all__ = [
    "AppSettings",
    "DEFAULT_BASE_CURRENCY",
    "get_settings",
]
