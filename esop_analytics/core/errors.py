"""Error taxonomy surfaced by the analytics engine."""

from __future__ import annotations

from typing import Any


class AnalyticsError(Exception):
    """Base class for errors that reach the caller with a structured payload."""

    status_code: int = 500
    code: str = "ANALYTICS_ERROR"

    def __init__(self, message: str, details: Any | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details

    def to_payload(self) -> dict[str, Any]:
        return {
            "status": "error",
            "code": self.code,
            "message": self.message,
            "details": self.details,
        }


class ValidationError(AnalyticsError):
    """Raised when a batch of holdings cannot be analysed as supplied."""

    status_code = 400
    code = "VALIDATION_ERROR"


class MixedRegionError(ValidationError):
    """Raised when a batch mixes tickers from more than one market region."""

    code = "MIXED_REGIONS"

    def __init__(self, message: str, breakdown: dict[str, list[str]]) -> None:
        super().__init__(message, details={"breakdown": breakdown})
        self.breakdown = breakdown


class RatesUnavailableError(AnalyticsError):
    """Raised when every source for a required rate failed and no fallback is configured."""

    status_code = 503
    code = "RATES_UNAVAILABLE"

    def __init__(self, kind: str, region: str, attempted: list[str]) -> None:
        super().__init__(
            f"Unable to resolve {kind} rates for {region}; data temporarily unavailable.",
            details={"kind": kind, "region": region, "attempted_sources": attempted},
        )
        self.kind = kind
        self.region = region
        self.attempted = attempted


class SourceError(RuntimeError):
    """Raised by a single rate source; the provider chain treats it as a miss."""


__all__ = [
    "AnalyticsError",
    "MixedRegionError",
    "RatesUnavailableError",
    "SourceError",
    "ValidationError",
]
