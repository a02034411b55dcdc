import asyncio
import inspect
import pathlib
import sys
from datetime import date, datetime, timezone

import pytest

ROOT = pathlib.Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from esop_analytics.models import (  # noqa: E402
    InflationSnapshot,
    Region,
    TaxSnapshot,
)
from esop_analytics.providers.tax import statutory_schedule  # noqa: E402

FIXED_NOW = datetime(2025, 6, 30, 12, 0, tzinfo=timezone.utc)
DAY_SECONDS = 24 * 60 * 60


def pytest_configure(config: pytest.Config) -> None:
    """Register custom markers used in the suite."""

    config.addinivalue_line("markers", "asyncio: mark test as running in an asyncio event loop")


@pytest.hookimpl(tryfirst=True)
def pytest_pyfunc_call(pyfuncitem: pytest.Function) -> bool | None:
    """Execute async test functions without requiring pytest-asyncio."""

    test_function = pyfuncitem.obj
    if inspect.iscoroutinefunction(test_function):
        loop = asyncio.new_event_loop()
        try:
            asyncio.set_event_loop(loop)
            loop.run_until_complete(test_function(**pyfuncitem.funcargs))
        finally:
            asyncio.set_event_loop(None)
            loop.close()
        return True
    return None


class FakeClock:
    """Monotonic clock the tests advance by hand."""

    def __init__(self, start: float = 0.0) -> None:
        self.value = start

    def __call__(self) -> float:
        return self.value

    def advance(self, seconds: float) -> None:
        self.value += seconds


@pytest.fixture
def fake_clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def us_tax() -> TaxSnapshot:
    return TaxSnapshot(
        region=Region.USA,
        schedule=statutory_schedule(Region.USA, date(2025, 6, 30)),
        fetched_at=FIXED_NOW,
        source="statutory_schedule",
    )


@pytest.fixture
def india_tax() -> TaxSnapshot:
    return TaxSnapshot(
        region=Region.INDIA,
        schedule=statutory_schedule(Region.INDIA, date(2025, 6, 30)),
        fetched_at=FIXED_NOW,
        source="statutory_schedule",
    )


@pytest.fixture
def us_inflation() -> InflationSnapshot:
    return InflationSnapshot(region=Region.USA, rate=0.032, year=2025, fetched_at=FIXED_NOW, source="fallback")


@pytest.fixture
def zero_inflation() -> InflationSnapshot:
    return InflationSnapshot(region=Region.USA, rate=0.0, year=2025, fetched_at=FIXED_NOW, source="test")


def daily_chart(growth_pct: float, *, days: int, wiggle: bool = False) -> dict:
    """Yahoo chart body with one close per day ending at ``FIXED_NOW``.

    Closes compound at ``growth_pct`` per 365 days. ``wiggle`` lifts every fifth
    close by 1% while leaving the closes at whole-year offsets untouched.
    """

    end = int(FIXED_NOW.timestamp())
    timestamps: list[int] = []
    closes: list[float] = []
    for back in range(days, -1, -1):
        close = 100.0 * (1 + growth_pct / 100) ** ((days - back) / 365)
        if wiggle and back % 5 == 2:
            close *= 1.01
        timestamps.append(end - back * DAY_SECONDS)
        closes.append(close)
    return {
        "chart": {
            "result": [
                {
                    "meta": {"regularMarketPrice": closes[-1]},
                    "timestamp": timestamps,
                    "indicators": {"quote": [{"close": closes}], "adjclose": [{"adjclose": closes}]},
                }
            ],
            "error": None,
        }
    }
