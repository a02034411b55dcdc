"""Application wiring tests: settings, logging, telemetry and the health probe."""

from __future__ import annotations

import logging

import pytest
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient

from esop_analytics import __version__
from esop_analytics.config import AppSettings
from esop_analytics.core.logging import setup_logging
from esop_analytics.core.telemetry import OtlpOptions, analytics_span, setup_telemetry
from esop_analytics.main import create_app


def test_settings_mask_secrets():
    settings = AppSettings(_env_file=None, fred_api_key="abc123", currencyapi_key=None)
    logged = settings.dict_for_logging()

    assert logged["fred_api_key"] == "***"
    assert logged["currencyapi_key"] is None
    assert logged["usd_inr_fallback_rate"] == 83.0


def test_setup_logging_installs_one_handler():
    root = logging.getLogger()
    before = len(root.handlers)

    setup_logging("DEBUG")
    setup_logging(logging.INFO)

    assert len(root.handlers) <= before + 1
    assert root.level == logging.INFO
    assert logging.getLogger("httpx").level == logging.WARNING


@pytest.mark.asyncio
async def test_health_and_request_validation():
    app = create_app(AppSettings(_env_file=None, telemetry_enabled=False))

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        health = await client.get("/health")
        invalid = await client.post("/analytics/compute", json={"holdings": []})

    assert health.status_code == 200
    assert health.json()["status"] == "ok"
    assert health.json()["version"] == __version__
    assert invalid.status_code == 422


def test_telemetry_stays_off_when_disabled():
    settings = AppSettings(_env_file=None, telemetry_enabled=False, telemetry_otlp_endpoint="collector:4317")
    assert setup_telemetry(FastAPI(), settings) is False
    assert OtlpOptions.from_settings(settings).kwargs() == {"insecure": True, "endpoint": "collector:4317"}

    with analytics_span("analytics.test", region="usa", missing=None) as span:
        assert span is not None
