"""FastAPI application entrypoint.

Run with ``uvicorn esop_analytics.main:app``.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import AsyncIterator

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from esop_analytics import __version__
from esop_analytics.api.handlers import register_exception_handlers
from esop_analytics.api.routes import api_router
from esop_analytics.config import AppSettings, get_settings
from esop_analytics.core.logging import setup_logging
from esop_analytics.core.telemetry import setup_telemetry

logger = logging.getLogger(__name__)


def create_app(settings: AppSettings | None = None) -> FastAPI:
    """Build the service: logging, telemetry, CORS, routes and error mapping."""

    settings = settings or get_settings()
    setup_logging(settings.log_level.upper())

    @asynccontextmanager
    async def lifespan(_: FastAPI) -> AsyncIterator[None]:
        logger.info("Starting %s %s with settings %s", settings.app_name, __version__, settings.dict_for_logging())
        yield
        logger.info("Stopping %s", settings.app_name)

    application = FastAPI(title=settings.app_name, version=__version__, lifespan=lifespan)
    setup_telemetry(application, settings)

    application.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_origin_regex=r"^https?://(localhost|127\.0\.0\.1)(:\d+)?$",
        allow_credentials=True,
        allow_methods=["GET", "POST"],
        allow_headers=["*"],
        expose_headers=["traceparent", "tracestate"],
    )

    @application.get("/health", tags=["health"])
    async def health() -> dict[str, str]:
        """Liveness probe; never touches rate sources."""

        return {
            "status": "ok",
            "version": __version__,
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "base_currency": settings.base_currency,
        }

    application.include_router(api_router)
    register_exception_handlers(application)
    return application


app = create_app()

__all__ = ["app", "create_app"]
