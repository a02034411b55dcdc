"""Map engine errors onto JSON responses."""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from esop_analytics.core.errors import AnalyticsError

logger = logging.getLogger(__name__)


async def analytics_error_handler(request: Request, exc: AnalyticsError) -> JSONResponse:
    logger.warning("%s %s failed: %s (%s)", request.method, request.url.path, exc.message, exc.code)
    return JSONResponse(status_code=exc.status_code, content=exc.to_payload())


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(AnalyticsError, analytics_error_handler)


__all__ = ["analytics_error_handler", "register_exception_handlers"]
