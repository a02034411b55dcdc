"""Route registration helpers."""

from __future__ import annotations

from fastapi import APIRouter

from .analytics import router as analytics_router
from .planning import router as planning_router
from .rates import router as rates_router

api_router = APIRouter()
api_router.include_router(analytics_router, prefix="/analytics", tags=["analytics"])
api_router.include_router(planning_router, prefix="/planning", tags=["planning"])
api_router.include_router(rates_router, prefix="/rates", tags=["rates"])

__all__ = ["api_router"]
