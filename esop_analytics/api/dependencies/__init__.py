"""Request-scoped dependencies for API routes."""

from .engine import get_engine

__all__ = ["get_engine"]
