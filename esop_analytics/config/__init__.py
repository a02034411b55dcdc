"""Configuration package for the ESOP analytics service."""

from .settings import AppSettings, get_settings

__all__ = ["AppSettings", "get_settings"]
