"""ESOP analytics and projection engine."""

__version__ = "0.1.0"
