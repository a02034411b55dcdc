"""Valuation, aggregation, simulation and advisory services."""
