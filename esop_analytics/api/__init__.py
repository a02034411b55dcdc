"""HTTP boundary for the analytics engine."""
