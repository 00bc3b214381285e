"""Impact report and metrics aggregation engine."""
