"""Night aggregation, history merge, metrics and recommendations."""
