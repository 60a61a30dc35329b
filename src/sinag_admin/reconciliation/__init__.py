"""Event reconciliation: typed events, claim aggregation, lifecycle buckets."""
