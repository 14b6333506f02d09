"""Sample Processors Package.

Processors that fold raw health-data samples into derived records.
"""

from .night_aggregator import NightAggregator, aggregate_nights

__all__ = [
    "NightAggregator",
    "aggregate_nights",
]
