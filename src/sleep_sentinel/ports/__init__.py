"""Ports layer - interfaces the aggregation core depends on.

Adapters in `sleep_sentinel.storage` and `sleep_sentinel.integrations`
implement them.
"""

from .health_source import HealthDataSourcePort, SampleBatch
from .storage import KeyValueStorePort

__all__ = [
    "HealthDataSourcePort",
    "KeyValueStorePort",
    "SampleBatch",
]
