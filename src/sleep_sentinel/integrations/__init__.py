"""External health-data source integrations."""

from .healthkit import HealthKitBridgeSource, parse_sleep_samples

__all__ = [
    "HealthKitBridgeSource",
    "parse_sleep_samples",
]
