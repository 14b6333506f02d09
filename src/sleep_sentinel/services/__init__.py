"""Services layer - stateful orchestration around the analysis core."""

from .export_service import export_csv
from .fetch_coordinator import (
    FetchResult,
    FetchState,
    FetchStatus,
    IncrementalFetchCoordinator,
)
from .sleep_history_service import SleepHistoryService

__all__ = [
    "FetchResult",
    "FetchState",
    "FetchStatus",
    "IncrementalFetchCoordinator",
    "SleepHistoryService",
    "export_csv",
]
