"""Sleep Sentinel data models."""

from sleep_sentinel.models.settings import ScheduleTarget, SleepSettings
from sleep_sentinel.models.sleep_data import (
    InferenceSource,
    InferredSleepCandidate,
    MotionActivity,
    NightHistory,
    NightSummary,
    RawSample,
    SleepEventType,
    SleepQuality,
    SleepStateKind,
)

__all__ = [
    "InferenceSource",
    "InferredSleepCandidate",
    "MotionActivity",
    "NightHistory",
    "NightSummary",
    "RawSample",
    "ScheduleTarget",
    "SleepEventType",
    "SleepQuality",
    "SleepSettings",
    "SleepStateKind",
]
