"""Motion-based sleep inference for nights with no recorded sleep data.

A lightweight heuristic over activity classifications:
- stationary periods starting between 20:00 and 04:59 suggest sleep onset
- walking or running starting between 04:00 and 11:59 suggests waking

Candidates are only offered for nights that have no summary yet, and an
accepted candidate is turned into a synthesized asleep sample that can be
written back to the health-data source.
"""

from collections.abc import Iterable
from datetime import timedelta, tzinfo
import logging

from sleep_sentinel.analysis.night_assignment import night_for, to_local
from sleep_sentinel.models.sleep_data import (
    InferenceSource,
    InferredSleepCandidate,
    MotionActivity,
    NightHistory,
    RawSample,
    SleepEventType,
    SleepStateKind,
)

logger = logging.getLogger(__name__)

HIGH_CONFIDENCE = 0.8
LOW_CONFIDENCE = 0.6


def _is_onset_hour(hour: int) -> bool:
    return hour >= 20 or hour <= 4


def _is_wake_hour(hour: int) -> bool:
    return 4 <= hour <= 11


def infer_candidates(
    activities: Iterable[MotionActivity], tz: tzinfo | None = None
) -> list[InferredSleepCandidate]:
    """Classify activity records into sleep onset / wake candidates."""
    candidates: list[InferredSleepCandidate] = []

    for activity in activities:
        hour = to_local(activity.start_time, tz).hour
        confidence = (
            HIGH_CONFIDENCE
            if activity.confidence_level >= MotionActivity.HIGH_CONFIDENCE
            else LOW_CONFIDENCE
        )

        if activity.stationary and _is_onset_hour(hour):
            candidates.append(
                InferredSleepCandidate(
                    timestamp=activity.start_time,
                    event_type=SleepEventType.SLEEP_ONSET,
                    confidence=confidence,
                    source=InferenceSource.MOTION_ACTIVITY,
                )
            )

        if (activity.walking or activity.running) and _is_wake_hour(hour):
            candidates.append(
                InferredSleepCandidate(
                    timestamp=activity.start_time,
                    event_type=SleepEventType.WAKE,
                    confidence=confidence,
                    source=InferenceSource.MOTION_ACTIVITY,
                )
            )

    return candidates


def find_sleep_gaps(
    candidates: Iterable[InferredSleepCandidate],
    history: NightHistory,
    tz: tzinfo | None = None,
) -> list[InferredSleepCandidate]:
    """Keep only candidates whose night has no summary in `history`."""
    recorded = {night.night_date for night in history}
    gaps = [c for c in candidates if night_for(c.timestamp, tz) not in recorded]
    logger.info("Found %d inferred sleep candidates for nights without data", len(gaps))
    return gaps


def build_inferred_sample(
    candidate: InferredSleepCandidate, duration_seconds: float
) -> RawSample:
    """Synthesize an asleep interval for an accepted candidate.

    A sleep-onset candidate starts the interval; a wake candidate ends it.
    """
    duration = timedelta(seconds=duration_seconds)
    if candidate.event_type is SleepEventType.SLEEP_ONSET:
        start, end = candidate.timestamp, candidate.timestamp + duration
    else:
        start, end = candidate.timestamp - duration, candidate.timestamp

    return RawSample(
        start_time=start,
        end_time=end,
        state=SleepStateKind.ASLEEP_UNSPECIFIED,
        source_metadata={
            "was_user_entered": True,
            "app_inferred": True,
            "inference_source": candidate.source.value,
            "confidence": candidate.confidence,
        },
    )
