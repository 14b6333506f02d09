"""Longitudinal sleep metrics over the most recent nights.

All functions take nights ordered most recent first and look at a fixed-size
prefix. Each one returns None below its minimum sample count instead of a
misleading estimate.

Two notions of "midpoint" are used:
- consistency and social jetlag compare midpoints as decimal hour of day,
  since comparing absolute instants across days is meaningless for timing
  dispersion
- regularity and per-night deviation compare absolute instants against a
  single target midpoint built on one reference day
"""

from collections.abc import Sequence
from datetime import date, datetime, timedelta, tzinfo
import logging

import numpy as np
from pydantic import BaseModel, Field

from sleep_sentinel.analysis.night_assignment import hour_of_day
from sleep_sentinel.models.settings import ScheduleTarget
from sleep_sentinel.models.sleep_data import SECONDS_PER_HOUR, NightHistory, NightSummary

logger = logging.getLogger(__name__)

CONSISTENCY_WINDOW = 7
CONSISTENCY_MIN_VALUES = 3
JETLAG_WINDOW = 14
REGULARITY_WINDOW = 30
AVERAGE_SLEEP_WINDOW = 7
MAX_TIMING_SPREAD_HOURS = 12.0

# date.weekday(): Saturday = 5, Sunday = 6
WEEKEND_DAYS = frozenset({5, 6})


class SleepMetrics(BaseModel):
    """Snapshot of the longitudinal metrics for a history."""

    consistency_hours: float | None = Field(
        None, description="Population stdev of midpoint hour-of-day (last 7 nights)"
    )
    social_jetlag_hours: float | None = Field(
        None, description="Weekend vs weekday midpoint gap (last 14 nights)"
    )
    regularity_percent: float | None = Field(
        None, description="Share of nights on schedule (last 30 nights)"
    )
    average_sleep_hours: float | None = Field(
        None, description="Average time asleep (last 7 nights)"
    )
    nights_considered: int = Field(0, description="Nights in the history")


def _clamp(value: float, low: float = 0.0, high: float = MAX_TIMING_SPREAD_HOURS) -> float:
    return max(low, min(high, value))


def _as_list(nights: NightHistory | Sequence[NightSummary]) -> list[NightSummary]:
    if isinstance(nights, NightHistory):
        return nights.nights
    return list(nights)


def midpoint_hours(
    nights: Sequence[NightSummary], tz: tzinfo | None = None
) -> list[float]:
    """Decimal hour-of-day of each non-null midpoint."""
    return [hour_of_day(n.midpoint, tz) for n in nights if n.midpoint is not None]


def midpoint_stdev_hours(
    nights: Sequence[NightSummary],
    min_values: int,
    tz: tzinfo | None = None,
) -> float | None:
    """Population standard deviation of midpoint hour-of-day.

    Returns None when fewer than `min_values` midpoints are present.
    """
    hours = midpoint_hours(nights, tz)
    if len(hours) < min_values:
        return None
    return float(np.std(hours))


def midpoint_consistency(
    nights: NightHistory | Sequence[NightSummary], tz: tzinfo | None = None
) -> float | None:
    """Midpoint timing consistency in hours (lower is better), clamped to [0, 12]."""
    recent = _as_list(nights)[:CONSISTENCY_WINDOW]
    stdev = midpoint_stdev_hours(recent, CONSISTENCY_MIN_VALUES, tz)
    if stdev is None:
        return None
    return _clamp(stdev)


def social_jetlag_hours(
    nights: Sequence[NightSummary], tz: tzinfo | None = None
) -> float | None:
    """Unclamped weekend/weekday midpoint gap in hours.

    Weekend nights are those whose night date is a Saturday or Sunday.
    Needs at least one weekday and one weekend midpoint.
    """
    weekday_hours: list[float] = []
    weekend_hours: list[float] = []

    for night in nights:
        if night.midpoint is None:
            continue
        hour = hour_of_day(night.midpoint, tz)
        if night.night_date.weekday() in WEEKEND_DAYS:
            weekend_hours.append(hour)
        else:
            weekday_hours.append(hour)

    if not weekday_hours or not weekend_hours:
        return None

    return abs(float(np.mean(weekend_hours)) - float(np.mean(weekday_hours)))


def social_jetlag(
    nights: NightHistory | Sequence[NightSummary], tz: tzinfo | None = None
) -> float | None:
    """Social jetlag over the last 14 nights, clamped to [0, 12]."""
    jetlag = social_jetlag_hours(_as_list(nights)[:JETLAG_WINDOW], tz)
    if jetlag is None:
        return None
    return _clamp(jetlag)


def target_midpoint(
    target: ScheduleTarget,
    reference_date: date | None = None,
    tz: tzinfo | None = None,
) -> datetime:
    """The target sleep midpoint as an instant on `reference_date`.

    Bedtime and wake are placed on the reference day; a wake time at or
    before the bedtime rolls over to the following day. With no `tz` the
    result is naive.
    """
    reference_date = reference_date or date.today()
    bedtime = datetime.combine(reference_date, target.bedtime, tzinfo=tz)
    wake = datetime.combine(reference_date, target.wake_time, tzinfo=tz)
    if wake <= bedtime:
        wake += timedelta(days=1)
    return bedtime + (wake - bedtime) / 2


def _zone_for(midpoint: datetime, tz: tzinfo | None) -> tzinfo | None:
    # Timestamp-local: the target uses the same wall clock as the midpoint
    return tz if tz is not None else midpoint.tzinfo


def midpoint_deviation_seconds(
    night: NightSummary,
    target: ScheduleTarget,
    reference_date: date | None = None,
    tz: tzinfo | None = None,
) -> float | None:
    """Signed seconds between the night's midpoint and the target midpoint."""
    if night.midpoint is None:
        return None
    target_instant = target_midpoint(target, reference_date, _zone_for(night.midpoint, tz))
    return night.midpoint.timestamp() - target_instant.timestamp()


def midpoint_deviation_minutes(
    night: NightSummary,
    target: ScheduleTarget,
    reference_date: date | None = None,
    tz: tzinfo | None = None,
) -> int | None:
    """Signed minutes from target midpoint, truncated toward zero."""
    seconds = midpoint_deviation_seconds(night, target, reference_date, tz)
    if seconds is None:
        return None
    return int(seconds / 60)


def is_on_schedule(
    night: NightSummary,
    target: ScheduleTarget,
    reference_date: date | None = None,
    tz: tzinfo | None = None,
) -> bool:
    """Whether the night's midpoint is within tolerance of the target."""
    seconds = midpoint_deviation_seconds(night, target, reference_date, tz)
    if seconds is None:
        return False
    return abs(seconds) <= target.tolerance_seconds


def schedule_status_label(
    night: NightSummary,
    target: ScheduleTarget,
    reference_date: date | None = None,
    tz: tzinfo | None = None,
) -> str:
    """Human-readable schedule status for one night."""
    minutes = midpoint_deviation_minutes(night, target, reference_date, tz)
    if minutes is None:
        return "n/a"
    if is_on_schedule(night, target, reference_date, tz):
        return "On schedule"
    if minutes > 0:
        return f"Later by {minutes} min"
    return f"Earlier by {abs(minutes)} min"


def regularity_index(
    nights: NightHistory | Sequence[NightSummary],
    target: ScheduleTarget,
    reference_date: date | None = None,
    tz: tzinfo | None = None,
) -> float | None:
    """Percent of the last 30 nights (with a midpoint) that are on schedule."""
    recent = _as_list(nights)[:REGULARITY_WINDOW]
    with_midpoint = [n for n in recent if n.midpoint is not None]
    if not with_midpoint:
        return None

    reference_date = reference_date or date.today()
    in_window = sum(1 for n in with_midpoint if is_on_schedule(n, target, reference_date, tz))

    percentage = in_window / len(with_midpoint) * 100
    if not 0.0 <= percentage <= 100.0:
        logger.error("Regularity index out of range: %s", percentage)
        return None
    return percentage


def average_sleep_hours(
    nights: NightHistory | Sequence[NightSummary], window: int = AVERAGE_SLEEP_WINDOW
) -> float | None:
    """Average time asleep in hours over the last `window` nights."""
    asleep = [n.time_asleep for n in _as_list(nights)[:window] if n.time_asleep is not None]
    if not asleep:
        return None
    return float(np.mean(asleep)) / SECONDS_PER_HOUR


def compute_metrics(
    history: NightHistory | Sequence[NightSummary],
    target: ScheduleTarget,
    reference_date: date | None = None,
    tz: tzinfo | None = None,
) -> SleepMetrics:
    """Compute every longitudinal metric for `history`."""
    nights = _as_list(history)
    return SleepMetrics(
        consistency_hours=midpoint_consistency(nights, tz),
        social_jetlag_hours=social_jetlag(nights, tz),
        regularity_percent=regularity_index(nights, target, reference_date, tz),
        average_sleep_hours=average_sleep_hours(nights),
        nights_considered=len(nights),
    )
