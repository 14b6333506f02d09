"""Week-over-week sleep summary.

Compares the last seven nights with the seven before them: average sleep,
average efficiency, midpoint consistency, share of nights on schedule, and
the best / worst night of the week by time asleep.
"""

from collections.abc import Sequence
from datetime import date, timedelta, tzinfo

import numpy as np
from pydantic import BaseModel

from sleep_sentinel.analysis.sleep_metrics import (
    CONSISTENCY_MIN_VALUES,
    is_on_schedule,
    midpoint_stdev_hours,
)
from sleep_sentinel.models.settings import ScheduleTarget
from sleep_sentinel.models.sleep_data import SECONDS_PER_HOUR, NightHistory, NightSummary

DAYS_PER_WEEK = 7


class WeeklySummary(BaseModel):
    """Aggregate figures for one seven-night window."""

    start_date: date
    end_date: date  # inclusive
    nights_count: int = 0
    average_sleep_hours: float | None = None
    average_efficiency: float | None = None
    consistency_hours: float | None = None
    on_schedule_percent: float | None = None
    best_night: NightSummary | None = None
    worst_night: NightSummary | None = None


class WeekComparison(BaseModel):
    this_week: WeeklySummary
    last_week: WeeklySummary

    @property
    def sleep_change_hours(self) -> float | None:
        if self.this_week.average_sleep_hours is None or self.last_week.average_sleep_hours is None:
            return None
        return self.this_week.average_sleep_hours - self.last_week.average_sleep_hours


def week_window(weeks_ago: int, today: date | None = None) -> tuple[date, date]:
    """Inclusive (start, end) night dates of the week `weeks_ago` weeks back.

    Week 0 ends with last night (yesterday's night date).
    """
    today = today or date.today()
    end = today - timedelta(days=1 + DAYS_PER_WEEK * weeks_ago)
    start = end - timedelta(days=DAYS_PER_WEEK - 1)
    return start, end


def summarize_week(
    nights: NightHistory | Sequence[NightSummary],
    target: ScheduleTarget,
    weeks_ago: int = 0,
    today: date | None = None,
    tz: tzinfo | None = None,
) -> WeeklySummary:
    """Summarize the nights falling in one week window.

    On-schedule share is judged against the target on `today`.
    """
    today = today or date.today()
    start, end = week_window(weeks_ago, today)
    all_nights = nights.nights if isinstance(nights, NightHistory) else list(nights)
    week = [n for n in all_nights if start <= n.night_date <= end]

    summary = WeeklySummary(start_date=start, end_date=end, nights_count=len(week))
    if not week:
        return summary

    asleep = [n.time_asleep for n in week if n.time_asleep is not None]
    if asleep:
        summary.average_sleep_hours = float(np.mean(asleep)) / SECONDS_PER_HOUR

    efficiencies = [n.efficiency for n in week if n.efficiency is not None]
    if efficiencies:
        summary.average_efficiency = float(np.mean(efficiencies))

    summary.consistency_hours = midpoint_stdev_hours(week, CONSISTENCY_MIN_VALUES, tz)

    on_schedule = sum(1 for n in week if is_on_schedule(n, target, today, tz))
    summary.on_schedule_percent = on_schedule / len(week) * 100

    summary.best_night = max(week, key=lambda n: n.time_asleep or 0.0)
    summary.worst_night = min(week, key=lambda n: n.time_asleep or 0.0)
    return summary


def compare_weeks(
    nights: NightHistory | Sequence[NightSummary],
    target: ScheduleTarget,
    today: date | None = None,
    tz: tzinfo | None = None,
) -> WeekComparison:
    """This week versus last week."""
    return WeekComparison(
        this_week=summarize_week(nights, target, 0, today, tz),
        last_week=summarize_week(nights, target, 1, today, tz),
    )
