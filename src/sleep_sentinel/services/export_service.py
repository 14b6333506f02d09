"""CSV export of the night history."""

import csv
from datetime import date, datetime, tzinfo
import io

from sleep_sentinel.analysis.night_assignment import to_local
from sleep_sentinel.analysis.sleep_metrics import is_on_schedule
from sleep_sentinel.models.settings import ScheduleTarget, format_clock_time
from sleep_sentinel.models.sleep_data import SECONDS_PER_HOUR, NightHistory, NightSummary

CSV_HEADER = [
    "Date",
    "Time in Bed (hours)",
    "Time Asleep (hours)",
    "Efficiency (%)",
    "Bedtime",
    "Wake Time",
    "Midpoint",
    "On Schedule",
]
MISSING = "n/a"


def _hours(seconds: float | None) -> str:
    return MISSING if seconds is None else f"{seconds / SECONDS_PER_HOUR:.2f}"


def _clock(value: datetime | None, tz: tzinfo | None) -> str:
    return MISSING if value is None else format_clock_time(to_local(value, tz))


def night_to_row(
    night: NightSummary,
    target: ScheduleTarget,
    reference_date: date | None = None,
    tz: tzinfo | None = None,
) -> list[str]:
    efficiency = MISSING if night.efficiency is None else f"{night.efficiency:.1f}"
    on_schedule = is_on_schedule(night, target, reference_date, tz)
    return [
        night.night_date.isoformat(),
        _hours(night.time_in_bed),
        _hours(night.time_asleep),
        efficiency,
        _clock(night.bedtime, tz),
        _clock(night.wake_time, tz),
        _clock(night.midpoint, tz),
        "Yes" if on_schedule else "No",
    ]


def export_csv(
    history: NightHistory,
    target: ScheduleTarget,
    reference_date: date | None = None,
    tz: tzinfo | None = None,
) -> str:
    """Render the history as CSV text, oldest night first.

    "On Schedule" compares every night with the target on `reference_date`
    (default today), the same day regularity uses.
    """
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerow(CSV_HEADER)
    for night in sorted(history, key=lambda n: n.night_date):
        writer.writerow(night_to_row(night, target, reference_date, tz))
    return buffer.getvalue()
