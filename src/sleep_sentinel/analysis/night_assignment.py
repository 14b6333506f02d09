"""Night assignment - which calendar night a timestamp belongs to.

A night is keyed by the calendar date on which it started. Anything before
local noon belongs to the previous day's night, so a 2 AM sample on March 5
is part of the night of March 4. Exactly 12:00 belongs to the current day.
"""

from datetime import date, datetime, timedelta, tzinfo

NIGHT_BOUNDARY_HOUR = 12


def to_local(timestamp: datetime, tz: tzinfo | None = None) -> datetime:
    """Express `timestamp` on the wall clock used for bucketing.

    With an explicit `tz` the timestamp is converted into it. Otherwise the
    timestamp's own wall clock is used as-is (naive values are local already).
    """
    if tz is None:
        return timestamp
    return timestamp.astimezone(tz)


def night_for(timestamp: datetime, tz: tzinfo | None = None) -> date:
    """Return the night date `timestamp` is bucketed into."""
    local = to_local(timestamp, tz)
    if local.hour < NIGHT_BOUNDARY_HOUR:
        return local.date() - timedelta(days=1)
    return local.date()


def hour_of_day(timestamp: datetime, tz: tzinfo | None = None) -> float:
    """Decimal hour of day in [0, 24), e.g. 03:30 -> 3.5."""
    local = to_local(timestamp, tz)
    return local.hour + local.minute / 60.0 + local.second / 3600.0
