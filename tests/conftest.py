"""Shared test fixtures for the Sleep Sentinel test suite."""

from collections.abc import Callable, Iterator
from datetime import UTC, date, datetime, time, timedelta
import logging

import pytest
from pytest import MonkeyPatch

from sleep_sentinel.core.config import get_settings
from sleep_sentinel.models.settings import ScheduleTarget
from sleep_sentinel.models.sleep_data import NightSummary, RawSample, SleepStateKind

# 2024-03-04 is a Monday
MONDAY = date(2024, 3, 4)

NightFactory = Callable[..., NightSummary]
SampleFactory = Callable[..., RawSample]


@pytest.fixture(autouse=True)
def isolated_settings(monkeypatch: MonkeyPatch, tmp_path) -> Iterator[None]:
    """Point configuration at a temporary store and reset the settings cache."""
    monkeypatch.setenv("ENVIRONMENT", "testing")
    monkeypatch.setenv("SLEEP_SENTINEL_STORE_PATH", str(tmp_path / "store.json"))
    monkeypatch.delenv("SLEEP_SENTINEL_TIMEZONE", raising=False)
    monkeypatch.delenv("SLEEP_SENTINEL_LOOKBACK_DAYS", raising=False)
    get_settings.cache_clear()
    # setup_logging() detaches the package logger from root, which hides it from caplog
    logging.getLogger("sleep_sentinel").propagate = True
    yield
    get_settings.cache_clear()


@pytest.fixture
def target() -> ScheduleTarget:
    """Default 23:00 - 07:00 schedule, 45 minute tolerance."""
    return ScheduleTarget()


@pytest.fixture
def make_sample() -> SampleFactory:
    def _make(
        start: datetime,
        end: datetime,
        state: SleepStateKind | str | int = SleepStateKind.IN_BED,
        **metadata,
    ) -> RawSample:
        return RawSample(start_time=start, end_time=end, state=state, source_metadata=metadata)

    return _make


@pytest.fixture
def make_night() -> NightFactory:
    """Build a night starting at `bed` (UTC) on `night_date`.

    Time in bed spans the whole envelope; time asleep defaults to 30 minutes
    less.
    """

    def _make(
        night_date: date,
        bed: time = time(23, 0),
        in_bed_hours: float = 8.0,
        asleep_hours: float | None = None,
    ) -> NightSummary:
        bed_day = night_date if bed.hour >= 12 else night_date + timedelta(days=1)
        bedtime = datetime.combine(bed_day, bed, tzinfo=UTC)
        wake = bedtime + timedelta(hours=in_bed_hours)
        in_bed = in_bed_hours * 3600
        asleep = (in_bed_hours - 0.5 if asleep_hours is None else asleep_hours) * 3600
        return NightSummary(
            night_date=night_date,
            time_in_bed=in_bed,
            time_asleep=asleep,
            bedtime=bedtime,
            wake_time=wake,
            midpoint=bedtime + (wake - bedtime) / 2,
            efficiency=asleep / in_bed * 100,
        )

    return _make


@pytest.fixture
def nights_on_schedule(make_night: NightFactory) -> list[NightSummary]:
    """Fourteen regular nights ending Sunday 2024-03-17, most recent first."""
    start = MONDAY
    nights = [make_night(start + timedelta(days=i)) for i in range(14)]
    return sorted(nights, key=lambda n: n.night_date, reverse=True)
