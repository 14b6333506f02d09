"""Tests for schedule settings."""

from datetime import UTC, date, datetime, time

from sleep_sentinel.analysis.sleep_metrics import target_midpoint
from sleep_sentinel.models.settings import ScheduleTarget, SleepSettings, format_clock_time


class TestSleepSettings:
    def test_defaults(self) -> None:
        settings = SleepSettings()

        assert settings.target_bedtime == time(23, 0)
        assert settings.target_wake == time(7, 0)
        assert settings.midpoint_tolerance_minutes == 45
        assert settings.reminders_enabled is False
        assert settings.has_completed_onboarding is False

    def test_target_sleep_hours_across_midnight(self) -> None:
        assert SleepSettings().target_sleep_hours == 8.0
        assert SleepSettings(target_bedtime=time(22, 30), target_wake=time(6, 0)).target_sleep_hours == 7.5

    def test_target_sleep_hours_same_day(self) -> None:
        settings = SleepSettings(target_bedtime=time(1, 0), target_wake=time(9, 30))

        assert settings.target_sleep_hours == 8.5

    def test_equal_bed_and_wake_is_a_full_day(self) -> None:
        settings = SleepSettings(target_bedtime=time(7, 0), target_wake=time(7, 0))

        assert settings.target_sleep_hours == 24.0
        assert target_midpoint(settings.schedule_target, date(2024, 3, 4), UTC) == datetime(
            2024, 3, 4, 19, 0, tzinfo=UTC
        )

    def test_schedule_target(self) -> None:
        target = SleepSettings(midpoint_tolerance_minutes=30).schedule_target

        assert target == ScheduleTarget(tolerance_minutes=30)
        assert target.tolerance_seconds == 1800.0

    def test_formatted_times(self) -> None:
        settings = SleepSettings()

        assert settings.bedtime_formatted == "11:00 PM"
        assert settings.wake_formatted == "7:00 AM"

    def test_json_roundtrip(self) -> None:
        settings = SleepSettings(target_bedtime=time(22, 15), reminders_enabled=True)

        assert SleepSettings.model_validate_json(settings.model_dump_json()) == settings


def test_format_clock_time_accepts_datetime() -> None:
    assert format_clock_time(datetime(2024, 3, 4, 12, 5)) == "12:05 PM"
