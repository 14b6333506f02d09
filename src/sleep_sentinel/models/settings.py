"""User-configured sleep schedule and app preferences."""

from datetime import datetime, time

from pydantic import BaseModel, Field

DEFAULT_TARGET_BEDTIME = time(23, 0)
DEFAULT_TARGET_WAKE = time(7, 0)
DEFAULT_TOLERANCE_MINUTES = 45


def format_clock_time(value: time | datetime) -> str:
    """Short clock format, e.g. '11:00 PM'."""
    return value.strftime("%I:%M %p").lstrip("0")


class ScheduleTarget(BaseModel):
    """Target bedtime and wake time of day with an on-schedule tolerance."""

    bedtime: time = Field(default=DEFAULT_TARGET_BEDTIME)
    wake_time: time = Field(default=DEFAULT_TARGET_WAKE)
    tolerance_minutes: int = Field(default=DEFAULT_TOLERANCE_MINUTES, ge=0)

    @property
    def tolerance_seconds(self) -> float:
        return float(self.tolerance_minutes * 60)


class SleepSettings(BaseModel):
    """Persisted settings blob."""

    target_bedtime: time = Field(default=DEFAULT_TARGET_BEDTIME)
    target_wake: time = Field(default=DEFAULT_TARGET_WAKE)
    midpoint_tolerance_minutes: int = Field(default=DEFAULT_TOLERANCE_MINUTES, ge=0)
    reminders_enabled: bool = False
    has_completed_onboarding: bool = False

    @property
    def schedule_target(self) -> ScheduleTarget:
        return ScheduleTarget(
            bedtime=self.target_bedtime,
            wake_time=self.target_wake,
            tolerance_minutes=self.midpoint_tolerance_minutes,
        )

    @property
    def target_sleep_hours(self) -> float:
        """Hours of sleep the schedule allows; a wake at or before bedtime is next day."""
        bed_minutes = self.target_bedtime.hour * 60 + self.target_bedtime.minute
        wake_minutes = self.target_wake.hour * 60 + self.target_wake.minute
        if wake_minutes <= bed_minutes:
            bed_minutes -= 24 * 60
        return (wake_minutes - bed_minutes) / 60.0

    @property
    def bedtime_formatted(self) -> str:
        return format_clock_time(self.target_bedtime)

    @property
    def wake_formatted(self) -> str:
        return format_clock_time(self.target_wake)
