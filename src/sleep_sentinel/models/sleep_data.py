"""Sleep data models.

Pydantic models for the raw interval samples received from the health-data
source and for the per-night summaries derived from them.
"""

from collections.abc import Iterator
from datetime import date, datetime
from enum import StrEnum
from typing import Any, ClassVar

from pydantic import (
    AwareDatetime,
    BaseModel,
    ConfigDict,
    Field,
    field_validator,
    model_validator,
)

SECONDS_PER_HOUR = 3600.0

# Efficiency bands for the per-night quality rating (percent)
EXCELLENT_EFFICIENCY = 85.0
GOOD_EFFICIENCY = 70.0
FAIR_EFFICIENCY = 50.0


class SleepStateKind(StrEnum):
    """Classified sleep/wake state of a raw interval."""

    IN_BED = "in_bed"
    ASLEEP_UNSPECIFIED = "asleep_unspecified"
    ASLEEP_CORE = "asleep_core"
    ASLEEP_DEEP = "asleep_deep"
    ASLEEP_REM = "asleep_rem"
    AWAKE = "awake"

    @property
    def is_asleep(self) -> bool:
        return self in _ASLEEP_KINDS

    @classmethod
    def parse(cls, value: Any) -> "SleepStateKind":
        """Resolve a state from its name, a HealthKit raw value or identifier.

        Raises:
            ValueError: If the value does not name a known state.
        """
        if isinstance(value, cls):
            return value
        if isinstance(value, bool):
            raise ValueError(f"Unrecognized sleep state: {value!r}")
        if isinstance(value, int):
            if value in _HEALTHKIT_RAW_VALUES:
                return _HEALTHKIT_RAW_VALUES[value]
            raise ValueError(f"Unrecognized sleep state: {value!r}")
        if isinstance(value, str):
            key = value.strip()
            if key in _HEALTHKIT_IDENTIFIERS:
                return _HEALTHKIT_IDENTIFIERS[key]
            if key in _DISPLAY_NAMES:
                return _DISPLAY_NAMES[key]
            try:
                return cls(key.lower())
            except ValueError:
                pass
        raise ValueError(f"Unrecognized sleep state: {value!r}")


_ASLEEP_KINDS = frozenset(
    {
        SleepStateKind.ASLEEP_UNSPECIFIED,
        SleepStateKind.ASLEEP_CORE,
        SleepStateKind.ASLEEP_DEEP,
        SleepStateKind.ASLEEP_REM,
    }
)

# HKCategoryValueSleepAnalysis raw values
_HEALTHKIT_RAW_VALUES = {
    0: SleepStateKind.IN_BED,
    1: SleepStateKind.ASLEEP_UNSPECIFIED,
    2: SleepStateKind.AWAKE,
    3: SleepStateKind.ASLEEP_CORE,
    4: SleepStateKind.ASLEEP_DEEP,
    5: SleepStateKind.ASLEEP_REM,
}

_HEALTHKIT_IDENTIFIERS = {
    "HKCategoryValueSleepAnalysisInBed": SleepStateKind.IN_BED,
    "HKCategoryValueSleepAnalysisAsleep": SleepStateKind.ASLEEP_UNSPECIFIED,
    "HKCategoryValueSleepAnalysisAsleepUnspecified": SleepStateKind.ASLEEP_UNSPECIFIED,
    "HKCategoryValueSleepAnalysisAwake": SleepStateKind.AWAKE,
    "HKCategoryValueSleepAnalysisAsleepCore": SleepStateKind.ASLEEP_CORE,
    "HKCategoryValueSleepAnalysisAsleepDeep": SleepStateKind.ASLEEP_DEEP,
    "HKCategoryValueSleepAnalysisAsleepREM": SleepStateKind.ASLEEP_REM,
}


_DISPLAY_NAMES = {
    "InBed": SleepStateKind.IN_BED,
    "AsleepUnspecified": SleepStateKind.ASLEEP_UNSPECIFIED,
    "AsleepCore": SleepStateKind.ASLEEP_CORE,
    "AsleepDeep": SleepStateKind.ASLEEP_DEEP,
    "AsleepREM": SleepStateKind.ASLEEP_REM,
    "Awake": SleepStateKind.AWAKE,
}


class SleepQuality(StrEnum):
    """Per-night quality rating derived from sleep efficiency."""

    EXCELLENT = "excellent"
    GOOD = "good"
    FAIR = "fair"
    POOR = "poor"
    UNKNOWN = "unknown"


class RawSample(BaseModel):
    """One interval of a classified sleep/wake state."""

    model_config = ConfigDict(frozen=True)

    start_time: AwareDatetime = Field(description="Interval start, with UTC offset")
    end_time: AwareDatetime = Field(description="Interval end (>= start)")
    state: SleepStateKind = Field(description="Classified sleep/wake state")
    source_metadata: dict[str, Any] = Field(
        default_factory=dict,
        description="Opaque provenance; carries confidence for inferred samples",
    )

    @field_validator("state", mode="before")
    @classmethod
    def parse_state(cls, v: Any) -> SleepStateKind:
        return SleepStateKind.parse(v)

    @model_validator(mode="after")
    def validate_interval(self) -> "RawSample":
        if self.end_time < self.start_time:
            msg = "Sample end time must not precede its start time"
            raise ValueError(msg)
        return self

    @property
    def duration_seconds(self) -> float:
        return (self.end_time - self.start_time).total_seconds()


class NightSummary(BaseModel):
    """Aggregated record for one calendar night.

    Durations are seconds. Every derived field is optional; an incomplete
    night is represented with None values rather than an error.
    """

    night_date: date = Field(description="Calendar date identifying the night")
    time_in_bed: float | None = Field(None, ge=0, description="Time in bed (seconds)")
    time_asleep: float | None = Field(None, ge=0, description="Time asleep (seconds)")
    bedtime: datetime | None = Field(None, description="Earliest sample start")
    wake_time: datetime | None = Field(None, description="Latest sample end")
    midpoint: datetime | None = Field(None, description="Center of the sleep envelope")
    efficiency: float | None = Field(
        None, ge=0, le=100, description="time_asleep / time_in_bed * 100"
    )

    @property
    def sleep_hours(self) -> float | None:
        if self.time_asleep is None:
            return None
        return self.time_asleep / SECONDS_PER_HOUR

    @property
    def in_bed_hours(self) -> float | None:
        if self.time_in_bed is None:
            return None
        return self.time_in_bed / SECONDS_PER_HOUR

    @property
    def sleep_formatted(self) -> str:
        """Time asleep as e.g. '7h 30m'."""
        if self.time_asleep is None:
            return "n/a"
        hours = int(self.time_asleep // 3600)
        minutes = int((self.time_asleep % 3600) // 60)
        return f"{hours}h {minutes:02d}m"

    @property
    def is_complete(self) -> bool:
        return (
            self.bedtime is not None
            and self.wake_time is not None
            and self.time_asleep is not None
        )

    @property
    def quality(self) -> SleepQuality:
        if self.efficiency is None:
            return SleepQuality.UNKNOWN
        if self.efficiency >= EXCELLENT_EFFICIENCY:
            return SleepQuality.EXCELLENT
        if self.efficiency >= GOOD_EFFICIENCY:
            return SleepQuality.GOOD
        if self.efficiency >= FAIR_EFFICIENCY:
            return SleepQuality.FAIR
        return SleepQuality.POOR


class NightHistory(BaseModel):
    """Persisted collection of nights, unique by date, most recent first."""

    nights: list[NightSummary] = Field(default_factory=list)

    def __len__(self) -> int:
        return len(self.nights)

    def __iter__(self) -> Iterator[NightSummary]:  # type: ignore[override]
        return iter(self.nights)

    def recent(self, count: int) -> list[NightSummary]:
        """The most recent `count` nights."""
        return self.nights[:count]

    def find(self, night_date: date) -> NightSummary | None:
        for night in self.nights:
            if night.night_date == night_date:
                return night
        return None

    def contains(self, night_date: date) -> bool:
        return self.find(night_date) is not None

    @property
    def newest(self) -> NightSummary | None:
        return self.nights[0] if self.nights else None

    @property
    def oldest(self) -> NightSummary | None:
        return self.nights[-1] if self.nights else None


class SleepEventType(StrEnum):
    """Kind of sleep event suggested by motion inference."""

    SLEEP_ONSET = "sleep_onset"
    WAKE = "wake"


class InferenceSource(StrEnum):
    """Heuristic that produced an inferred sleep candidate."""

    MOTION_ACTIVITY = "motion_activity"
    DEVICE_MOTION = "device_motion"
    PATTERN = "pattern"


class InferredSleepCandidate(BaseModel):
    """A candidate sleep onset or wake event inferred from motion data."""

    timestamp: AwareDatetime
    event_type: SleepEventType
    confidence: float = Field(ge=0.0, le=1.0)
    source: InferenceSource = InferenceSource.MOTION_ACTIVITY
    user_accepted: bool = False
    user_rejected: bool = False


class MotionActivity(BaseModel):
    """One activity classification record from the motion co-processor."""

    HIGH_CONFIDENCE: ClassVar[int] = 2

    start_time: AwareDatetime
    stationary: bool = False
    walking: bool = False
    running: bool = False
    confidence_level: int = Field(0, ge=0, le=2, description="0 low, 1 medium, 2 high")
