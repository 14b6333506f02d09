"""Tests for sleep data models."""

from datetime import UTC, date, datetime

from pydantic import ValidationError
import pytest

from sleep_sentinel.models.sleep_data import (
    MotionActivity,
    NightHistory,
    NightSummary,
    RawSample,
    SleepQuality,
    SleepStateKind,
)

START = datetime(2024, 3, 4, 23, 0, tzinfo=UTC)
END = datetime(2024, 3, 5, 7, 0, tzinfo=UTC)


class TestSleepStateKind:
    """Test parsing of the state kinds the source reports."""

    @pytest.mark.parametrize(
        ("value", "expected"),
        [
            (0, SleepStateKind.IN_BED),
            (1, SleepStateKind.ASLEEP_UNSPECIFIED),
            (2, SleepStateKind.AWAKE),
            (3, SleepStateKind.ASLEEP_CORE),
            (4, SleepStateKind.ASLEEP_DEEP),
            (5, SleepStateKind.ASLEEP_REM),
            ("HKCategoryValueSleepAnalysisAsleepDeep", SleepStateKind.ASLEEP_DEEP),
            ("InBed", SleepStateKind.IN_BED),
            ("asleep_rem", SleepStateKind.ASLEEP_REM),
            (SleepStateKind.AWAKE, SleepStateKind.AWAKE),
        ],
    )
    def test_parse(self, value, expected: SleepStateKind) -> None:
        assert SleepStateKind.parse(value) is expected

    @pytest.mark.parametrize("value", [6, -1, True, "Dozing", None, 1.5])
    def test_parse_rejects_unknown(self, value) -> None:
        with pytest.raises(ValueError):
            SleepStateKind.parse(value)

    def test_asleep_kinds(self) -> None:
        assert SleepStateKind.ASLEEP_CORE.is_asleep
        assert not SleepStateKind.IN_BED.is_asleep
        assert not SleepStateKind.AWAKE.is_asleep


class TestRawSample:
    def test_duration(self) -> None:
        sample = RawSample(start_time=START, end_time=END, state=0)

        assert sample.duration_seconds == 8 * 3600
        assert sample.source_metadata == {}

    def test_zero_length_allowed(self) -> None:
        assert RawSample(start_time=START, end_time=START, state=2).duration_seconds == 0

    def test_end_before_start_rejected(self) -> None:
        with pytest.raises(ValidationError):
            RawSample(start_time=END, end_time=START, state=0)

    def test_naive_timestamps_rejected(self) -> None:
        with pytest.raises(ValidationError):
            RawSample(start_time=START.replace(tzinfo=None), end_time=END, state=0)

    def test_frozen(self) -> None:
        sample = RawSample(start_time=START, end_time=END, state=0)

        with pytest.raises(ValidationError):
            sample.state = SleepStateKind.AWAKE


class TestNightSummary:
    """Test derived per-night properties."""

    def test_formatting_and_quality(self) -> None:
        night = NightSummary(
            night_date=date(2024, 3, 4),
            time_in_bed=8 * 3600,
            time_asleep=7.5 * 3600,
            bedtime=START,
            wake_time=END,
            efficiency=93.75,
        )

        assert night.sleep_hours == 7.5
        assert night.sleep_formatted == "7h 30m"
        assert night.quality is SleepQuality.EXCELLENT
        assert night.is_complete

    @pytest.mark.parametrize(
        ("efficiency", "quality"),
        [
            (None, SleepQuality.UNKNOWN),
            (49.9, SleepQuality.POOR),
            (50.0, SleepQuality.FAIR),
            (70.0, SleepQuality.GOOD),
            (85.0, SleepQuality.EXCELLENT),
        ],
    )
    def test_quality_bands(self, efficiency, quality) -> None:
        night = NightSummary(night_date=date(2024, 3, 4), efficiency=efficiency)

        assert night.quality is quality

    def test_incomplete_night(self) -> None:
        night = NightSummary(night_date=date(2024, 3, 4))

        assert night.sleep_hours is None
        assert night.sleep_formatted == "n/a"
        assert not night.is_complete

    def test_efficiency_bounds(self) -> None:
        with pytest.raises(ValidationError):
            NightSummary(night_date=date(2024, 3, 4), efficiency=100.5)


class TestNightHistory:
    def test_lookups(self, make_night) -> None:
        nights = [make_night(date(2024, 3, day)) for day in (6, 5, 4)]
        history = NightHistory(nights=nights)

        assert len(history) == 3
        assert history.newest.night_date == date(2024, 3, 6)
        assert history.oldest.night_date == date(2024, 3, 4)
        assert history.recent(2) == nights[:2]
        assert history.find(date(2024, 3, 5)) == nights[1]
        assert history.find(date(2024, 3, 1)) is None
        assert not history.contains(date(2024, 3, 7))

    def test_json_roundtrip(self, make_night) -> None:
        history = NightHistory(nights=[make_night(date(2024, 3, 4))])

        assert NightHistory.model_validate_json(history.model_dump_json()) == history


class TestMotionActivity:
    def test_confidence_level_range(self) -> None:
        with pytest.raises(ValidationError):
            MotionActivity(start_time=START, confidence_level=3)
