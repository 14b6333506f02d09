"""Tests for folding raw sleep samples into per-night summaries."""

from datetime import UTC, date, datetime, timedelta

import pytest

from sleep_sentinel.analysis.processors.night_aggregator import (
    NightAggregator,
    aggregate_nights,
    coerce_samples,
    partition_by_night,
)
from sleep_sentinel.models.sleep_data import RawSample, SleepStateKind


def at(day: int, hour: int, minute: int = 0) -> datetime:
    return datetime(2024, 3, day, hour, minute, tzinfo=UTC)


class TestAggregateNights:
    """Test night aggregation semantics."""

    def test_in_bed_and_core_sleep_night(self, make_sample) -> None:
        samples = [
            make_sample(at(4, 23), at(5, 7), SleepStateKind.IN_BED),
            make_sample(at(4, 23, 10), at(5, 6, 50), SleepStateKind.ASLEEP_CORE),
        ]

        nights = aggregate_nights(samples)

        assert len(nights) == 1
        night = nights[0]
        assert night.night_date == date(2024, 3, 4)
        # Asleep time also counts toward time in bed: 8h + 7h40m
        assert night.time_in_bed == pytest.approx(56400.0)
        assert night.in_bed_hours == pytest.approx(15 + 40 / 60)
        assert night.time_asleep == pytest.approx(27600.0)
        assert night.efficiency == pytest.approx(48.936, abs=0.01)
        assert night.bedtime == at(4, 23)
        assert night.wake_time == at(5, 7)
        assert night.midpoint == at(5, 3)

    def test_envelope_includes_awake_intervals(self, make_sample) -> None:
        samples = [
            make_sample(at(4, 22, 30), at(4, 23), SleepStateKind.AWAKE),
            make_sample(at(4, 23), at(5, 6), SleepStateKind.ASLEEP_DEEP),
            make_sample(at(5, 6), at(5, 7), SleepStateKind.AWAKE),
        ]

        night = aggregate_nights(samples)[0]

        assert night.bedtime == at(4, 22, 30)
        assert night.wake_time == at(5, 7)
        assert night.time_asleep == pytest.approx(7 * 3600)
        assert night.time_in_bed == pytest.approx(7 * 3600)
        assert night.efficiency == pytest.approx(100.0)

    def test_awake_only_night_has_null_totals(self, make_sample) -> None:
        night = aggregate_nights([make_sample(at(4, 23), at(5, 1), SleepStateKind.AWAKE)])[0]

        assert night.time_in_bed is None
        assert night.time_asleep is None
        assert night.efficiency is None
        assert night.bedtime == at(4, 23)
        assert night.midpoint == at(5, 0)

    def test_in_bed_only_night_has_no_efficiency(self, make_sample) -> None:
        night = aggregate_nights([make_sample(at(4, 23), at(5, 7))])[0]

        assert night.time_in_bed == pytest.approx(8 * 3600)
        assert night.time_asleep is None
        assert night.efficiency is None
        assert night.is_complete is False

    def test_efficiency_never_exceeds_100(self, make_sample) -> None:
        samples = [
            make_sample(at(4, 23), at(5, 1), SleepStateKind.ASLEEP_REM),
            make_sample(at(5, 1), at(5, 4), SleepStateKind.ASLEEP_CORE),
            make_sample(at(5, 4), at(5, 6), SleepStateKind.ASLEEP_UNSPECIFIED),
        ]

        night = aggregate_nights(samples)[0]

        assert 0 <= night.efficiency <= 100

    def test_nights_sorted_most_recent_first(self, make_sample) -> None:
        samples = [
            make_sample(at(day, 23), at(day + 1, 6), SleepStateKind.ASLEEP_CORE)
            for day in (2, 5, 3)
        ]

        nights = aggregate_nights(samples)

        assert [n.night_date.day for n in nights] == [5, 3, 2]

    def test_morning_sample_joins_previous_night(self, make_sample) -> None:
        samples = [
            make_sample(at(4, 23), at(5, 2), SleepStateKind.ASLEEP_CORE),
            make_sample(at(5, 11, 30), at(5, 12, 30), SleepStateKind.ASLEEP_CORE),
        ]

        nights = aggregate_nights(samples)

        assert len(nights) == 1
        assert nights[0].wake_time == at(5, 12, 30)

    def test_empty_input(self) -> None:
        assert aggregate_nights([]) == []


class TestMalformedSamples:
    """Test that bad samples are skipped without aborting the batch."""

    def test_skips_end_before_start(self, make_sample) -> None:
        samples = [
            {"start_time": at(5, 7), "end_time": at(4, 23), "state": "in_bed"},
            make_sample(at(4, 23), at(5, 7)),
        ]

        nights = aggregate_nights(samples)

        assert len(nights) == 1
        assert nights[0].time_in_bed == pytest.approx(8 * 3600)

    def test_skips_unknown_state(self) -> None:
        samples = [
            {"start_time": at(4, 23), "end_time": at(5, 7), "state": "Dozing"},
            {"start_time": at(4, 23), "end_time": at(5, 7), "state": 3},
        ]

        valid = coerce_samples(samples)

        assert len(valid) == 1
        assert valid[0].state is SleepStateKind.ASLEEP_CORE

    def test_skip_is_logged(self, caplog: pytest.LogCaptureFixture) -> None:
        bad = {"start_time": at(4, 23), "end_time": at(5, 7), "state": 42}

        with caplog.at_level("WARNING"):
            assert coerce_samples([bad]) == []

        assert "MALFORMED_SAMPLE" in caplog.text

    def test_skips_timestamps_without_offset(self) -> None:
        samples = [
            {
                "start_time": "2024-03-04T23:00:00",
                "end_time": "2024-03-05T07:00:00",
                "state": "in_bed",
            },
            {
                "start_time": "2024-03-04T23:10:00+00:00",
                "end_time": "2024-03-05T06:50:00+00:00",
                "state": "asleep_core",
            },
        ]

        nights = aggregate_nights(samples)

        assert len(nights) == 1
        assert nights[0].bedtime == at(4, 23, 10)
        assert nights[0].time_in_bed == pytest.approx(nights[0].time_asleep)

    def test_all_malformed_yields_no_nights(self) -> None:
        assert aggregate_nights([{"state": "in_bed"}]) == []


class TestPartitionAndProcessor:
    def test_partition_by_night(self, make_sample) -> None:
        samples = [
            make_sample(at(4, 23), at(5, 1)),
            make_sample(at(5, 3), at(5, 5)),
            make_sample(at(5, 22), at(5, 23)),
        ]

        partitions = partition_by_night(samples)

        assert sorted(partitions) == [date(2024, 3, 4), date(2024, 3, 5)]
        assert len(partitions[date(2024, 3, 4)]) == 2

    def test_processor_wraps_aggregation(self, make_sample) -> None:
        aggregator = NightAggregator()
        start = at(4, 23)
        samples = [
            RawSample(
                start_time=start,
                end_time=start + timedelta(hours=7),
                state=SleepStateKind.ASLEEP_CORE,
            )
        ]

        nights = aggregator.process(samples)

        assert len(nights) == 1
        assert nights[0].sleep_formatted == "7h 00m"

    def test_processor_empty(self) -> None:
        assert NightAggregator().process([]) == []
