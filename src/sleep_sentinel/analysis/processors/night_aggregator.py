"""Night Aggregator - folds raw sleep intervals into per-night summaries.

Samples are bucketed with the noon-boundary night rule, then each night is
walked in start order:

- bedtime / wake time span the full envelope of ALL samples, Awake included,
  so brief nighttime wake intervals do not clip the session boundaries
- InBed intervals add to time in bed
- Asleep intervals (any stage) add to time asleep AND to time in bed, so
  nights reported only as sleep stages still get a time in bed
- Awake intervals add to neither total

A night that reports both InBed and Asleep intervals for the same span
therefore counts that span twice in time in bed. That matches the data
source's documented behavior.
"""

from collections import defaultdict
from collections.abc import Iterable, Mapping
from datetime import date, datetime, timedelta, tzinfo
import logging
from typing import Any

from pydantic import ValidationError

from sleep_sentinel.analysis.night_assignment import night_for
from sleep_sentinel.core.exceptions import MalformedSampleError
from sleep_sentinel.models.sleep_data import NightSummary, RawSample, SleepStateKind

logger = logging.getLogger(__name__)

SampleInput = RawSample | Mapping[str, Any]


def coerce_samples(samples: Iterable[SampleInput]) -> list[RawSample]:
    """Validate incoming samples, skipping malformed ones.

    A single bad sample never aborts the batch; it is logged and dropped.
    """
    valid: list[RawSample] = []
    for item in samples:
        try:
            valid.append(_coerce_sample(item))
        except MalformedSampleError as e:
            logger.warning("Skipping sample: %s", e)
    return valid


def _coerce_sample(item: SampleInput) -> RawSample:
    if isinstance(item, RawSample):
        if item.end_time < item.start_time:
            raise MalformedSampleError("end time precedes start time", sample=item)
        return item
    try:
        return RawSample.model_validate(item)
    except ValidationError as e:
        reason = "; ".join(err["msg"] for err in e.errors())
        raise MalformedSampleError(reason, sample=item) from e


def partition_by_night(
    samples: Iterable[RawSample], tz: tzinfo | None = None
) -> dict[date, list[RawSample]]:
    """Group samples by the night their start time belongs to."""
    partitions: dict[date, list[RawSample]] = defaultdict(list)
    for sample in samples:
        partitions[night_for(sample.start_time, tz)].append(sample)
    return dict(partitions)


def summarize_night(night_date: date, samples: list[RawSample]) -> NightSummary:
    """Build the summary for one night's samples (at least one sample)."""
    in_bed_total = 0.0
    asleep_total = 0.0
    bedtime: datetime | None = None
    wake: datetime | None = None

    for sample in sorted(samples, key=lambda s: s.start_time):
        duration = sample.duration_seconds

        if bedtime is None or sample.start_time < bedtime:
            bedtime = sample.start_time
        if wake is None or sample.end_time > wake:
            wake = sample.end_time

        if sample.state is SleepStateKind.IN_BED:
            in_bed_total += duration
        elif sample.state.is_asleep:
            asleep_total += duration
            in_bed_total += duration

    midpoint: datetime | None = None
    if bedtime is not None and wake is not None:
        midpoint = bedtime + timedelta(seconds=(wake - bedtime).total_seconds() / 2)

    time_in_bed = in_bed_total if in_bed_total > 0 else None
    time_asleep = asleep_total if asleep_total > 0 else None

    efficiency: float | None = None
    if time_in_bed is not None and time_asleep is not None:
        efficiency = time_asleep / time_in_bed * 100

    return NightSummary(
        night_date=night_date,
        time_in_bed=time_in_bed,
        time_asleep=time_asleep,
        bedtime=bedtime,
        wake_time=wake,
        midpoint=midpoint,
        efficiency=efficiency,
    )


def aggregate_nights(
    samples: Iterable[SampleInput], tz: tzinfo | None = None
) -> list[NightSummary]:
    """Aggregate raw samples into one summary per night, most recent first."""
    valid = coerce_samples(samples)
    partitions = partition_by_night(valid, tz)

    nights = [
        summarize_night(night_date, night_samples)
        for night_date, night_samples in partitions.items()
        if night_samples
    ]
    nights.sort(key=lambda n: n.night_date, reverse=True)

    logger.debug(
        "Aggregated %d samples into %d nights", len(valid), len(nights)
    )
    return nights


class NightAggregator:
    """Processor wrapper around `aggregate_nights` bound to a timezone."""

    def __init__(self, tz: tzinfo | None = None) -> None:
        self.tz = tz
        self.logger = logging.getLogger(__name__)

    def process(self, samples: Iterable[SampleInput]) -> list[NightSummary]:
        samples = list(samples)
        if not samples:
            self.logger.info("No sleep samples provided")
            return []

        nights = aggregate_nights(samples, self.tz)
        self.logger.info(
            "Processed %d sleep samples into %d nights", len(samples), len(nights)
        )
        return nights
