"""Sleep Sentinel - night aggregation and sleep-health insights.

Pure entry points over the analysis core; none of them perform I/O.
"""

from collections.abc import Iterable, Sequence
from datetime import date, tzinfo

from sleep_sentinel.analysis.history_merge import merge_history
from sleep_sentinel.analysis.processors.night_aggregator import (
    SampleInput,
    aggregate_nights,
)
from sleep_sentinel.analysis.recommendations_engine import (
    Recommendation,
    generate_recommendations,
)
from sleep_sentinel.analysis.sleep_metrics import SleepMetrics, compute_metrics
from sleep_sentinel.models.settings import ScheduleTarget
from sleep_sentinel.models.sleep_data import NightHistory, NightSummary

__version__ = "1.0.0"


def aggregate(samples: Iterable[SampleInput], tz: tzinfo | None = None) -> list[NightSummary]:
    """Aggregate raw samples into per-night summaries, most recent first."""
    return aggregate_nights(samples, tz)


def merge(
    history: NightHistory | Iterable[NightSummary], nights: Iterable[NightSummary]
) -> NightHistory:
    """Merge nights into a history; incoming nights replace same-date entries."""
    return merge_history(history, nights)


def metrics(
    history: NightHistory | Sequence[NightSummary],
    target: ScheduleTarget | None = None,
    reference_date: date | None = None,
    tz: tzinfo | None = None,
) -> SleepMetrics:
    return compute_metrics(history, target or ScheduleTarget(), reference_date, tz)


def recommend(
    history: NightHistory | Sequence[NightSummary],
    target: ScheduleTarget | None = None,
    reference_date: date | None = None,
    tz: tzinfo | None = None,
) -> list[Recommendation]:
    return generate_recommendations(
        history, target or ScheduleTarget(), reference_date=reference_date, tz=tz
    )


__all__ = [
    "NightHistory",
    "NightSummary",
    "Recommendation",
    "ScheduleTarget",
    "SleepMetrics",
    "aggregate",
    "merge",
    "metrics",
    "recommend",
]
