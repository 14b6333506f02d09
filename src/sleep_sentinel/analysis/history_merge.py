"""History merge - combine freshly aggregated nights with the stored history.

Each incoming summary replaces the stored summary for its night wholesale.
Nights are never re-aggregated from the union of every sample seen for them,
so a night whose envelope was locked in by an earlier partial fetch keeps it
until a later fetch delivers that night's samples again. A full resync
(merging into an empty history) is the recovery path.

Always aggregate raw samples before merging; merging is keyed on complete
per-night summaries.
"""

from collections.abc import Iterable
from datetime import date
import logging

from sleep_sentinel.models.sleep_data import NightHistory, NightSummary

logger = logging.getLogger(__name__)


def merge_history(
    existing: NightHistory | Iterable[NightSummary],
    incoming: Iterable[NightSummary],
) -> NightHistory:
    """Merge `incoming` into `existing`, newer summaries winning per night.

    The result holds at most one summary per night date, sorted most recent
    first. Merging the same batch twice yields the same history as once.
    """
    existing_nights = existing.nights if isinstance(existing, NightHistory) else existing

    by_date: dict[date, NightSummary] = {n.night_date: n for n in existing_nights}
    before = len(by_date)

    replaced = 0
    for night in incoming:
        if night.night_date in by_date:
            replaced += 1
        by_date[night.night_date] = night

    merged = sorted(by_date.values(), key=lambda n: n.night_date, reverse=True)

    logger.debug(
        "Merged history: %d existing, %d added, %d replaced",
        before,
        len(merged) - before,
        replaced,
    )
    return NightHistory(nights=merged)


def clear_history() -> NightHistory:
    """An empty history, used for explicit clears and full resyncs."""
    return NightHistory()
