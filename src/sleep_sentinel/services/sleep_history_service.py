"""Sleep history service - the single owner of persisted sleep state.

Holds the night history, the sync cursor and the user's settings, loads them
from the key-value store at startup and writes each one back after it
changes. Computation is delegated to the pure functions in
`sleep_sentinel.analysis`; derived metrics are cached until the next
mutation.
"""

from collections.abc import Callable, Iterable
from datetime import UTC, date, datetime, tzinfo
import logging

from pydantic import ValidationError

from sleep_sentinel.analysis.history_merge import clear_history, merge_history
from sleep_sentinel.analysis.night_assignment import night_for, to_local
from sleep_sentinel.analysis.recommendations_engine import (
    Recommendation,
    RecommendationsEngine,
)
from sleep_sentinel.analysis.sleep_metrics import (
    SleepMetrics,
    compute_metrics,
    is_on_schedule,
    midpoint_deviation_minutes,
    schedule_status_label,
)
from sleep_sentinel.analysis.weekly_summary import WeekComparison, compare_weeks
from sleep_sentinel.core.exceptions import CorruptPersistedStateError
from sleep_sentinel.models.settings import ScheduleTarget, SleepSettings
from sleep_sentinel.models.sleep_data import NightHistory, NightSummary
from sleep_sentinel.ports.storage import (
    ANCHOR_KEY,
    NIGHTS_KEY,
    SETTINGS_KEY,
    KeyValueStorePort,
)
from sleep_sentinel.services.export_service import export_csv

logger = logging.getLogger(__name__)


def _utc_now() -> datetime:
    return datetime.now(UTC)


class SleepHistoryService:
    """Owns `NightHistory`, the sync cursor and `SleepSettings`."""

    def __init__(
        self,
        store: KeyValueStorePort,
        tz: tzinfo | None = None,
        clock: Callable[[], datetime] = _utc_now,
    ) -> None:
        """Initialize the service.

        Args:
            store: Key-value store holding the three persisted blobs
            tz: Timezone used for night bucketing, None for timestamp-local
            clock: Source of the current time
        """
        self.store = store
        self.tz = tz
        self.clock = clock
        self.logger = logger

        self._history = NightHistory()
        self._settings = SleepSettings()
        self._cursor: str | None = None
        self._metrics_cache: dict[date, SleepMetrics] = {}
        self.last_update: datetime | None = None

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def load(self) -> None:
        """Load settings, nights and cursor; bad blobs fall back to defaults."""
        self._settings = self._load_settings()
        self._history = self._load_history()
        self._cursor = self.store.get(ANCHOR_KEY) or None
        self._invalidate()

        self.logger.info(
            "Loaded sleep state",
            extra={
                "nights": len(self._history),
                "has_cursor": self._cursor is not None,
            },
        )

    def _load_settings(self) -> SleepSettings:
        raw = self.store.get(SETTINGS_KEY)
        if raw is None:
            return SleepSettings()
        try:
            return SleepSettings.model_validate_json(raw)
        except ValidationError as e:
            error = CorruptPersistedStateError(SETTINGS_KEY, f"{e.error_count()} validation errors")
            self.logger.warning("Using default settings: %s", error)
            return SleepSettings()

    def _load_history(self) -> NightHistory:
        raw = self.store.get(NIGHTS_KEY)
        if raw is None:
            return NightHistory()
        try:
            loaded = NightHistory.model_validate_json(raw)
        except ValidationError as e:
            error = CorruptPersistedStateError(NIGHTS_KEY, f"{e.error_count()} validation errors")
            self.logger.warning("Starting with an empty history: %s", error)
            return NightHistory()
        # Re-key through merge so the stored list is unique and ordered
        return merge_history(NightHistory(), loaded.nights)

    def _save_history(self) -> None:
        self.store.set(NIGHTS_KEY, self._history.model_dump_json())
        self.logger.debug("Saved %d nights", len(self._history))

    def _save_settings(self) -> None:
        self.store.set(SETTINGS_KEY, self._settings.model_dump_json())

    def _save_cursor(self, cursor: str | None) -> None:
        if cursor is None:
            return
        self.store.set(ANCHOR_KEY, cursor)
        self._cursor = cursor

    def _invalidate(self) -> None:
        self._metrics_cache.clear()

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    @property
    def history(self) -> NightHistory:
        return self._history

    @property
    def nights(self) -> list[NightSummary]:
        return list(self._history.nights)

    @property
    def cursor(self) -> str | None:
        return self._cursor

    @property
    def settings(self) -> SleepSettings:
        return self._settings

    @property
    def schedule_target(self) -> ScheduleTarget:
        return self._settings.schedule_target

    def update_settings(self, settings: SleepSettings) -> None:
        self._settings = settings
        self._save_settings()
        self._invalidate()

    def complete_onboarding(self) -> None:
        self.update_settings(self._settings.model_copy(update={"has_completed_onboarding": True}))

    def merge_nights(self, nights: Iterable[NightSummary]) -> int:
        """Merge aggregated nights into the history and persist it.

        Returns:
            Number of nights in the incoming batch
        """
        incoming = list(nights)
        self._history = merge_history(self._history, incoming)
        self._save_history()
        self._invalidate()
        self.last_update = self.clock()

        if self._history.nights:
            self.logger.info(
                "Total nights after merge: %d (%s to %s)",
                len(self._history),
                self._history.oldest.night_date,
                self._history.newest.night_date,
            )
        return len(incoming)

    def apply_fetch(self, nights: Iterable[NightSummary], cursor: str | None) -> int:
        """Merge a fetch result, then persist the cursor that produced it.

        The cursor is written only after the history has been saved, so a
        failure in between leaves the old cursor pointing at unmerged data.
        A None cursor keeps the previous one.
        """
        count = self.merge_nights(nights)
        self._save_cursor(cursor)
        return count

    def reset_sync_state(self) -> None:
        """Discard the cursor and the whole history ahead of a full resync."""
        self._cursor = None
        self.store.delete(ANCHOR_KEY)
        self._history = clear_history()
        self._save_history()
        self._invalidate()

    def clear_all_data(self) -> None:
        self.reset_sync_state()
        self.last_update = None
        self.logger.info("Cleared all cached sleep data")

    # ------------------------------------------------------------------
    # Derived views
    # ------------------------------------------------------------------

    def night_for(self, timestamp: datetime) -> date:
        return night_for(timestamp, self.tz)

    def today(self) -> date:
        """Current calendar date on the bucketing wall clock."""
        return to_local(self.clock(), self.tz).date()

    def _reference(self, reference_date: date | None) -> date:
        return reference_date or self.today()

    # Every schedule view below judges nights against the target on one
    # reference day (default today). Pass `night.night_date` explicitly to
    # judge a night against its own date instead.

    def metrics(self, reference_date: date | None = None) -> SleepMetrics:
        """Longitudinal metrics, cached per reference day until the next mutation."""
        reference_date = self._reference(reference_date)
        if reference_date not in self._metrics_cache:
            self._metrics_cache[reference_date] = compute_metrics(
                self._history, self.schedule_target, reference_date, self.tz
            )
        return self._metrics_cache[reference_date]

    def is_on_schedule(self, night: NightSummary, reference_date: date | None = None) -> bool:
        return is_on_schedule(
            night, self.schedule_target, self._reference(reference_date), self.tz
        )

    def midpoint_deviation(
        self, night: NightSummary, reference_date: date | None = None
    ) -> int | None:
        return midpoint_deviation_minutes(
            night, self.schedule_target, self._reference(reference_date), self.tz
        )

    def schedule_status(self, night: NightSummary, reference_date: date | None = None) -> str:
        return schedule_status_label(
            night, self.schedule_target, self._reference(reference_date), self.tz
        )

    def recommendations(self, reference_date: date | None = None) -> list[Recommendation]:
        return RecommendationsEngine(self.tz).generate(
            self._history,
            self.schedule_target,
            reference_date=self._reference(reference_date),
        )

    def weekly_comparison(self, today: date | None = None) -> WeekComparison:
        return compare_weeks(self._history, self.schedule_target, self._reference(today), self.tz)

    def export_csv(self, reference_date: date | None = None) -> str:
        return export_csv(
            self._history, self.schedule_target, self._reference(reference_date), self.tz
        )
