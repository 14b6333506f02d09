"""Incremental fetch coordinator.

Drives anchored queries against the health-data source and feeds the results
through aggregation and merge into the `SleepHistoryService`. Only one fetch
runs at a time; a forced resync may start while another fetch is in flight,
in which case the older fetch's result is discarded when it returns.
"""

from collections.abc import Callable, Iterable
from datetime import UTC, datetime, timedelta, tzinfo
from enum import StrEnum
import logging

from pydantic import BaseModel, ConfigDict, Field

from sleep_sentinel.analysis.motion_inference import (
    build_inferred_sample,
    find_sleep_gaps,
)
from sleep_sentinel.analysis.processors.night_aggregator import NightAggregator
from sleep_sentinel.core.config import DEFAULT_LOOKBACK_DAYS
from sleep_sentinel.core.exceptions import (
    HealthSourceError,
    PermissionDeniedError,
)
from sleep_sentinel.models.sleep_data import InferredSleepCandidate
from sleep_sentinel.ports.health_source import HealthDataSourcePort
from sleep_sentinel.services.sleep_history_service import SleepHistoryService

logger = logging.getLogger(__name__)


class FetchState(StrEnum):
    IDLE = "idle"
    FETCHING = "fetching"


class FetchStatus(StrEnum):
    COMPLETED = "completed"
    SKIPPED = "skipped"
    PERMISSION_DENIED = "permission_denied"
    FAILED = "failed"
    SUPERSEDED = "superseded"


class FetchResult(BaseModel):
    """Outcome of one fetch attempt."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    status: FetchStatus
    samples_received: int = Field(0, ge=0)
    nights_updated: int = Field(0, ge=0)
    error: HealthSourceError | None = Field(
        None, description="Source or permission failure, if any"
    )

    @property
    def succeeded(self) -> bool:
        return self.status is FetchStatus.COMPLETED

    @property
    def retryable(self) -> bool:
        return bool(getattr(self.error, "retryable", False))


def _utc_now() -> datetime:
    return datetime.now(UTC)


class IncrementalFetchCoordinator:
    """Single-flight incremental sync between a health source and the history."""

    def __init__(
        self,
        source: HealthDataSourcePort,
        history_service: SleepHistoryService,
        lookback_days: int = DEFAULT_LOOKBACK_DAYS,
        tz: tzinfo | None = None,
        clock: Callable[[], datetime] = _utc_now,
    ) -> None:
        self.source = source
        self.history_service = history_service
        self.lookback_days = lookback_days
        self.tz = tz
        self.clock = clock
        self.aggregator = NightAggregator(tz)
        self.logger = logger

        self.state = FetchState.IDLE
        self.last_error: HealthSourceError | None = None
        self._generation = 0

    @property
    def is_fetching(self) -> bool:
        return self.state is FetchState.FETCHING

    async def incremental_fetch(self) -> FetchResult:
        """Fetch samples added since the stored cursor and merge them."""
        if self.is_fetching:
            self.logger.debug("Fetch already in progress, skipping")
            return FetchResult(status=FetchStatus.SKIPPED)
        return await self._run_fetch()

    async def force_resync(self) -> FetchResult:
        """Drop the cursor and history, then refetch the look-back window.

        Any fetch still in flight is superseded and its result discarded.
        """
        self._generation += 1
        self.logger.info("Forcing full resync (generation %d)", self._generation)
        self.history_service.reset_sync_state()
        return await self._run_fetch()

    async def on_new_data_available(self) -> FetchResult:
        """Observer hook for new samples at the source."""
        return await self.incremental_fetch()

    async def on_day_changed(self) -> FetchResult:
        """Hook for the calendar day rolling over."""
        return await self.incremental_fetch()

    async def _run_fetch(self) -> FetchResult:
        generation = self._generation
        self.state = FetchState.FETCHING
        try:
            return await self._fetch(generation)
        finally:
            if generation == self._generation:
                self.state = FetchState.IDLE

    async def _fetch(self, generation: int) -> FetchResult:
        try:
            authorized = await self.source.is_authorized()
            if not authorized:
                raise PermissionDeniedError()

            now = self.clock()
            start = now - timedelta(days=self.lookback_days)
            batch = await self.source.query_samples(
                start, now, self.history_service.cursor
            )
        except PermissionDeniedError as e:
            self.logger.warning("Sleep data access not authorized")
            self.last_error = e
            return FetchResult(status=FetchStatus.PERMISSION_DENIED, error=e)
        except HealthSourceError as e:
            self.logger.error("Sleep sample query failed: %s", e)
            self.last_error = e
            return FetchResult(status=FetchStatus.FAILED, error=e)

        if generation != self._generation:
            self.logger.info("Discarding result of superseded fetch")
            return FetchResult(
                status=FetchStatus.SUPERSEDED, samples_received=len(batch.samples)
            )

        nights = self.aggregator.process(batch.samples)
        updated = self.history_service.apply_fetch(nights, batch.cursor)
        self.last_error = None

        self.logger.info(
            "Fetch completed",
            extra={"samples": len(batch.samples), "nights_updated": updated},
        )
        return FetchResult(
            status=FetchStatus.COMPLETED,
            samples_received=len(batch.samples),
            nights_updated=updated,
        )

    # ------------------------------------------------------------------
    # Motion inference write-back
    # ------------------------------------------------------------------

    def find_sleep_gaps(
        self, candidates: Iterable[InferredSleepCandidate]
    ) -> list[InferredSleepCandidate]:
        return find_sleep_gaps(candidates, self.history_service.history, self.tz)

    async def accept_inferred_candidate(
        self, candidate: InferredSleepCandidate, duration_seconds: float
    ) -> FetchResult:
        """Write an accepted candidate back to the source and refetch."""
        sample = build_inferred_sample(candidate, duration_seconds)
        try:
            await self.source.save_sample(sample)
        except HealthSourceError as e:
            self.logger.error("Failed to save inferred sleep sample: %s", e)
            self.last_error = e
            status = (
                FetchStatus.PERMISSION_DENIED
                if isinstance(e, PermissionDeniedError)
                else FetchStatus.FAILED
            )
            return FetchResult(status=status, error=e)

        self.logger.info(
            "Saved inferred %s sample (confidence %.2f)",
            candidate.event_type.value,
            candidate.confidence,
        )
        return await self.incremental_fetch()
