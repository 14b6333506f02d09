"""Health-data source port.

Contract of the external platform that supplies raw sleep samples through an
anchored (incremental) query and accepts written-back inferred samples.
"""

from abc import ABC, abstractmethod
from datetime import datetime

from pydantic import BaseModel, Field

from sleep_sentinel.models.sleep_data import RawSample


class SampleBatch(BaseModel):
    """Result of one anchored query."""

    samples: list[RawSample] = Field(default_factory=list)
    cursor: str | None = Field(
        None, description="Opaque position to resume from on the next query"
    )


class HealthDataSourcePort(ABC):
    """Abstract interface for the external health-data source.

    Query failures must be raised as `SourceUnavailableError`, missing
    authorization as `PermissionDeniedError`.
    """

    @abstractmethod
    async def is_authorized(self) -> bool:
        """Whether sleep data access has been granted."""

    @abstractmethod
    async def request_authorization(self) -> bool:
        """Ask for read/write access to sleep data; returns the new state."""

    @abstractmethod
    async def query_samples(
        self, start: datetime, end: datetime, cursor: str | None
    ) -> SampleBatch:
        """Fetch samples in [start, end] added or changed since `cursor`.

        Args:
            start: Look-back window start
            end: Look-back window end
            cursor: Position from the previous successful query, None for all

        Returns:
            New samples and the cursor to persist once they are merged
        """

    @abstractmethod
    async def save_sample(self, sample: RawSample) -> None:
        """Write a synthesized sample back to the source."""
