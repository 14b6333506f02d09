"""Apple HealthKit bridge integration for Sleep Sentinel.

HealthKit is only reachable on-device, so sleep samples are read through a
small companion bridge that exposes the anchored sleep-analysis query over
HTTP. This module talks to that bridge and normalizes its HealthKit-shaped
sample payloads into `RawSample` objects.
"""

from collections.abc import Iterable, Mapping
from datetime import datetime
import logging
from typing import Any

import httpx

from sleep_sentinel.analysis.processors.night_aggregator import coerce_samples
from sleep_sentinel.core.exceptions import (
    PermissionDeniedError,
    SourceUnavailableError,
)
from sleep_sentinel.models.sleep_data import RawSample
from sleep_sentinel.ports.health_source import HealthDataSourcePort, SampleBatch

logger = logging.getLogger(__name__)

SLEEP_ANALYSIS_TYPE = "HKCategoryTypeIdentifierSleepAnalysis"

# HealthKit payload keys -> RawSample fields
_FIELD_ALIASES = {
    "startDate": "start_time",
    "start_date": "start_time",
    "endDate": "end_time",
    "end_date": "end_time",
    "value": "state",
    "metadata": "source_metadata",
}


def _normalize_item(item: Mapping[str, Any]) -> dict[str, Any]:
    normalized: dict[str, Any] = {}
    for key, value in item.items():
        normalized[_FIELD_ALIASES.get(key, key)] = value
    if normalized.get("source_metadata") is None:
        normalized["source_metadata"] = {}
    source = item.get("sourceName") or item.get("source")
    if source and isinstance(normalized["source_metadata"], dict):
        normalized["source_metadata"] = {"source": source, **normalized["source_metadata"]}
    return normalized


def parse_sleep_samples(payload: Any) -> list[RawSample]:
    """Convert a HealthKit-style payload into raw samples.

    Accepts either a list of sample objects or an object with a `samples`
    list. Entries that are not objects or fail validation are logged and
    skipped.
    """
    if isinstance(payload, Mapping):
        items = payload.get("samples") or []
    else:
        items = payload or []

    if not isinstance(items, Iterable) or isinstance(items, (str, bytes)):
        logger.warning("Sleep payload has no sample list, ignoring it")
        return []

    candidates: list[dict[str, Any]] = []
    for item in items:
        if not isinstance(item, Mapping):
            logger.warning("Skipping non-object sleep sample: %r", item)
            continue
        candidates.append(_normalize_item(item))

    return coerce_samples(candidates)


def _sample_to_payload(sample: RawSample) -> dict[str, Any]:
    return {
        "type": SLEEP_ANALYSIS_TYPE,
        "startDate": sample.start_time.isoformat(),
        "endDate": sample.end_time.isoformat(),
        "value": sample.state.value,
        "metadata": sample.source_metadata,
    }


class HealthKitBridgeSource(HealthDataSourcePort):
    """`HealthDataSourcePort` backed by the on-device HealthKit bridge."""

    def __init__(
        self,
        base_url: str,
        timeout_seconds: float = 30.0,
        client: httpx.AsyncClient | None = None,
        app_version: str = "1.0.0",
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self._http_client = client or httpx.AsyncClient(
            timeout=httpx.Timeout(timeout_seconds),
            headers={
                "User-Agent": f"Sleep-Sentinel/{app_version}",
                "Accept": "application/json",
                "Content-Type": "application/json",
            },
        )

        logger.info("HealthKit bridge client initialized", extra={"base_url": self.base_url})

    async def _request(
        self, method: str, path: str, json: dict[str, Any] | None = None
    ) -> Any:
        url = f"{self.base_url}{path}"
        try:
            response = await self._http_client.request(method, url, json=json)
        except httpx.HTTPError as e:
            logger.error("HealthKit bridge request failed", extra={"url": url, "error": str(e)})
            raise SourceUnavailableError(str(e)) from e

        if response.status_code in {401, 403}:
            raise PermissionDeniedError()
        if response.status_code >= 400:
            logger.error(
                "HealthKit bridge error",
                extra={"url": url, "status_code": response.status_code},
            )
            raise SourceUnavailableError(f"bridge returned {response.status_code}")

        if not response.content:
            return None
        try:
            return response.json()
        except ValueError as e:
            raise SourceUnavailableError("bridge returned invalid JSON") from e

    async def _request_object(
        self, method: str, path: str, json: dict[str, Any] | None = None
    ) -> Mapping[str, Any]:
        """Like `_request`, for endpoints that answer with a JSON object."""
        data = await self._request(method, path, json)
        if data is None:
            return {}
        if not isinstance(data, Mapping):
            raise SourceUnavailableError(
                f"bridge returned {type(data).__name__} for {path}, expected an object"
            )
        return data

    async def is_authorized(self) -> bool:
        data = await self._request_object("GET", "/authorization")
        return bool(data.get("authorized"))

    async def request_authorization(self) -> bool:
        """Ask the bridge to prompt for sleep read/write access."""
        data = await self._request_object(
            "POST",
            "/authorization",
            json={"read": [SLEEP_ANALYSIS_TYPE], "write": [SLEEP_ANALYSIS_TYPE]},
        )
        authorized = bool(data.get("authorized"))
        logger.info("HealthKit authorization requested", extra={"authorized": authorized})
        return authorized

    async def query_samples(
        self, start: datetime, end: datetime, cursor: str | None
    ) -> SampleBatch:
        """Run an anchored sleep-analysis query over [start, end]."""
        data = await self._request_object(
            "POST",
            "/sleep/anchored-query",
            json={
                "type": SLEEP_ANALYSIS_TYPE,
                "start_date": start.isoformat(),
                "end_date": end.isoformat(),
                "anchor": cursor,
            },
        )
        samples = parse_sleep_samples(data.get("samples") or [])
        new_cursor = data.get("anchor")

        logger.info(
            "Fetched sleep samples",
            extra={
                "count": len(samples),
                "start_date": start.isoformat(),
                "end_date": end.isoformat(),
                "incremental": cursor is not None,
            },
        )
        return SampleBatch(samples=samples, cursor=new_cursor)

    async def save_sample(self, sample: RawSample) -> None:
        await self._request("POST", "/sleep/samples", json=_sample_to_payload(sample))
        logger.info("Saved sleep sample to HealthKit", extra={"state": sample.state.value})

    async def close(self) -> None:
        """Clean up HTTP client"""
        await self._http_client.aclose()

    async def __aenter__(self) -> "HealthKitBridgeSource":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()
