"""Exception hierarchy for Sleep Sentinel.

Errors fall into two groups:
- Data-shape problems (malformed samples, corrupt persisted blobs) which the
  aggregation core logs and degrades around rather than propagating.
- Source problems (permission, availability) which the fetch coordinator
  surfaces to its caller as part of a fetch result.
"""

from typing import Any


class SleepSentinelError(Exception):
    """Base exception for all Sleep Sentinel specific errors."""

    def __init__(
        self,
        message: str,
        *,
        error_code: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.error_code = error_code
        self.details = details or {}

    def __str__(self) -> str:
        if self.error_code:
            return f"[{self.error_code}] {super().__str__()}"
        return super().__str__()


# ==============================================================================
# Data Validation Exceptions
# ==============================================================================


class DataValidationError(SleepSentinelError):
    """Raised when data validation fails."""

    def __init__(
        self,
        message: str,
        *,
        field_name: str | None = None,
        error_code: str = "DATA_VALIDATION_ERROR",
        **kwargs: Any,
    ) -> None:
        super().__init__(message, error_code=error_code, **kwargs)
        self.field_name = field_name


class MalformedSampleError(DataValidationError):
    """A raw sleep sample that cannot be aggregated.

    Covers samples ending before they start and unrecognized state kinds.
    The aggregator skips such samples instead of aborting the batch.
    """

    def __init__(self, reason: str, *, sample: Any = None) -> None:
        super().__init__(
            f"Malformed sleep sample: {reason}",
            error_code="MALFORMED_SAMPLE",
            details={"sample": repr(sample)} if sample is not None else None,
        )
        self.reason = reason


class CorruptPersistedStateError(SleepSentinelError):
    """Raised when a persisted blob cannot be deserialized."""

    def __init__(self, key: str, reason: str | None = None) -> None:
        message = f"Persisted state for '{key}' is corrupt"
        if reason:
            message += f": {reason}"
        super().__init__(message, error_code="CORRUPT_PERSISTED_STATE")
        self.key = key
        self.reason = reason


# ==============================================================================
# Health Data Source Exceptions
# ==============================================================================


class HealthSourceError(SleepSentinelError):
    """Base class for failures talking to the external health-data source."""


class PermissionDeniedError(HealthSourceError):
    """Raised when access to the health-data source is not authorized."""

    def __init__(self, message: str = "Health data access is not authorized") -> None:
        super().__init__(message, error_code="PERMISSION_DENIED")


class SourceUnavailableError(HealthSourceError):
    """Raised when the health-data source query fails.

    These failures are retryable; the next observer or day-change trigger
    will attempt the fetch again.
    """

    retryable = True

    def __init__(self, reason: str | None = None) -> None:
        message = "Health data source is unavailable"
        if reason:
            message += f": {reason}"
        super().__init__(message, error_code="SOURCE_UNAVAILABLE")
        self.reason = reason


# ==============================================================================
# Configuration Exceptions
# ==============================================================================


class ConfigurationError(SleepSentinelError):
    """Raised when configuration is invalid or missing."""

    def __init__(
        self, message: str, *, config_key: str | None = None, **kwargs: Any
    ) -> None:
        super().__init__(message, error_code="CONFIGURATION_ERROR", **kwargs)
        self.config_key = config_key


class InvalidConfigurationError(ConfigurationError):
    """Raised when a configuration value is invalid."""

    def __init__(self, config_key: str, value: Any, reason: str | None = None) -> None:
        message = f"Invalid configuration value for {config_key}: {value}"
        if reason:
            message += f" ({reason})"
        super().__init__(message, config_key=config_key)
        self.value = value
        self.reason = reason
