"""Sleep Sentinel - Configuration Management.

Environment-based configuration using Pydantic settings.
"""

from functools import lru_cache
import logging
from pathlib import Path
from typing import Self
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings

from sleep_sentinel.core.exceptions import InvalidConfigurationError

logger = logging.getLogger(__name__)

DEFAULT_LOOKBACK_DAYS = 180


class Settings(BaseSettings):
    """Application settings with validation."""

    # Environment settings
    environment: str = Field(default="development", alias="ENVIRONMENT")
    debug: bool = Field(default=False, alias="DEBUG")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    # Persistence
    store_path: Path = Field(
        default=Path("data/sleep_sentinel.json"), alias="SLEEP_SENTINEL_STORE_PATH"
    )

    # Fetch window and night bucketing
    lookback_days: int = Field(
        default=DEFAULT_LOOKBACK_DAYS, ge=1, le=3650, alias="SLEEP_SENTINEL_LOOKBACK_DAYS"
    )
    timezone: str | None = Field(default=None, alias="SLEEP_SENTINEL_TIMEZONE")

    # HealthKit bridge
    healthkit_bridge_url: str = Field(
        default="http://127.0.0.1:8765", alias="HEALTHKIT_BRIDGE_URL"
    )
    healthkit_timeout_seconds: float = Field(
        default=30.0, gt=0, alias="HEALTHKIT_TIMEOUT_SECONDS"
    )

    app_name: str = "Sleep Sentinel"
    app_version: str = "1.0.0"

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "case_sensitive": False,
        "extra": "ignore",
        "populate_by_name": True,
    }

    @model_validator(mode="after")
    def validate_timezone(self) -> Self:
        """Reject unknown IANA timezone names early."""
        if self.timezone:
            try:
                ZoneInfo(self.timezone)
            except (ZoneInfoNotFoundError, ValueError) as e:
                raise InvalidConfigurationError(
                    "SLEEP_SENTINEL_TIMEZONE", self.timezone, "unknown timezone"
                ) from e
        return self

    def get_timezone(self) -> ZoneInfo | None:
        """Timezone used for night bucketing, None for timestamp-local."""
        return ZoneInfo(self.timezone) if self.timezone else None

    def is_development(self) -> bool:
        """Check if running in development mode."""
        return self.environment.lower() == "development"

    def is_testing(self) -> bool:
        """Check if running in testing mode."""
        return self.environment.lower() == "testing"

    def log_configuration_summary(self) -> None:
        """Log configuration summary for debugging."""
        logger.info("Sleep Sentinel configuration summary:")
        logger.info("   Environment: %s", self.environment)
        logger.info("   Store path: %s", self.store_path)
        logger.info("   Lookback days: %s", self.lookback_days)
        logger.info("   Timezone: %s", self.timezone or "timestamp-local")
        logger.info("   HealthKit bridge: %s", self.healthkit_bridge_url)


@lru_cache
def get_settings() -> Settings:
    """Get cached application settings."""
    settings = Settings()

    if settings.debug or settings.log_level.upper() == "DEBUG":
        settings.log_configuration_summary()

    return settings
