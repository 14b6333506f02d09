"""Sleep Sentinel - Logging Configuration.

Console logging with a detailed format in debug mode and a compact one
otherwise. Configured once per process.
"""

import logging
import logging.config
from typing import Any

from sleep_sentinel.core.config import get_settings

logger = logging.getLogger(__name__)

_logging_configured = False


def build_logging_config(log_level: str, *, debug: bool = False) -> dict[str, Any]:
    """Build the dictConfig mapping for the given level."""
    level = log_level.upper()
    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "detailed": {
                "format": (
                    "%(asctime)s | %(name)s | %(levelname)s | "
                    "%(filename)s:%(lineno)d | %(funcName)s | %(message)s"
                ),
                "datefmt": "%Y-%m-%d %H:%M:%S",
            },
            "simple": {
                "format": "%(asctime)s | %(levelname)s | %(message)s",
                "datefmt": "%Y-%m-%d %H:%M:%S",
            },
        },
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "level": level,
                "formatter": "detailed" if debug else "simple",
                "stream": "ext://sys.stderr",
            },
        },
        "loggers": {
            "sleep_sentinel": {
                "level": level,
                "handlers": ["console"],
                "propagate": False,
            },
            "httpx": {
                "level": "WARNING",
                "handlers": ["console"],
                "propagate": False,
            },
        },
        "root": {
            "level": "WARNING",
            "handlers": ["console"],
        },
    }


def setup_logging(force: bool = False, *, log_level: str | None = None) -> None:
    """Configure logging for the application based on environment settings.

    Args:
        force: If True, force reconfiguration even if already configured.
        log_level: Override for the configured LOG_LEVEL.
    """
    global _logging_configured

    if _logging_configured and not force:
        return

    settings = get_settings()
    level = log_level or settings.log_level

    logging.config.dictConfig(build_logging_config(level, debug=settings.debug))
    _logging_configured = True

    logger.debug(
        "Logging configured for %s environment with level %s",
        settings.environment,
        level.upper(),
    )
