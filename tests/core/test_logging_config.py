"""Tests for logging configuration."""

from unittest.mock import patch

from sleep_sentinel.core import logging_config
from sleep_sentinel.core.logging_config import build_logging_config, setup_logging


class TestBuildLoggingConfig:
    def test_package_logger_level(self) -> None:
        config = build_logging_config("debug")

        assert config["loggers"]["sleep_sentinel"]["level"] == "DEBUG"
        assert config["handlers"]["console"]["formatter"] == "simple"
        assert config["disable_existing_loggers"] is False

    def test_debug_uses_detailed_format(self) -> None:
        config = build_logging_config("INFO", debug=True)

        assert config["handlers"]["console"]["formatter"] == "detailed"
        assert config["loggers"]["httpx"]["level"] == "WARNING"


class TestSetupLogging:
    def test_configures_once(self, monkeypatch) -> None:
        monkeypatch.setattr(logging_config, "_logging_configured", False)

        with patch("logging.config.dictConfig") as dict_config:
            setup_logging()
            setup_logging()

        dict_config.assert_called_once()

    def test_force_and_level_override(self, monkeypatch) -> None:
        monkeypatch.setattr(logging_config, "_logging_configured", True)

        with patch("logging.config.dictConfig") as dict_config:
            setup_logging(force=True, log_level="warning")

        config = dict_config.call_args.args[0]
        assert config["loggers"]["sleep_sentinel"]["level"] == "WARNING"
