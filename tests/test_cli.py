"""Tests for the sleep-sentinel command line interface."""

from datetime import UTC, datetime, timedelta
import json
from pathlib import Path
from unittest.mock import patch

import pytest
from typer.testing import CliRunner

from sleep_sentinel.cli import app
from sleep_sentinel.core.config import get_settings
from sleep_sentinel.models.sleep_data import RawSample, SleepStateKind
from sleep_sentinel.ports.health_source import HealthDataSourcePort, SampleBatch

runner = CliRunner()

SAMPLES = [
    {
        "startDate": "2024-03-04T23:00:00+00:00",
        "endDate": "2024-03-05T07:00:00+00:00",
        "value": 0,
    },
    {
        "startDate": "2024-03-04T23:10:00+00:00",
        "endDate": "2024-03-05T06:50:00+00:00",
        "value": "HKCategoryValueSleepAnalysisAsleepCore",
    },
]


class FakeBridge(HealthDataSourcePort):
    """In-process stand-in for the HealthKit bridge."""

    def __init__(self, authorized: bool = True) -> None:
        self.authorized = authorized

    async def __aenter__(self) -> "FakeBridge":
        return self

    async def __aexit__(self, *exc_info) -> None:
        return None

    async def is_authorized(self) -> bool:
        return self.authorized

    async def request_authorization(self) -> bool:
        return self.authorized

    async def query_samples(self, start, end, cursor) -> SampleBatch:
        bed = datetime(2024, 3, 10, 23, 0, tzinfo=UTC)
        return SampleBatch(
            samples=[
                RawSample(
                    start_time=bed,
                    end_time=bed + timedelta(hours=7),
                    state=SleepStateKind.ASLEEP_CORE,
                ),
                RawSample(
                    start_time=bed,
                    end_time=bed + timedelta(hours=8),
                    state=SleepStateKind.IN_BED,
                ),
            ],
            cursor="anchor-1",
        )

    async def save_sample(self, sample) -> None:
        return None


@pytest.fixture(autouse=True)
def no_logging_setup():
    with patch("sleep_sentinel.cli.setup_logging"):
        yield


@pytest.fixture
def sample_file(tmp_path: Path) -> Path:
    path = tmp_path / "samples.json"
    path.write_text(json.dumps({"samples": SAMPLES}), encoding="utf-8")
    return path


class TestCli:
    """Test CLI commands end to end against a temporary store."""

    def test_ingest(self, sample_file: Path) -> None:
        result = runner.invoke(app, ["ingest", str(sample_file)])

        assert result.exit_code == 0, result.output
        assert "Ingested 2 samples into 1 nights" in result.output
        assert get_settings().store_path.exists()

    def test_ingest_rejects_invalid_json(self, tmp_path: Path) -> None:
        path = tmp_path / "broken.json"
        path.write_text("{", encoding="utf-8")

        result = runner.invoke(app, ["ingest", str(path)])

        assert result.exit_code == 1

    def test_nights_empty(self) -> None:
        result = runner.invoke(app, ["nights"])

        assert result.exit_code == 0
        assert "No nights stored yet" in result.output

    def test_nights_table(self, sample_file: Path) -> None:
        runner.invoke(app, ["ingest", str(sample_file)])

        result = runner.invoke(app, ["nights"])

        assert result.exit_code == 0
        assert "Sleep History" in result.output

    def test_export_to_stdout(self, sample_file: Path) -> None:
        runner.invoke(app, ["ingest", str(sample_file)])

        result = runner.invoke(app, ["export"])

        assert result.exit_code == 0
        lines = result.stdout.splitlines()
        assert lines[0].startswith("Date,Time in Bed (hours)")
        assert lines[1].startswith("2024-03-04,15.67,7.67,48.9,")

    def test_export_to_file(self, sample_file: Path, tmp_path: Path) -> None:
        runner.invoke(app, ["ingest", str(sample_file)])
        output = tmp_path / "out" / "nights.csv"

        result = runner.invoke(app, ["export", "--output", str(output)])

        assert result.exit_code == 0
        assert output.read_text(encoding="utf-8").count("\n") == 2

    def test_metrics(self) -> None:
        result = runner.invoke(app, ["metrics"])

        assert result.exit_code == 0
        assert "Sleep Metrics" in result.output

    def test_weekly(self) -> None:
        result = runner.invoke(app, ["weekly"])

        assert result.exit_code == 0
        assert "Weekly Summary" in result.output

    def test_recommend_without_data(self) -> None:
        result = runner.invoke(app, ["recommend"])

        assert result.exit_code == 0
        assert "Start Tracking" in result.output

    def test_settings_update_persists(self) -> None:
        result = runner.invoke(app, ["settings", "--bedtime", "22:30", "--tolerance", "30"])

        assert result.exit_code == 0
        assert "10:30 PM" in result.output

        shown = runner.invoke(app, ["settings"])
        assert "10:30 PM" in shown.output
        assert "30 min" in shown.output

    def test_settings_rejects_bad_time(self) -> None:
        result = runner.invoke(app, ["settings", "--wake", "seven"])

        assert result.exit_code == 2

    def test_clear(self, sample_file: Path) -> None:
        runner.invoke(app, ["ingest", str(sample_file)])

        result = runner.invoke(app, ["clear", "--yes"])

        assert result.exit_code == 0
        assert "No nights stored yet" in runner.invoke(app, ["nights"]).output

    def test_clear_cancelled(self, sample_file: Path) -> None:
        runner.invoke(app, ["ingest", str(sample_file)])

        result = runner.invoke(app, ["clear"], input="n\n")

        assert "Operation cancelled" in result.output
        assert "Sleep History" in runner.invoke(app, ["nights"]).output

    def test_sync(self) -> None:
        with patch("sleep_sentinel.cli.HealthKitBridgeSource", return_value=FakeBridge()):
            result = runner.invoke(app, ["sync"])

        assert result.exit_code == 0, result.output
        assert "Fetched 2 samples, updated 1 nights" in result.output

    def test_sync_permission_denied(self) -> None:
        with patch(
            "sleep_sentinel.cli.HealthKitBridgeSource", return_value=FakeBridge(authorized=False)
        ):
            result = runner.invoke(app, ["sync"])

        assert result.exit_code == 2
        assert "not authorized" in result.output

    def test_resync(self, sample_file: Path) -> None:
        runner.invoke(app, ["ingest", str(sample_file)])

        with patch("sleep_sentinel.cli.HealthKitBridgeSource", return_value=FakeBridge()):
            result = runner.invoke(app, ["resync"])

        assert result.exit_code == 0
        exported = runner.invoke(app, ["export"]).stdout
        assert "2024-03-04" not in exported
        assert "2024-03-10" in exported
