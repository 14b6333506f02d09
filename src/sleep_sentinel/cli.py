"""Sleep Sentinel command line interface.

Commands:
  ingest     - Aggregate a JSON file of raw samples into the history
  nights     - Show the stored night history
  metrics    - Show longitudinal sleep metrics
  weekly     - Compare this week with last week
  recommend  - Show sleep recommendations
  export     - Export the history as CSV
  settings   - Show or update the sleep schedule
  sync       - Incremental fetch from the HealthKit bridge
  resync     - Discard history and refetch from the HealthKit bridge
  clear      - Delete all stored sleep data
"""

import asyncio
from datetime import time
import json
from pathlib import Path

from rich.console import Console
from rich.panel import Panel
from rich.table import Table
import typer

from sleep_sentinel.analysis.night_assignment import to_local
from sleep_sentinel.analysis.processors.night_aggregator import NightAggregator
from sleep_sentinel.analysis.recommendations_engine import RecommendationPriority
from sleep_sentinel.core.config import Settings, get_settings
from sleep_sentinel.core.logging_config import setup_logging
from sleep_sentinel.integrations.healthkit import (
    HealthKitBridgeSource,
    parse_sleep_samples,
)
from sleep_sentinel.models.settings import format_clock_time
from sleep_sentinel.services.fetch_coordinator import (
    FetchResult,
    FetchStatus,
    IncrementalFetchCoordinator,
)
from sleep_sentinel.services.sleep_history_service import SleepHistoryService
from sleep_sentinel.storage.json_file_store import JsonFileStore

app = typer.Typer(
    name="sleep-sentinel",
    help="Sleep Sentinel - nightly sleep aggregation and insights",
    no_args_is_help=True,
    context_settings={"help_option_names": ["-h", "--help"]},
)

console = Console()

PRIORITY_STYLES = {
    RecommendationPriority.HIGH: "red",
    RecommendationPriority.MEDIUM: "yellow",
    RecommendationPriority.LOW: "green",
}


def _load_service(settings: Settings) -> SleepHistoryService:
    service = SleepHistoryService(JsonFileStore(settings.store_path), settings.get_timezone())
    service.load()
    return service


def _parse_time(value: str | None, option: str) -> time | None:
    if value is None:
        return None
    try:
        return time.fromisoformat(value)
    except ValueError as e:
        raise typer.BadParameter(f"expected HH:MM, got {value!r}", param_hint=option) from e


def _fmt_hours(seconds: float | None) -> str:
    return "n/a" if seconds is None else f"{seconds / 3600:.2f}"


def _fmt_optional(value: float | None, fmt: str, suffix: str = "") -> str:
    return "n/a" if value is None else f"{value:{fmt}}{suffix}"


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
) -> None:
    """Configure logging before any command runs."""
    setup_logging(log_level="DEBUG" if verbose else None)


@app.command()
def ingest(
    file: Path = typer.Argument(..., exists=True, dir_okay=False, help="JSON sample file"),
) -> None:
    """Aggregate raw samples from a JSON file and merge them into the history."""
    settings = get_settings()
    service = _load_service(settings)

    try:
        payload = json.loads(file.read_text(encoding="utf-8"))
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        console.print(f"Could not read {file}: {e}", style="red")
        raise typer.Exit(code=1) from e

    samples = parse_sleep_samples(payload)
    nights = NightAggregator(service.tz).process(samples)
    updated = service.merge_nights(nights)

    console.print(
        f"Ingested {len(samples)} samples into {updated} nights "
        f"({len(service.history)} nights stored)",
        style="green",
    )


@app.command()
def nights(
    limit: int = typer.Option(14, "--limit", "-n", min=1, help="Number of nights to show"),
) -> None:
    """Show the most recent nights."""
    service = _load_service(get_settings())
    if not service.history.nights:
        console.print("No nights stored yet", style="yellow")
        return

    table = Table(title="Sleep History")
    table.add_column("Night", style="cyan")
    table.add_column("In Bed (h)", justify="right")
    table.add_column("Asleep (h)", justify="right")
    table.add_column("Efficiency", justify="right")
    table.add_column("Bedtime")
    table.add_column("Wake")
    table.add_column("Schedule", style="dim")

    for night in service.history.recent(limit):
        table.add_row(
            night.night_date.isoformat(),
            _fmt_hours(night.time_in_bed),
            _fmt_hours(night.time_asleep),
            _fmt_optional(night.efficiency, ".1f", "%"),
            format_clock_time(to_local(night.bedtime, service.tz)) if night.bedtime else "n/a",
            format_clock_time(to_local(night.wake_time, service.tz)) if night.wake_time else "n/a",
            service.schedule_status(night),
        )

    console.print(table)


@app.command()
def metrics() -> None:
    """Show consistency, social jetlag, regularity and average sleep."""
    service = _load_service(get_settings())
    result = service.metrics()

    table = Table(title="Sleep Metrics")
    table.add_column("Metric", style="cyan")
    table.add_column("Value", justify="right")
    table.add_row("Midpoint consistency", _fmt_optional(result.consistency_hours, ".2f", " h"))
    table.add_row("Social jetlag", _fmt_optional(result.social_jetlag_hours, ".2f", " h"))
    table.add_row("Regularity", _fmt_optional(result.regularity_percent, ".0f", "%"))
    table.add_row("Average sleep (7 nights)", _fmt_optional(result.average_sleep_hours, ".2f", " h"))
    table.add_row("Nights stored", str(result.nights_considered))
    console.print(table)


@app.command()
def weekly() -> None:
    """Compare the last seven nights with the week before."""
    service = _load_service(get_settings())
    comparison = service.weekly_comparison()

    table = Table(title="Weekly Summary")
    table.add_column("", style="cyan")
    table.add_column("This week", justify="right")
    table.add_column("Last week", justify="right")

    current, previous = comparison.this_week, comparison.last_week
    table.add_row(
        "Dates",
        f"{current.start_date} - {current.end_date}",
        f"{previous.start_date} - {previous.end_date}",
    )
    table.add_row("Nights", str(current.nights_count), str(previous.nights_count))
    table.add_row(
        "Average sleep",
        _fmt_optional(current.average_sleep_hours, ".2f", " h"),
        _fmt_optional(previous.average_sleep_hours, ".2f", " h"),
    )
    table.add_row(
        "Average efficiency",
        _fmt_optional(current.average_efficiency, ".1f", "%"),
        _fmt_optional(previous.average_efficiency, ".1f", "%"),
    )
    table.add_row(
        "On schedule",
        _fmt_optional(current.on_schedule_percent, ".0f", "%"),
        _fmt_optional(previous.on_schedule_percent, ".0f", "%"),
    )
    console.print(table)


@app.command()
def recommend() -> None:
    """Show prioritized sleep recommendations."""
    service = _load_service(get_settings())

    for item in service.recommendations():
        label = item.priority.label
        body = item.description
        if item.action:
            body += f"\n\n[bold]Next step:[/bold] {item.action}"
        console.print(
            Panel.fit(
                body,
                title=f"{item.title} ({label})",
                border_style=PRIORITY_STYLES[item.priority],
            )
        )


@app.command()
def export(
    output: Path | None = typer.Option(None, "--output", "-o", help="Write CSV to this file"),
) -> None:
    """Export the night history as CSV."""
    service = _load_service(get_settings())
    text = service.export_csv()

    if output is None:
        typer.echo(text, nl=False)
        return

    output.parent.mkdir(parents=True, exist_ok=True)
    output.write_text(text, encoding="utf-8")
    console.print(f"Exported {len(service.history)} nights to {output}", style="green")


@app.command()
def settings(
    bedtime: str | None = typer.Option(None, "--bedtime", help="Target bedtime, HH:MM"),
    wake: str | None = typer.Option(None, "--wake", help="Target wake time, HH:MM"),
    tolerance: int | None = typer.Option(
        None, "--tolerance", min=0, help="On-schedule tolerance in minutes"
    ),
    reminders: bool | None = typer.Option(
        None, "--reminders/--no-reminders", help="Enable bedtime reminders"
    ),
) -> None:
    """Show or update the sleep schedule."""
    service = _load_service(get_settings())

    updates: dict[str, object] = {}
    if (value := _parse_time(bedtime, "--bedtime")) is not None:
        updates["target_bedtime"] = value
    if (value := _parse_time(wake, "--wake")) is not None:
        updates["target_wake"] = value
    if tolerance is not None:
        updates["midpoint_tolerance_minutes"] = tolerance
    if reminders is not None:
        updates["reminders_enabled"] = reminders

    if updates:
        service.update_settings(service.settings.model_copy(update=updates))
        console.print("Settings updated", style="green")

    current = service.settings
    console.print(
        Panel.fit(
            f"Bedtime:    {current.bedtime_formatted}\n"
            f"Wake time:  {current.wake_formatted}\n"
            f"Sleep goal: {current.target_sleep_hours:.1f} h\n"
            f"Tolerance:  {current.midpoint_tolerance_minutes} min\n"
            f"Reminders:  {'on' if current.reminders_enabled else 'off'}",
            title="Sleep Schedule",
        )
    )


def _report(result: FetchResult) -> None:
    if result.status is FetchStatus.COMPLETED:
        console.print(
            f"Fetched {result.samples_received} samples, "
            f"updated {result.nights_updated} nights",
            style="green",
        )
    elif result.status is FetchStatus.PERMISSION_DENIED:
        console.print("Sleep data access is not authorized", style="red")
        raise typer.Exit(code=2)
    elif result.status is FetchStatus.FAILED:
        console.print(f"Fetch failed: {result.error} (will retry next sync)", style="red")
        raise typer.Exit(code=1)
    else:
        console.print(f"Fetch {result.status.value}", style="yellow")


async def _sync(force: bool) -> FetchResult:
    settings = get_settings()
    service = _load_service(settings)
    async with HealthKitBridgeSource(
        settings.healthkit_bridge_url,
        settings.healthkit_timeout_seconds,
        app_version=settings.app_version,
    ) as source:
        coordinator = IncrementalFetchCoordinator(
            source, service, settings.lookback_days, service.tz
        )
        if force:
            return await coordinator.force_resync()
        return await coordinator.incremental_fetch()


@app.command()
def sync() -> None:
    """Fetch samples added since the last sync."""
    _report(asyncio.run(_sync(force=False)))


@app.command()
def resync() -> None:
    """Discard stored nights and refetch the whole look-back window."""
    _report(asyncio.run(_sync(force=True)))


@app.command()
def clear(
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip confirmation"),
) -> None:
    """Delete all stored nights and the sync cursor."""
    if not yes and not typer.confirm("Delete all stored sleep data?"):
        console.print("Operation cancelled", style="yellow")
        return

    service = _load_service(get_settings())
    service.clear_all_data()
    console.print("All sleep data cleared", style="green")


if __name__ == "__main__":
    app()
