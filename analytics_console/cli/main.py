"""
CLI interface for the analytics console.

Appends events to and queries the persisted event log from the shell.
"""

import logging
import sys
from dataclasses import replace
from datetime import datetime
from typing import List, Optional

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from analytics_console.config.loader import ConsoleConfig, load_console_config
from analytics_console.core.errors import AnalyticsError
from analytics_console.core.facade import DEFAULT_DAILY_WINDOW, AnalyticsConsole
from analytics_console.storage.db import DEFAULT_DB_PATH
from analytics_console.storage.models import EventInput
from analytics_console.storage.repository import EventLogRepository

app = typer.Typer()
console = Console()

EXIT_CODE_OK = 0
EXIT_CODE_ERROR = 1


def _load_config(ctx: typer.Context) -> ConsoleConfig:
    """Load the config named on the command line; default to the local log."""
    options = ctx.obj or {}
    config_path = options.get("config")
    config = load_console_config(config_path) if config_path else ConsoleConfig()
    database = options.get("db") or config.database or DEFAULT_DB_PATH
    return replace(config, database=database)


def _build_console(ctx: typer.Context) -> AnalyticsConsole:
    try:
        return AnalyticsConsole.from_config(_load_config(ctx))
    except (FileNotFoundError, ValueError) as e:
        console.print(f"[red]Configuration error:[/] {e}")
        sys.exit(EXIT_CODE_ERROR)


def _parse_metadata(pairs: List[str]) -> dict:
    metadata = {}
    for pair in pairs:
        key, sep, value = pair.partition("=")
        if not sep or not key:
            raise typer.BadParameter(f"expected KEY=VALUE, got {pair!r}", param_hint="--meta")
        metadata[key] = value
    return metadata


def _format_currency(amount) -> str:
    """Format currency with up to six decimals."""
    return f"${float(amount):,.6f}"


def _print_events(title: str, records) -> None:
    table = Table(title=title)
    table.add_column("Timestamp")
    table.add_column("Tokens", justify="right")
    table.add_column("Cost", justify="right")
    table.add_column("Latency (ms)", justify="right")
    table.add_column("Metadata")
    for record in records:
        table.add_row(
            record.timestamp.isoformat(timespec="seconds"),
            f"{record.tokens:,}",
            _format_currency(record.cost),
            f"{record.latency_ms:,}",
            ", ".join(f"{k}={v}" for k, v in sorted(record.metadata.items()))
        )
    console.print(table)


@app.callback(invoke_without_command=True)
def main(
    ctx: typer.Context,
    config: Optional[str] = typer.Option(None, "--config", "-c", help="Path to YAML config"),
    db: Optional[str] = typer.Option(None, "--db", help="Override the event log path"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
):
    """Analytics Console CLI."""
    ctx.obj = {"config": config, "db": db}
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        force=True
    )
    if ctx.invoked_subcommand is None:
        console.print("Analytics Console - Use --help to see available commands")


@app.command()
def init(ctx: typer.Context):
    """Initialize the event log database."""
    config = _load_config(ctx)
    try:
        EventLogRepository(config.database).initialize_schema()
    except Exception as e:
        console.print(f"[red]Error initializing database:[/] {str(e)}")
        sys.exit(EXIT_CODE_ERROR)
    console.print(f"[green]✓[/] Event log initialized at {config.database}")
    sys.exit(EXIT_CODE_OK)


@app.command()
def log(
    ctx: typer.Context,
    tokens: int = typer.Option(..., "--tokens", "-t", help="Token count"),
    cost: float = typer.Option(0.0, "--cost", help="Cost of the request"),
    latency_ms: int = typer.Option(0, "--latency-ms", "-l", help="Latency in milliseconds"),
    timestamp: Optional[str] = typer.Option(None, "--timestamp", help="ISO-8601 event time"),
    meta: List[str] = typer.Option([], "--meta", "-m", help="Metadata as KEY=VALUE"),
):
    """Append one usage event."""
    store = _build_console(ctx)
    try:
        event_time = datetime.fromisoformat(timestamp) if timestamp else None
    except ValueError:
        console.print(f"[red]Validation error:[/] invalid timestamp {timestamp!r}")
        sys.exit(EXIT_CODE_ERROR)

    try:
        record = store.append(EventInput(
            tokens=tokens,
            cost=cost,
            latency_ms=latency_ms,
            timestamp=event_time,
            metadata=_parse_metadata(meta)
        ))
    except AnalyticsError as e:
        console.print(f"[red]Validation error:[/] {e}")
        sys.exit(EXIT_CODE_ERROR)

    console.print(f"[green]✓[/] Logged event {record.id} at {record.timestamp.isoformat()}")


@app.command()
def recent(
    ctx: typer.Context,
    limit: Optional[int] = typer.Option(None, "--limit", "-n", help="Maximum entries to show"),
):
    """Show the most recent events."""
    records = _build_console(ctx).get_recent(limit)
    if not records:
        console.print("[dim]No events recorded.[/]")
        return
    _print_events(f"Recent events ({len(records)})", records)


@app.command("range")
def range_(
    ctx: typer.Context,
    start: str = typer.Argument(..., help="ISO-8601 start time (inclusive)"),
    end: str = typer.Argument(..., help="ISO-8601 end time (inclusive)"),
):
    """Show events between two times, oldest first."""
    try:
        start_time = datetime.fromisoformat(start)
        end_time = datetime.fromisoformat(end)
    except ValueError as e:
        console.print(f"[red]Validation error:[/] {e}")
        sys.exit(EXIT_CODE_ERROR)

    records = _build_console(ctx).get_between(start_time, end_time)
    if not records:
        console.print("[dim]No events in the selected range.[/]")
        return
    _print_events(f"Events {start} to {end} ({len(records)})", records)


@app.command()
def daily(
    ctx: typer.Context,
    days: int = typer.Option(DEFAULT_DAILY_WINDOW, "--days", "-d", help="Trailing window in days"),
    dense: bool = typer.Option(False, "--dense", help="Include days without events"),
):
    """Show per-day rollups, most recent day first."""
    summaries = _build_console(ctx).get_daily(days, dense=dense)
    if not summaries:
        console.print("[dim]No events in the selected window.[/]")
        return

    table = Table(title=f"Daily usage (last {max(1, days)} days)")
    table.add_column("Date")
    table.add_column("Events", justify="right")
    table.add_column("Tokens", justify="right")
    table.add_column("Cost", justify="right")
    table.add_column("Avg latency (ms)", justify="right")
    for summary in summaries:
        table.add_row(
            summary.date.isoformat(),
            f"{summary.event_count:,}",
            f"{summary.total_tokens:,}",
            _format_currency(summary.total_cost),
            f"{summary.avg_latency_ms:,.1f}"
        )
    console.print(table)


@app.command()
def summary(ctx: typer.Context):
    """Show totals across all retained history."""
    stats = _build_console(ctx).get_summary()
    if stats.total_events == 0:
        console.print("[dim]No events recorded.[/]")
        return

    console.print("\n[bold]Usage Summary[/bold]")
    console.print("-" * 40)
    console.print(f"Events: {stats.total_events:,}")
    console.print(f"Tokens: {stats.total_tokens:,}")
    console.print(f"Cost: {_format_currency(stats.total_cost)}")
    console.print(
        f"Latency: avg {stats.avg_latency_ms:,.1f} ms "
        f"(min {stats.min_latency_ms:,}, max {stats.max_latency_ms:,})"
    )
    console.print(
        f"Per request: {stats.avg_tokens_per_request:,.1f} tokens, "
        f"{_format_currency(stats.avg_cost_per_request)}"
    )
    console.print(f"First event: {stats.first_timestamp.isoformat()}")
    console.print(f"Last event: {stats.last_timestamp.isoformat()}")


@app.command()
def breakdown(
    ctx: typer.Context,
    key: str = typer.Option("model", "--key", "-k", help="Metadata key to group by"),
):
    """Show totals grouped by a metadata key."""
    groups = _build_console(ctx).get_breakdown(key)
    if not groups:
        console.print("[dim]No events recorded.[/]")
        return

    table = Table(title=f"Usage by {key}")
    table.add_column(key)
    table.add_column("Requests", justify="right")
    table.add_column("Tokens", justify="right")
    table.add_column("Cost", justify="right")
    table.add_column("Avg latency (ms)", justify="right")
    for group, stats in groups.items():
        table.add_row(
            group,
            f"{stats.requests:,}",
            f"{stats.tokens:,}",
            _format_currency(stats.cost),
            f"{stats.avg_latency_ms:,.1f}"
        )
    console.print(table)


@app.command()
def clear(ctx: typer.Context):
    """Delete every stored event (development deployments only)."""
    store = _build_console(ctx)
    try:
        store.clear_all()
    except AnalyticsError as e:
        console.print(f"[red]Refused:[/] {e}")
        sys.exit(EXIT_CODE_ERROR)
    console.print("[green]✓[/] All events cleared")


if __name__ == "__main__":
    app()
