#!/usr/bin/env python3
"""
Developer Productivity Tracker CLI

Watches a local Git repository and sends productivity events (commits,
achievements, reminders, daily summaries) to Klaviyo.

Usage:
    python track_productivity.py [COMMAND]

Examples:
    python track_productivity.py start     # Start continuous tracking
    python track_productivity.py test      # Send a test event to Klaviyo
    python track_productivity.py check     # Check for new activity once
    python track_productivity.py status    # Show the stored counters
"""

import asyncio
import logging
import sys
from typing import Optional

import click
import httpx
from pydantic import ValidationError
from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from config.settings import (
    ConfigurationError,
    Settings,
    get_settings,
    require_valid_configuration,
)
from shared.models import CycleResult, TrackingRecord, calculate_productivity_score
from shared.storage import TrackingStore
from services.productivity_tracker.main import ProductivityTrackerService
from services.productivity_tracker.scheduler import TrackerScheduler

logger = logging.getLogger(__name__)

# Initialize Rich console
console = Console()


class ProductivityTrackerCLI:
    """Console rendering for the tracker commands."""

    def __init__(self, console: Console = console):
        self.console = console

    def display_record(self, record: TrackingRecord, title: str = "Tracking Data"):
        """Display the tracking counters in a rich table."""
        table = Table(title=title, show_header=True, header_style="bold magenta")
        table.add_column("Property", style="cyan", no_wrap=True)
        table.add_column("Value", style="green")

        table.add_row("Last Commit", (record.last_commit_hash or "N/A")[:12])
        table.add_row("Commits Today", str(record.daily_commit_count))
        table.add_row("Streak", f"{record.streak_days} days")
        table.add_row("Total Commits", str(record.total_commits))
        table.add_row(
            "Last Active",
            record.last_active_date.isoformat() if record.last_active_date else "Never",
        )
        table.add_row(
            "Productivity Score",
            str(calculate_productivity_score(record.daily_commit_count, record.streak_days)),
        )
        table.add_row(
            "Achievements",
            "\n".join(record.achievements) if record.achievements else "None yet",
        )

        self.console.print(table)

    def display_cycle_result(self, result: CycleResult):
        """Display the outcome of a single analysis cycle."""
        if result.new_commits:
            self.console.print(f"[green]✅ Found {result.new_commits} new commit(s)[/green]")
        else:
            self.console.print("[yellow]No new commits since the last check[/yellow]")

        if result.cursor_missing:
            self.console.print(
                "[yellow]⚠ Last processed commit not found in today's history; "
                "all of today's commits were counted[/yellow]"
            )

        for achievement in result.achievements_unlocked:
            self.console.print(f"[bold magenta]🎉 Achievement unlocked: {achievement}[/bold magenta]")

        if result.events_sent:
            self.console.print(f"[dim]Events sent: {', '.join(result.events_sent)}[/dim]")

        if result.record is not None:
            self.display_record(result.record)

    def display_error_message(self, error: str, suggestion: str = ""):
        """Display error message with helpful suggestions."""
        error_text = Text()
        error_text.append("❌ ", style="bold red")
        error_text.append("Error occurred\n\n", style="bold white")
        error_text.append("Error: ", style="red")
        error_text.append(f"{error}\n", style="white")

        if suggestion:
            error_text.append("Suggestion: ", style="yellow")
            error_text.append(f"{suggestion}", style="white")

        panel = Panel(error_text, title="Error", border_style="red")
        self.console.print(panel)

    def display_configuration_error(self, errors):
        self.display_error_message(
            "\n".join(errors),
            "Set the missing values in your environment or .env file "
            "(KLAVIYO_API_KEY, DEVELOPER_EMAIL, DEVELOPER_NAME)",
        )

    def display_start_banner(self, settings: Settings):
        self.console.print("[bold cyan]🎯 Starting Developer Productivity Tracker...[/bold cyan]")
        self.console.print(
            f"📧 Developer: {settings.developer.name} ({settings.developer.email})"
        )
        self.console.print(f"📁 Repository: {settings.repository.path}")
        self.console.print(
            f"⏰ Polling every {settings.tracker.poll_interval_seconds}s, daily summary at "
            f"{settings.tracker.summary_hour:02d}:00. Press Ctrl+C to stop."
        )

    def display_help_text(self):
        """Display help text with usage examples."""
        help_text = """
[bold cyan]🎯 Developer Productivity Tracker[/bold cyan]

[bold yellow]Usage:[/bold yellow]
  python track_productivity.py start    - Start the continuous tracking
  python track_productivity.py test     - Send a test event to Klaviyo
  python track_productivity.py check    - Check for new activity once
  python track_productivity.py status   - Show the stored counters

Make sure to configure your .env file with your Klaviyo API key!
        """

        panel = Panel(help_text, title="Help", border_style="blue")
        self.console.print(panel)


def configure_logging(settings: Optional[Settings], verbose: bool = False):
    level = logging.DEBUG if verbose else logging.INFO
    log_format = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    if settings is not None:
        if not verbose:
            level = getattr(logging, settings.monitoring.log_level)
        log_format = settings.monitoring.log_format
    logging.basicConfig(level=level, format=log_format, force=True)


def load_settings(require_credentials: bool = True) -> Settings:
    """Load settings, aborting with an error panel when they are unusable."""
    tracker_cli = ProductivityTrackerCLI()
    try:
        settings = get_settings()
        if require_credentials:
            require_valid_configuration(settings)
        return settings
    except ConfigurationError as e:
        tracker_cli.display_configuration_error(e.errors)
        sys.exit(1)
    except ValidationError as e:
        tracker_cli.display_configuration_error(
            [f"{'.'.join(str(loc) for loc in err['loc'])}: {err['msg']}" for err in e.errors()]
        )
        sys.exit(1)


@click.group(invoke_without_command=True)
@click.option('--verbose', '-v', is_flag=True, help='Enable verbose output')
@click.pass_context
def cli(ctx, verbose: bool):
    """Track Git activity and send productivity events to Klaviyo."""
    try:
        settings = get_settings()
    except ValidationError:
        settings = None
    configure_logging(settings, verbose)

    if ctx.invoked_subcommand is None:
        ProductivityTrackerCLI().display_help_text()


@cli.command(name="test")
def send_test():
    """Send a test event to Klaviyo."""
    settings = load_settings()
    tracker_cli = ProductivityTrackerCLI()
    service = ProductivityTrackerService.from_settings(settings)

    if asyncio.run(service.send_test_event()):
        tracker_cli.console.print(
            "[green]🚀 Test event sent successfully! Klaviyo integration is working.[/green]"
        )
    else:
        tracker_cli.display_error_message(
            "Test event failed",
            "Please check your API key and configuration",
        )
        sys.exit(1)


@cli.command()
def check():
    """Check for new activity once."""
    settings = load_settings()
    tracker_cli = ProductivityTrackerCLI()
    service = ProductivityTrackerService.from_settings(settings)

    tracker_cli.console.print("🔍 Checking for new activity...")
    try:
        result = asyncio.run(service.check_now())
    except httpx.HTTPStatusError as e:
        tracker_cli.display_error_message(
            f"Klaviyo rejected an event: HTTP {e.response.status_code}",
            "Counters were saved; check your API key and metric prefix",
        )
        sys.exit(1)
    except httpx.RequestError as e:
        tracker_cli.display_error_message(
            f"Cannot reach Klaviyo: {e}",
            "Counters were saved; check your network connection",
        )
        sys.exit(1)

    if result is None:
        tracker_cli.display_error_message(
            f"Could not read repository activity from {settings.repository.path}",
            "Make sure REPO_PATH points to a Git repository with at least one commit",
        )
        sys.exit(1)

    tracker_cli.display_cycle_result(result)


@cli.command()
def start():
    """Start the continuous tracking."""
    settings = load_settings()
    tracker_cli = ProductivityTrackerCLI()
    service = ProductivityTrackerService.from_settings(settings)
    scheduler = TrackerScheduler(
        service,
        poll_interval_seconds=settings.tracker.poll_interval_seconds,
        summary_hour=settings.tracker.summary_hour,
    )

    tracker_cli.display_start_banner(settings)

    async def run():
        await service.send_test_event()
        await scheduler.run(install_signal_handlers=True)

    try:
        asyncio.run(run())
    except KeyboardInterrupt:
        tracker_cli.console.print("\n[yellow]Tracker stopped by user.[/yellow]")


@cli.command()
def status():
    """Show the stored counters."""
    settings = load_settings(require_credentials=False)
    store = TrackingStore.from_settings(settings.tracker)
    ProductivityTrackerCLI().display_record(store.load(), title=f"Tracking Data ({store.path})")


if __name__ == "__main__":
    cli()
