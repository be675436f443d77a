"""
Main CLI application using Typer.
"""

import asyncio
import logging
from pathlib import Path
from typing import Annotated, Optional

import pendulum
import typer
from pendulum import DateTime
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from ..adapters.file_store import FileStore
from ..config import AppConfig, EventTypeConfig, get_default_config_path
from ..domain.exceptions import SchedulingError
from ..services.availability import AvailabilityService

app = typer.Typer(
    name="slotengine",
    help="Resolve bookable slots from weekly availability, overrides and busy time",
    add_completion=False,
)

console = Console()

ConfigOption = Annotated[
    Optional[Path],
    typer.Option("--config", "-c", help="Path to config file. Defaults to ./config.yaml"),
]
VerboseOption = Annotated[bool, typer.Option("--verbose", "-v", help="Show debug logging.")]


def _setup_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=console, show_path=False)],
        force=True,
    )


def _load_config(config_file: Optional[Path]) -> AppConfig:
    config_path = config_file or get_default_config_path()
    return AppConfig.load_from_yaml(config_path)


def _build_service(config: AppConfig) -> tuple[AvailabilityService, FileStore]:
    store = FileStore(
        data_file=config.data_file,
        schedules={config.schedule_id: config.build_schedule()},
    )
    service = AvailabilityService(
        schedule_store=store,
        booking_store=store,
        busy_time_provider=store,
    )
    return service, store


def _parse_date(value: str, tz: str, label: str):
    try:
        return pendulum.from_format(value, "YYYY-MM-DD", tz=tz).date()
    except ValueError as e:
        console.print(f"[red]Could not parse {label}: {e}[/red]")
        raise typer.Exit(1)


def _parse_start(value: str, tz: str) -> DateTime:
    try:
        parsed = pendulum.parse(value, tz=tz)
    except ValueError as e:
        console.print(f"[red]Could not parse start time: {e}[/red]")
        raise typer.Exit(1)

    if not isinstance(parsed, DateTime):
        console.print(f"[red]Could not parse start time: '{value}' is not a date and time[/red]")
        raise typer.Exit(1)
    return parsed


def _fail(error: Exception) -> None:
    console.print(f"[bold red]Error:[/bold red] {error}")
    raise typer.Exit(1)


@app.command()
def slots(
    config_file: ConfigOption = None,
    start: Annotated[Optional[str], typer.Option("--start", help="First date (YYYY-MM-DD). Defaults to today.")] = None,
    end: Annotated[Optional[str], typer.Option("--end", help="Last date (YYYY-MM-DD). Defaults to start + 6 days.")] = None,
    duration: Annotated[Optional[int], typer.Option("--duration", "-d", help="Override the meeting duration in minutes")] = None,
    verbose: VerboseOption = False,
):
    """
    List bookable slots for a date range.

    Examples:

        slotengine slots

        slotengine slots --start 2024-11-25 --end 2024-11-29 --duration 60
    """
    _setup_logging(verbose)
    try:
        config = _load_config(config_file)
        tz = config.timezone

        from_date = _parse_date(start, tz, "start date") if start else pendulum.today(tz).date()
        to_date = _parse_date(end, tz, "end date") if end else from_date.add(days=6)

        event_type = config.event_type
        if duration is not None:
            event_type = EventTypeConfig(**{**event_type.model_dump(), "duration_minutes": duration})

        service, _ = _build_service(config)
        by_date = asyncio.run(
            service.list_slots_by_date(
                host_id=config.host_id,
                schedule_id=config.schedule_id,
                settings=event_type.to_settings(),
                from_date=from_date,
                to_date=to_date,
            )
        )
    except (FileNotFoundError, ValueError, SchedulingError) as e:
        _fail(e)

    console.print(
        f"\n[bold cyan]Available slots[/bold cyan] {from_date.isoformat()} - {to_date.isoformat()} ({tz})\n"
    )

    if not by_date:
        console.print("[yellow]No available slots found.[/yellow]\n")
        return

    table = Table(show_header=True, header_style="bold cyan")
    table.add_column("Date", style="bold yellow")
    table.add_column("Slots")

    for day, day_slots in by_date.items():
        times = ", ".join(slot.start.format("HH:mm") for slot in day_slots)
        table.add_row(f"{day_slots[0].start.format('ddd')} {day.isoformat()}", times)

    console.print(table)
    total = sum(len(day_slots) for day_slots in by_date.values())
    console.print(f"\n[green]{total} slot(s) found.[/green]\n")


@app.command()
def validate(config_file: ConfigOption = None):
    """
    Validate the configured weekly rules and overrides.
    """
    try:
        config = _load_config(config_file)
    except (FileNotFoundError, ValueError, SchedulingError) as e:
        _fail(e)

    table = Table(title="Weekly rules", show_header=True, header_style="bold cyan")
    table.add_column("Day", style="bold yellow")
    table.add_column("Window")
    for rule in config.schedule.weekly_rules():
        table.add_row(rule.day_name, str(rule.window))

    console.print()
    console.print(table)
    console.print(f"\n[green]✓ {len(config.schedule.rules)} rule(s) valid, {len(config.schedule.overrides)} override(s).[/green]\n")


@app.command()
def check(
    start: Annotated[str, typer.Argument(help="Candidate start, e.g. '2024-11-25 14:00'")],
    config_file: ConfigOption = None,
    verbose: VerboseOption = False,
):
    """
    Check whether a candidate start time can be booked, without booking it.
    """
    _setup_logging(verbose)
    try:
        config = _load_config(config_file)
        candidate = _parse_start(start, config.timezone)
        service, _ = _build_service(config)
        decision = asyncio.run(
            service.check_slot(
                host_id=config.host_id,
                schedule_id=config.schedule_id,
                settings=config.event_type.to_settings(),
                start=candidate,
            )
        )
    except (FileNotFoundError, ValueError, SchedulingError) as e:
        _fail(e)

    if decision.accepted:
        console.print(f"\n[green]✓ {candidate.format('YYYY-MM-DD HH:mm')} is available.[/green]\n")
    else:
        console.print(f"\n[yellow]✗ {candidate.format('YYYY-MM-DD HH:mm')}: {decision.message}[/yellow]\n")
        raise typer.Exit(2)


@app.command()
def book(
    start: Annotated[str, typer.Argument(help="Start of the booking, e.g. '2024-11-25 14:00'")],
    config_file: ConfigOption = None,
    verbose: VerboseOption = False,
):
    """
    Book a slot and store it in the configured data file.
    """
    _setup_logging(verbose)
    try:
        config = _load_config(config_file)
        candidate = _parse_start(start, config.timezone)
        service, _ = _build_service(config)
        result = asyncio.run(
            service.book(
                host_id=config.host_id,
                schedule_id=config.schedule_id,
                settings=config.event_type.to_settings(),
                start=candidate,
            )
        )
    except (FileNotFoundError, ValueError, SchedulingError) as e:
        _fail(e)

    if result.decision.accepted:
        console.print(f"\n[green]✓ Booked {result.slot.format_display()} (id {result.booking_id}).[/green]\n")
    else:
        console.print(f"\n[yellow]✗ Not booked: {result.decision.message}[/yellow]\n")
        raise typer.Exit(2)


@app.command()
def version():
    """
    Show version information.
    """
    from .. import __version__
    console.print(f"\n[bold cyan]slotengine[/bold cyan] version [bold]{__version__}[/bold]\n")


if __name__ == "__main__":
    app()
