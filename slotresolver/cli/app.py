"""
Main CLI application using Typer.
"""

import asyncio
import json
import logging
from pathlib import Path
from typing import Annotated, Optional

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from ..config import AppConfig, get_default_config_path
from ..domain.exceptions import InvalidRequest, SlotResolverError
from ..domain.models import MinuteWindow
from ..domain.time_arithmetic import WEEKDAY_NAMES
from ..services.factory import build_service

app = typer.Typer(
    name="slotresolver",
    help="Resolve bookable appointment slots from provider free slots and availability rules",
    add_completion=False
)

console = Console()

ConfigOption = Annotated[
    Optional[Path],
    typer.Option("--config", "-c", help="Path to config file. Defaults to ./config.yaml"),
]
SampleOption = Annotated[
    Optional[Path],
    typer.Option("--sample", help="Read slots and rules from a sample YAML file instead of upstream."),
]
TokenOption = Annotated[
    Optional[str],
    typer.Option("--token", envvar="SLOTRESOLVER_ACCESS_TOKEN", help="Provider access token.", show_default=False),
]
RuleStoreKeyOption = Annotated[
    Optional[str],
    typer.Option("--rule-store-key", envvar="SLOTRESOLVER_RULE_STORE_KEY", help="Rule store API key.", show_default=False),
]


def _load_config(
    config_file: Optional[Path],
    token: Optional[str] = None,
    rule_store_key: Optional[str] = None,
) -> AppConfig:
    """Load configuration, apply secret overrides and set up logging."""
    config_path = config_file or get_default_config_path()
    if config_file is not None:
        config = AppConfig.load_from_yaml(config_path)
    else:
        config = AppConfig.load_or_default(config_path)

    if token:
        config.provider.access_token = token
    if rule_store_key:
        config.rule_store.api_key = rule_store_key

    logging.basicConfig(
        level=config.log_level,
        format="%(message)s",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        force=True,
    )
    return config


@app.command()
def resolve(
    calendar_id: Annotated[str, typer.Argument(help="Provider calendar id")],
    staff: Annotated[Optional[str], typer.Option("--staff", "-s", help="Staff id to resolve for")] = None,
    date: Annotated[Optional[str], typer.Option("--date", "-d", help="First day (YYYY-MM-DD), defaults to today")] = None,
    days: Annotated[Optional[int], typer.Option("--days", help="Number of days to resolve")] = None,
    as_json: Annotated[bool, typer.Option("--json", help="Print the result as JSON.")] = False,
    sample: SampleOption = None,
    config_file: ConfigOption = None,
    token: TokenOption = None,
    rule_store_key: RuleStoreKeyOption = None,
):
    """
    Resolve bookable slots per day.

    Examples:

        # Store-level slots for the next 30 days
        slotresolver resolve CAL123

        # One staff member, starting on a given day
        slotresolver resolve CAL123 --staff STAFF1 --date 2025-09-15

        # Use sample data (no upstream access)
        slotresolver resolve CAL123 --staff A --sample sample_data.yaml --date 2025-09-15
    """
    try:
        config = _load_config(config_file, token, rule_store_key)
        service = build_service(config, sample_file=sample)
        slots = asyncio.run(
            service.resolve_slots(calendar_id, staff, date, total_days=days)
        )
    except InvalidRequest as e:
        console.print(f"[bold red]Invalid request:[/bold red] {e}")
        raise typer.Exit(2)
    except (SlotResolverError, FileNotFoundError, ValueError) as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(1)

    if as_json:
        first_day = next(iter(slots), None)
        envelope = {
            "calendarId": calendar_id,
            "staffId": staff,
            "activeDay": "allDays",
            "startDate": date or first_day,
            "slots": slots,
        }
        typer.echo(json.dumps(envelope, indent=2))
        return

    if not slots:
        console.print("[yellow]⚠ No bookable slots in this range.[/yellow]")
        return

    table = Table(
        title=f"Bookable slots ({config.timezone})",
        show_header=True,
        header_style="bold cyan"
    )
    table.add_column("Day", style="bold yellow")
    table.add_column("Slots")

    for day_key, day_slots in slots.items():
        table.add_row(day_key, ", ".join(day_slots))

    console.print()
    console.print(table)
    console.print(f"[green]✓ {len(slots)} day(s) with availability[/green]\n")


@app.command()
def show_rules(
    staff: Annotated[Optional[str], typer.Option("--staff", "-s", help="Staff id whose rules to include")] = None,
    sample: SampleOption = None,
    config_file: ConfigOption = None,
    token: TokenOption = None,
    rule_store_key: RuleStoreKeyOption = None,
):
    """
    Show the parsed availability rules (store hours, staff hours, blocks).
    """
    try:
        config = _load_config(config_file, token, rule_store_key)
        service = build_service(config, sample_file=sample)
        rules = asyncio.run(service.load_rules(staff))
    except InvalidRequest as e:
        console.print(f"[bold red]Invalid request:[/bold red] {e}")
        raise typer.Exit(2)
    except (SlotResolverError, FileNotFoundError, ValueError) as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(1)

    table = Table(title="Weekly rules", show_header=True, header_style="bold cyan")
    table.add_column("Weekday", style="bold yellow")
    table.add_column("Store")
    if staff:
        table.add_column(f"Staff {staff}")

    for weekday in WEEKDAY_NAMES:
        hours = rules.store_hours_for(weekday)
        if hours is None or not hours.is_open:
            store_cell = "[dim]closed[/dim]"
        else:
            store_cell = str(MinuteWindow(hours.open_minute, hours.close_minute))
        row = [weekday, store_cell]
        if staff:
            window = rules.staff_window_for(weekday)
            if rules.is_staff_weekend(weekday):
                row.append("[dim]weekend[/dim]")
            else:
                row.append(str(window) if window else "[dim]off[/dim]")
        table.add_row(*row)

    console.print()
    console.print(table)
    if staff and rules.staff_hours and rules.staff_hours.lunch:
        console.print(f"Lunch: {rules.staff_hours.lunch}")
    console.print(
        f"Time off: {len(rules.time_off)}  Time blocks: {len(rules.time_blocks)}  "
        f"Leaves: {len(rules.staff_leaves)}\n"
    )


@app.command()
def version():
    """
    Show version information.
    """
    from .. import __version__
    console.print(f"\n[bold cyan]slotresolver[/bold cyan] version [bold]{__version__}[/bold]\n")


if __name__ == "__main__":
    app()
