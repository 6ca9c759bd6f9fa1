from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

import typer

from cli.client import ApiClient
from cli.config import CLIConfig, load_config
from cli.render import render_combined, render_history, render_monthly, render_reading
from models.records import UtilityType


@dataclass
class CLIState:
    config: CLIConfig
    client: ApiClient


app = typer.Typer(
    help="Record and review utility meter readings for rental spaces.",
    context_settings={"help_option_names": ["-h", "--help"]},
)


def _get_state(ctx: typer.Context) -> CLIState:
    state = ctx.obj
    if not isinstance(state, CLIState):
        typer.secho("CLI state is uninitialized.", fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1)
    return state


@app.callback()
def main(
    ctx: typer.Context,
    base_url: Optional[str] = typer.Option(
        None,
        "--base-url",
        "-b",
        help="Service base URL (defaults to API_BASE_URL env or http://localhost:8000).",
    ),
    timeout: Optional[float] = typer.Option(
        None,
        "--timeout",
        help="Seconds to wait for each HTTP request.",
    ),
) -> None:
    """Entry point for the CLI."""
    config = load_config(base_url=base_url, timeout=timeout)
    client = ApiClient(config)
    ctx.obj = CLIState(config=config, client=client)
    ctx.call_on_close(client.close)


@app.command("record")
def record_command(
    ctx: typer.Context,
    space_id: str = typer.Argument(..., help="Apartment or boarding house identifier."),
    utility: UtilityType = typer.Argument(..., help="Utility the meter measures."),
    value: float = typer.Argument(..., min=0, help="Cumulative meter value."),
    room: Optional[str] = typer.Option(None, "--room", "-r", help="Room number inside a boarding house."),
    notes: Optional[str] = typer.Option(None, "--notes", "-n", help="Free-text note."),
    reading_date: Optional[str] = typer.Option(
        None,
        "--date",
        help="ISO 8601 timestamp of the reading (defaults to now).",
    ),
) -> None:
    """Record a new meter reading."""
    state = _get_state(ctx)
    payload = state.client.record_reading(
        space_id,
        utility.value,
        value,
        room=room,
        notes=notes,
        reading_date=reading_date,
    )
    typer.secho(
        f"Reading recorded: {payload.get('value')} {utility.unit} at {payload.get('reading_date')}",
        fg=typer.colors.GREEN,
    )


@app.command("latest")
def latest_command(
    ctx: typer.Context,
    space_id: str = typer.Argument(..., help="Apartment or boarding house identifier."),
    utility: UtilityType = typer.Argument(..., help="Utility the meter measures."),
    room: Optional[str] = typer.Option(None, "--room", "-r", help="Room number inside a boarding house."),
) -> None:
    """Show the most recent reading."""
    state = _get_state(ctx)
    payload = state.client.latest_reading(space_id, utility.value, room=room)
    render_reading(payload, unit=utility.unit)


@app.command("history")
def history_command(
    ctx: typer.Context,
    space_id: str = typer.Argument(..., help="Apartment or boarding house identifier."),
    utility: UtilityType = typer.Argument(..., help="Utility the meter measures."),
    room: Optional[str] = typer.Option(None, "--room", "-r", help="Room number inside a boarding house."),
    price: Optional[float] = typer.Option(None, "--price", min=0, help="Override the unit price."),
) -> None:
    """List readings newest first with consumption and cost."""
    state = _get_state(ctx)
    render_history(state.client.reading_history(space_id, utility.value, room=room, price=price))


@app.command("monthly")
def monthly_command(
    ctx: typer.Context,
    space_id: str = typer.Argument(..., help="Apartment or boarding house identifier."),
    utility: UtilityType = typer.Argument(..., help="Utility the meter measures."),
    room: Optional[str] = typer.Option(None, "--room", "-r", help="Room number inside a boarding house."),
    price: Optional[float] = typer.Option(None, "--price", min=0, help="Override the unit price."),
    year: Optional[int] = typer.Option(None, "--year", help="Only include this year."),
    month: Optional[int] = typer.Option(None, "--month", min=1, max=12, help="Only include this month."),
) -> None:
    """Show monthly consumption, most recent month first."""
    state = _get_state(ctx)
    payload = state.client.monthly(
        space_id, utility.value, room=room, price=price, year=year, month=month
    )
    render_monthly(payload)


@app.command("utilities")
def utilities_command(
    ctx: typer.Context,
    space_id: str = typer.Argument(..., help="Apartment or boarding house identifier."),
    room: Optional[str] = typer.Option(None, "--room", "-r", help="Room number inside a boarding house."),
    year: Optional[int] = typer.Option(None, "--year", help="Only include this year."),
    month: Optional[int] = typer.Option(None, "--month", min=1, max=12, help="Only include this month."),
) -> None:
    """Show combined electricity and water costs per month."""
    state = _get_state(ctx)
    render_combined(state.client.combined_monthly(space_id, room=room, year=year, month=month))
