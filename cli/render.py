from __future__ import annotations

from typing import Any, Dict, Iterable, List, Optional

import typer

NO_DATA = "—"


def echo_heading(text: str) -> None:
    typer.secho(text, bold=True)


def echo_key_values(pairs: Iterable[tuple[str, Any]]) -> None:
    for key, value in pairs:
        typer.echo(f"{key}: {value}")


def format_amount(value: Optional[float], unit: str = "") -> str:
    if value is None:
        return NO_DATA
    text = f"{value:,.2f}"
    return f"{text} {unit}".rstrip()


def render_reading(payload: Optional[Dict[str, Any]], unit: str = "") -> None:
    echo_heading("Latest Reading")
    if not payload:
        typer.echo("No readings recorded yet.")
        return
    echo_key_values(
        [
            ("value", format_amount(payload.get("value"), unit)),
            ("reading_date", payload.get("reading_date")),
            ("created_at", payload.get("created_at")),
            ("notes", payload.get("notes") or NO_DATA),
        ]
    )


def render_history(payload: Dict[str, Any]) -> None:
    unit = payload.get("unit", "")
    echo_heading(f"{str(payload.get('utility', '')).title()} Reading History")
    readings = payload.get("readings") or []
    if not readings:
        typer.echo("No readings recorded yet.")
        return
    for row in readings:
        typer.echo(
            f"  - {row.get('reading_date')}: {format_amount(row.get('value'), unit)}"
            f" | consumption {format_amount(row.get('consumption'), unit)}"
            f" | cost {format_amount(row.get('cost'))}"
            f" | notes {row.get('notes') or NO_DATA}"
        )


def render_monthly(payload: Dict[str, Any]) -> None:
    unit = payload.get("unit", "")
    echo_heading(f"{str(payload.get('utility', '')).title()} Monthly Summary")
    months = payload.get("months") or []
    if not months:
        typer.echo("No monthly consumption data available yet.")
        return
    for entry in months:
        first = entry.get("first_reading") or {}
        last = entry.get("last_reading") or {}
        typer.echo(
            f"  - {entry.get('month_name')}: {format_amount(first.get('value'), unit)}"
            f" -> {format_amount(last.get('value'), unit)}"
            f" | consumption {format_amount(entry.get('consumption'), unit)}"
            f" | cost {format_amount(entry.get('cost'))}"
        )


def render_combined(rows: List[Dict[str, Any]]) -> None:
    echo_heading("Monthly Utilities")
    if not rows:
        typer.echo("No monthly consumption data available yet.")
        return
    for row in rows:
        typer.echo(
            f"  - {row.get('month_name')}:"
            f" electricity {format_amount(row.get('electricity_consumption'), 'kWh')}"
            f" ({format_amount(row.get('electricity_cost'))})"
            f" | water {format_amount(row.get('water_consumption'), 'm³')}"
            f" ({format_amount(row.get('water_cost'))})"
            f" | total {format_amount(row.get('total_cost'))}"
        )
