from __future__ import annotations

from typing import Any, Dict, Iterable

import typer


def echo_heading(text: str) -> None:
    typer.secho(text, bold=True)


def echo_key_values(pairs: Iterable[tuple[str, Any]]) -> None:
    for key, value in pairs:
        typer.echo(f"{key}: {value}")


def render_summary(payload: Dict[str, Any]) -> None:
    echo_heading("Panel Summary")
    echo_key_values(
        [
            ("policy", payload.get("policy")),
            ("refreshed_at", payload.get("refreshed_at")),
            ("record_count", payload.get("record_count")),
        ]
    )

    label = payload.get("value_label") or "value"
    dates = payload.get("dates") or []
    if not dates:
        typer.echo()
        typer.echo("No readings available.")
        return

    for entry in dates:
        typer.echo()
        echo_heading(str(entry.get("display_date") or entry.get("date")))
        for aggregate in entry.get("aggregates") or []:
            line = f"  - {aggregate.get('panel')}: {aggregate.get('summary')} {label}"
            watts = aggregate.get("estimated_watts")
            if watts is not None:
                line += f" (~{watts} W)"
            typer.echo(line)


def render_panel_readings(payload: Dict[str, Any]) -> None:
    echo_heading(f"{payload.get('panel')} on {payload.get('date')}")
    echo_key_values([("summary", payload.get("summary"))])
    readings = payload.get("readings") or []
    typer.echo()
    if not readings:
        typer.echo("No readings recorded.")
        return
    for reading in readings:
        value = reading.get("value")
        typer.echo(f"  - {reading.get('time')}: {value if value is not None else 'n/a'}")
