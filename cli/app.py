from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Optional

import typer

from app.schemas import ExportFormat, PanelName, SummaryResponse
from cli.client import ApiClient
from cli.config import CLIConfig, load_config
from cli.render import render_panel_readings, render_summary
from logging_config import configure_logging
from services.decoder import MessageDecoder, build_sender_table
from services.export import CsvExportWriter, ExportFormatter, XlsxExportWriter
from services.pipeline import PipelineController
from services.policies import POLICIES, get_policy
from settings import get_settings
from storage.mock_feed import load_snapshot_file


@dataclass
class CLIState:
    config: CLIConfig
    client: ApiClient


app = typer.Typer(
    help="Utilities for pushing panel telemetry and reading daily summaries.",
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
        help="Dashboard API base URL (defaults to API_BASE_URL env or http://localhost:8000).",
    ),
    timeout: Optional[float] = typer.Option(
        None,
        "--timeout",
        help="Seconds to wait for each API request.",
    ),
) -> None:
    """Entry point for the CLI."""
    config = load_config(base_url=base_url, timeout=timeout)
    client = ApiClient(config)
    ctx.obj = CLIState(config=config, client=client)
    ctx.call_on_close(client.close)


@app.command("push")
def push_command(
    ctx: typer.Context,
    message: str = typer.Argument(..., help='Raw SMS text, e.g. 25/08/01,22:48:08-20"V:512".'),
    sender: str = typer.Argument(..., help="Sender phone number."),
) -> None:
    """Push one raw SMS record into the feed."""
    state = _get_state(ctx)
    key = state.client.push_record(message, sender)
    typer.secho(f"Record stored. key={key}", fg=typer.colors.GREEN)


@app.command("summary")
def summary_command(
    ctx: typer.Context,
    refresh: bool = typer.Option(
        False,
        "--refresh/--no-refresh",
        help="Force a pipeline refresh before reading aggregates.",
    ),
) -> None:
    """Show per-date, per-panel aggregates."""
    state = _get_state(ctx)
    render_summary(state.client.get_summary(refresh=refresh))


@app.command("readings")
def readings_command(
    ctx: typer.Context,
    date_key: str = typer.Argument(..., help="Date key in YYYY-MM-DD form."),
    panel: PanelName = typer.Argument(..., help="Panel identifier."),
) -> None:
    """List the readings of one panel on one date."""
    state = _get_state(ctx)
    render_panel_readings(state.client.get_panel_readings(date_key, panel.value))


@app.command("export")
def export_command(
    ctx: typer.Context,
    export_format: ExportFormat = typer.Argument(ExportFormat.csv, help="Export file format."),
    output: Optional[Path] = typer.Option(
        None,
        "--output",
        "-o",
        dir_okay=False,
        help="Destination file (defaults to the server-suggested name).",
    ),
) -> None:
    """Download the grouped readings export."""
    state = _get_state(ctx)
    filename, content = state.client.download_export(export_format.value)
    destination = output or Path(filename)
    destination.write_bytes(content)
    typer.secho(f"Export written to {destination}", fg=typer.colors.GREEN)


@app.command("analyze")
def analyze_command(
    snapshot: Path = typer.Argument(
        ..., exists=True, dir_okay=False, readable=True, help="JSON export of the feed."
    ),
    policy: Optional[str] = typer.Option(
        None,
        "--policy",
        "-p",
        help=f"Pipeline policy ({', '.join(sorted(POLICIES))}); defaults to PIPELINE_POLICY.",
    ),
    csv_path: Optional[Path] = typer.Option(None, "--csv", dir_okay=False, help="Write a CSV export."),
    xlsx_path: Optional[Path] = typer.Option(None, "--xlsx", dir_okay=False, help="Write an XLSX export."),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log pipeline activity."),
) -> None:
    """Run the pipeline offline over a feed snapshot file."""
    configure_logging(level="DEBUG" if verbose else "WARNING", force=True)
    settings = get_settings()
    try:
        active_policy = get_policy(policy or settings.policy_name)
        records = load_snapshot_file(snapshot)
    except ValueError as exc:
        raise typer.BadParameter(str(exc)) from exc

    controller = PipelineController(
        policy=active_policy,
        decoder=MessageDecoder(build_sender_table(settings.panel_senders)),
    )
    result = controller.refresh(records)
    render_summary(SummaryResponse.from_snapshot(active_policy, result).model_dump(mode="json"))

    formatter = ExportFormatter(active_policy)
    if csv_path is not None:
        csv_path.write_text(
            CsvExportWriter().render(formatter.build(result, with_seconds=True)),
            encoding="utf-8",
        )
        typer.secho(f"CSV written to {csv_path}", fg=typer.colors.GREEN)
    if xlsx_path is not None:
        xlsx_path.write_bytes(XlsxExportWriter().render(formatter.build(result, with_seconds=False)))
        typer.secho(f"XLSX written to {xlsx_path}", fg=typer.colors.GREEN)
