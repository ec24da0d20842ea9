from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

import typer

from cli.client import ApiClient
from cli.config import CLIConfig, load_config
from cli.render import render_errors, render_readings, render_summary
from models.records import SensorType


@dataclass
class CLIState:
    config: CLIConfig
    client: ApiClient


app = typer.Typer(
    help="Query readings, summaries, and error counts from the telemetry service.",
    context_settings={"help_option_names": ["-h", "--help"]},
)


def _get_state(ctx: typer.Context) -> CLIState:
    state = ctx.obj
    if not isinstance(state, CLIState):
        raise typer.Exit(code=1, message="CLI state is uninitialized.")
    return state


@app.callback()
def main(
    ctx: typer.Context,
    base_url: Optional[str] = typer.Option(
        None,
        "--base-url",
        "-b",
        help="Telemetry API base URL (defaults to API_BASE_URL env or http://localhost:8000).",
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


@app.command("latest")
def latest_command(ctx: typer.Context) -> None:
    """Show the 10 most recent readings."""
    state = _get_state(ctx)
    render_readings("Latest Readings", state.client.get_latest())


@app.command("recent")
def recent_command(ctx: typer.Context) -> None:
    """Show the 100 most recent readings."""
    state = _get_state(ctx)
    render_readings("Recent Readings", state.client.get_recent())


@app.command("sensor")
def sensor_command(
    ctx: typer.Context,
    sensor_id: str = typer.Argument(..., help="Sensor identifier, e.g. env-001."),
) -> None:
    """Show recent readings of one sensor."""
    state = _get_state(ctx)
    render_readings(f"Readings for {sensor_id}", state.client.get_by_sensor(sensor_id))


@app.command("type")
def type_command(
    ctx: typer.Context,
    sensor_type: SensorType = typer.Argument(..., help="Sensor type, e.g. Water."),
) -> None:
    """Show recent readings of one sensor type."""
    state = _get_state(ctx)
    render_readings(
        f"Readings for {sensor_type.value} sensors",
        state.client.get_by_type(sensor_type.value),
    )


@app.command("summary")
def summary_command(
    ctx: typer.Context,
    sensor_type: Optional[SensorType] = typer.Option(
        None, "--type", "-t", help="Only include sensors of this type."
    ),
    page: int = typer.Option(1, "--page", min=1, help="1-based page number."),
    page_size: int = typer.Option(6, "--page-size", min=1, help="Sensors per page."),
) -> None:
    """Show the latest reading of every sensor, paginated."""
    state = _get_state(ctx)
    payload = state.client.get_summary(
        sensor_type=sensor_type.value if sensor_type else None,
        page=page,
        page_size=page_size,
    )
    render_summary(payload)


@app.command("errors")
def errors_command(ctx: typer.Context) -> None:
    """Show the sensors with the most rejected readings."""
    state = _get_state(ctx)
    render_errors(state.client.get_errors())
