from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

import typer
import uvicorn

from cli.client import ApiClient
from cli.config import CLIConfig, load_config
from cli.render import render_alerts, render_reading, render_snapshot, render_summary
from models.records import SensorSnapshot
from services.aggregator import Aggregator
from settings import get_settings


@dataclass
class CLIState:
    config: CLIConfig
    client: ApiClient


app = typer.Typer(
    help="Utilities for running and querying the sensor broadcast service.",
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
        help="Service base URL (defaults to API_BASE_URL env or http://localhost:3000).",
    ),
    poll_interval: Optional[float] = typer.Option(
        None,
        "--poll-interval",
        help="Seconds between samples when watching.",
    ),
    timeout: Optional[float] = typer.Option(
        None,
        "--timeout",
        help="Per-request timeout in seconds (defaults to CLI_POLL_TIMEOUT env or 10).",
    ),
) -> None:
    """Entry point for the CLI."""
    config = load_config(
        base_url=base_url,
        poll_interval=poll_interval,
        poll_timeout=timeout,
    )
    client = ApiClient(config)
    ctx.obj = CLIState(config=config, client=client)
    ctx.call_on_close(client.close)


@app.command("sensors")
def sensors_command(ctx: typer.Context) -> None:
    """Show the current reading of every sensor."""
    state = _get_state(ctx)
    render_snapshot(state.client.get_snapshot())


@app.command("sensor")
def sensor_command(
    ctx: typer.Context,
    name: str = typer.Argument(..., help="Sensor channel name, e.g. temperature."),
) -> None:
    """Generate and show a fresh reading for one sensor."""
    state = _get_state(ctx)
    render_reading(name, state.client.get_sensor(name))


@app.command("alerts")
def alerts_command(ctx: typer.Context) -> None:
    """Show threshold alerts raised by the current readings."""
    state = _get_state(ctx)
    render_alerts(state.client.get_alerts())


@app.command("watch")
def watch_command(
    ctx: typer.Context,
    samples: int = typer.Option(5, "--samples", "-n", min=1, help="Number of snapshots to collect."),
    poll_interval: Optional[float] = typer.Option(
        None,
        "--poll-interval",
        help="Override the interval between samples.",
    ),
) -> None:
    """Sample the snapshot endpoint repeatedly and summarise each channel."""
    state = _get_state(ctx)
    interval = poll_interval if poll_interval is not None else state.config.poll_interval
    typer.echo(f"Collecting {samples} samples from {state.config.base_url} (interval={interval}s)...")
    payloads = state.client.poll_snapshots(samples, interval=interval)

    readings = [
        reading
        for payload in payloads
        for reading in SensorSnapshot.from_payload(payload).values()
    ]
    if payloads:
        render_snapshot(payloads[-1])
        typer.echo()
    render_summary(Aggregator().aggregate(readings))


@app.command("serve")
def serve_command(
    host: Optional[str] = typer.Option(None, "--host", help="Bind address (defaults to HOST env)."),
    port: Optional[int] = typer.Option(None, "--port", "-p", help="Listening port (defaults to PORT env)."),
) -> None:
    """Run the broadcast service."""
    settings = get_settings()
    uvicorn.run(
        "app.main:app",
        host=host or settings.host,
        port=port or settings.port,
        log_config=None,
    )
