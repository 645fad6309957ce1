from __future__ import annotations

from typing import Any, Dict, Iterable, Mapping

import typer

from services.aggregator import ChannelSummary


def echo_heading(text: str) -> None:
    typer.secho(text, bold=True)


def echo_key_values(pairs: Iterable[tuple[str, Any]]) -> None:
    for key, value in pairs:
        typer.echo(f"{key}: {value}")


def render_reading(name: str, payload: Dict[str, Any]) -> None:
    typer.echo(f"{name}: {payload.get('value')} {payload.get('unit')} @ {payload.get('timestamp')}")


def render_snapshot(payload: Dict[str, Dict[str, Any]]) -> None:
    echo_heading("Sensors")
    if not payload:
        typer.echo("No sensors reported.")
        return
    for name, reading in payload.items():
        render_reading(name, reading)


def render_alerts(payload: Dict[str, Any]) -> None:
    echo_heading("Alerts")
    alerts = payload.get("alerts") or []
    if not alerts:
        typer.secho("All sensors within normal range", fg=typer.colors.GREEN)
        return
    for alert in alerts:
        color = typer.colors.RED if alert.get("severity") == "critical" else typer.colors.YELLOW
        typer.secho(f"  - [{alert.get('severity')}] {alert.get('message')}", fg=color)


def render_summary(summaries: Mapping[str, ChannelSummary]) -> None:
    echo_heading("Summary")
    if not summaries:
        typer.echo("No samples collected.")
        return
    for name, summary in summaries.items():
        typer.echo(f"{name} ({summary.unit}):")
        echo_key_values(
            [
                ("  count", summary.count),
                ("  min_value", summary.min_value),
                ("  max_value", summary.max_value),
                ("  mean_value", summary.mean_value),
            ]
        )
