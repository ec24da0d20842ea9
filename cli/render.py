from __future__ import annotations

from typing import Any, Dict, Iterable, List

import typer

_IDENTITY_KEYS = {"id", "sensorId", "sensorType", "timestamp", "processed"}


def echo_heading(text: str) -> None:
    typer.secho(text, bold=True)


def echo_key_values(pairs: Iterable[tuple[str, Any]]) -> None:
    for key, value in pairs:
        typer.echo(f"{key}: {value}")


def _measurements(payload: Dict[str, Any], prefix: str = "") -> str:
    parts = []
    for key, value in payload.items():
        if value is None or not key.startswith(prefix):
            continue
        name = key[len(prefix):] if prefix else key
        if not prefix and key in _IDENTITY_KEYS:
            continue
        if prefix and name == "Timestamp":
            continue
        parts.append(f"{name[:1].lower()}{name[1:]}={value}")
    return ", ".join(parts)


def render_readings(title: str, readings: List[Dict[str, Any]]) -> None:
    echo_heading(title)
    if not readings:
        typer.echo("No readings available.")
        return
    for reading in readings:
        typer.echo(
            f"  - {reading.get('timestamp')} {reading.get('sensorId')} "
            f"[{reading.get('sensorType')}] {_measurements(reading)}"
        )


def render_summary(payload: Dict[str, Any]) -> None:
    echo_heading("Sensor Summary")
    echo_key_values(
        [
            ("totalCount", payload.get("totalCount")),
            ("totalPages", payload.get("totalPages")),
            ("currentPage", payload.get("currentPage")),
            ("pageSize", payload.get("pageSize")),
        ]
    )
    entries = payload.get("data") or []
    typer.echo()
    if not entries:
        typer.echo("No sensors on this page.")
        return
    for entry in entries:
        typer.echo(
            f"  - {entry.get('sensorId')} [{entry.get('sensorType')}] "
            f"at {entry.get('latestTimestamp')}: {_measurements(entry, prefix='latest')}"
        )


def render_errors(records: List[Dict[str, Any]]) -> None:
    echo_heading("Top Sensor Errors")
    if not records:
        typer.echo("No errors recorded.")
        return
    for record in records:
        typer.echo(
            f"  - {record.get('sensorId')} [{record.get('sensorType')}] "
            f"count={record.get('errorCount')} last={record.get('lastErrorTimestamp')}: "
            f"{record.get('lastErrorMessage')}"
        )
