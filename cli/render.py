from __future__ import annotations

from typing import Any, Dict, Iterable, List

import typer


def echo_heading(text: str) -> None:
    typer.secho(text, bold=True)


def echo_key_values(pairs: Iterable[tuple[str, Any]]) -> None:
    for key, value in pairs:
        typer.echo(f"{key}: {value}")


def _rounded(value: Any) -> Any:
    return round(value, 2) if isinstance(value, float) else value


def render_sensor(payload: Dict[str, Any]) -> None:
    echo_heading("Sensor")
    echo_key_values(
        (key, payload.get(key))
        for key in ("id", "name", "location", "api_key", "created_at", "last_seen_at")
    )


def render_sensors(sensors: List[Dict[str, Any]]) -> None:
    echo_heading("Sensors")
    if not sensors:
        typer.echo("No sensors registered.")
        return
    for sensor in sensors:
        last_seen = sensor.get("last_seen_at") or "never"
        typer.echo(f"  - {sensor.get('id')} {sensor.get('name')} ({sensor.get('location')}), last seen {last_seen}")


def render_forecast(payload: Dict[str, Any]) -> None:
    echo_heading("Local Forecast")
    echo_key_values(
        [
            ("id", payload.get("id")),
            ("sensor_id", payload.get("sensor_id")),
            ("forecast_time", payload.get("forecast_time")),
            ("hours_ahead", payload.get("hours_ahead")),
            ("temperature", _rounded(payload.get("predicted_temp"))),
            ("humidity", _rounded(payload.get("predicted_humidity"))),
            ("pressure", _rounded(payload.get("predicted_pressure"))),
        ]
    )
    note = payload.get("note")
    if note:
        typer.echo()
        typer.echo(note)
