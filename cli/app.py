from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

import typer

from cli.client import ApiClient
from cli.config import CLIConfig, load_config
from cli.render import render_forecast, render_sensor, render_sensors


@dataclass
class CLIState:
    config: CLIConfig
    client: ApiClient


app = typer.Typer(
    help="Utilities for sensors and operators of the sensor forecast service.",
    context_settings={"help_option_names": ["-h", "--help"]},
)


def _get_state(ctx: typer.Context) -> CLIState:
    state = ctx.obj
    if not isinstance(state, CLIState):
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
    api_key: Optional[str] = typer.Option(
        None,
        "--api-key",
        "-k",
        help="Sensor API key for authenticated calls (defaults to SENSOR_API_KEY env).",
    ),
    timeout: Optional[float] = typer.Option(
        None,
        "--timeout",
        help="Request timeout in seconds.",
    ),
) -> None:
    """Entry point for the CLI."""
    config = load_config(base_url=base_url, api_key=api_key, timeout=timeout)
    client = ApiClient(config)
    ctx.obj = CLIState(config=config, client=client)
    ctx.call_on_close(client.close)


@app.command("register")
def register_command(
    ctx: typer.Context,
    name: str = typer.Argument(..., help="Human readable sensor name."),
    location: str = typer.Argument(..., help="Where the sensor is installed."),
) -> None:
    """Register a sensor and print its API key."""
    state = _get_state(ctx)
    sensor = state.client.register_sensor(name, location)
    typer.secho("Sensor registered.", fg=typer.colors.GREEN)
    render_sensor(sensor)


@app.command("reading")
def reading_command(
    ctx: typer.Context,
    temperature: float = typer.Option(..., "--temperature", "-t", help="Temperature in Celsius."),
    humidity: float = typer.Option(..., "--humidity", "-u", help="Relative humidity in percent."),
    pressure: float = typer.Option(..., "--pressure", "-p", help="Pressure in hPa."),
) -> None:
    """Submit a reading as the sensor identified by the API key."""
    state = _get_state(ctx)
    payload = state.client.send_reading(temperature, humidity, pressure)
    typer.secho(f"Reading recorded. id={payload.get('id')}", fg=typer.colors.GREEN)


@app.command("locate")
def locate_command(
    ctx: typer.Context,
    city_name: str = typer.Argument(..., help="City the sensor reports from."),
    country: Optional[str] = typer.Option(None, "--country", help="Country name."),
    lat: Optional[float] = typer.Option(None, "--lat", help="Latitude."),
    lon: Optional[float] = typer.Option(None, "--lon", help="Longitude."),
) -> None:
    """Record or update the sensor's location."""
    state = _get_state(ctx)
    payload = state.client.send_location(city_name, country=country, lat=lat, lon=lon)
    typer.secho(f"Location recorded for sensor {payload.get('sensor_id')}.", fg=typer.colors.GREEN)


@app.command("forecast")
def forecast_command(
    ctx: typer.Context,
    sensor_id: str = typer.Argument(..., help="Sensor to forecast for."),
    hours_ahead: int = typer.Option(1, "--hours-ahead", "-H", min=1, help="Forecast horizon in hours."),
) -> None:
    """Generate a local forecast from the sensor's recent readings."""
    state = _get_state(ctx)
    payload = state.client.get_forecast(sensor_id, hours_ahead)
    if payload is None:
        typer.secho(
            f"Not enough data to forecast for sensor {sensor_id}; at least 2 readings are required.",
            fg=typer.colors.YELLOW,
            err=True,
        )
        raise typer.Exit(code=1)
    render_forecast(payload)


@app.command("sensors")
def sensors_command(ctx: typer.Context) -> None:
    """List registered sensors."""
    state = _get_state(ctx)
    render_sensors(state.client.list_sensors())
