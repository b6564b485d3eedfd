from __future__ import annotations

from typing import Any, Dict, List, Optional

import pytest
from typer.testing import CliRunner

from cli.app import app
from cli.config import load_config


class StubClient:
    def __init__(self, config, forecast: Optional[Dict[str, Any]] = None) -> None:
        self.config = config
        self.forecast = forecast
        self.readings: List[tuple[float, float, float]] = []
        self.locations: List[Dict[str, Any]] = []
        self.forecast_calls: List[tuple[str, int]] = []
        self.closed = False

    def register_sensor(self, name: str, location: str) -> Dict[str, Any]:
        return {
            "id": "sensor-123",
            "name": name,
            "location": location,
            "api_key": "key-456",
            "created_at": "2024-01-01T00:00:00Z",
            "last_seen_at": None,
        }

    def send_reading(self, temperature: float, humidity: float, pressure: float) -> Dict[str, Any]:
        self.readings.append((temperature, humidity, pressure))
        return {"message": "Sensor reading recorded", "id": 7}

    def send_location(self, city_name: str, **kwargs: Any) -> Dict[str, Any]:
        self.locations.append({"city_name": city_name, **kwargs})
        return {"message": "Sensor location recorded", "sensor_id": "sensor-123"}

    def get_forecast(self, sensor_id: str, hours_ahead: int) -> Optional[Dict[str, Any]]:
        self.forecast_calls.append((sensor_id, hours_ahead))
        return self.forecast

    def list_sensors(self) -> List[Dict[str, Any]]:
        return [self.register_sensor("Station", "Rooftop")]

    def close(self) -> None:
        self.closed = True


@pytest.fixture()
def runner() -> CliRunner:
    return CliRunner()


def _install_stub(monkeypatch, stub: StubClient) -> None:
    def factory(config):
        stub.config = config
        return stub

    monkeypatch.setattr("cli.app.ApiClient", factory)


def test_register_prints_api_key(monkeypatch, runner: CliRunner) -> None:
    stub = StubClient(config=None)
    _install_stub(monkeypatch, stub)

    result = runner.invoke(app, ["register", "Station", "Rooftop"])

    assert result.exit_code == 0
    assert "api_key: key-456" in result.stdout
    assert stub.closed is True


def test_reading_passes_measurements_and_key(monkeypatch, runner: CliRunner) -> None:
    stub = StubClient(config=None)
    _install_stub(monkeypatch, stub)

    result = runner.invoke(
        app,
        ["--api-key", "key-456", "reading", "-t", "22.5", "-u", "55.2", "-p", "1012.5"],
    )

    assert result.exit_code == 0
    assert "id=7" in result.stdout
    assert stub.readings == [(22.5, 55.2, 1012.5)]
    assert stub.config.api_key == "key-456"


def test_locate_sends_optional_fields(monkeypatch, runner: CliRunner) -> None:
    stub = StubClient(config=None)
    _install_stub(monkeypatch, stub)

    result = runner.invoke(app, ["locate", "Berlin", "--country", "Germany", "--lat", "52.52"])

    assert result.exit_code == 0
    assert stub.locations == [{"city_name": "Berlin", "country": "Germany", "lat": 52.52, "lon": None}]


def test_forecast_renders_prediction(monkeypatch, runner: CliRunner) -> None:
    stub = StubClient(
        config=None,
        forecast={
            "id": 3,
            "sensor_id": "sensor-123",
            "forecast_time": "2024-01-01T02:00:00Z",
            "hours_ahead": 2,
            "predicted_temp": 21.456,
            "predicted_humidity": 50.0,
            "predicted_pressure": 1011.2,
            "note": "Linear trend.",
        },
    )
    _install_stub(monkeypatch, stub)

    result = runner.invoke(app, ["forecast", "sensor-123", "--hours-ahead", "2"])

    assert result.exit_code == 0
    assert "Local Forecast" in result.stdout
    assert "temperature: 21.46" in result.stdout
    assert stub.forecast_calls == [("sensor-123", 2)]


def test_forecast_without_data_exits_with_error(monkeypatch, runner: CliRunner) -> None:
    stub = StubClient(config=None, forecast=None)
    _install_stub(monkeypatch, stub)

    result = runner.invoke(app, ["forecast", "sensor-123"])

    assert result.exit_code == 1
    assert stub.forecast_calls == [("sensor-123", 1)]


def test_forecast_rejects_non_positive_horizon(monkeypatch, runner: CliRunner) -> None:
    stub = StubClient(config=None)
    _install_stub(monkeypatch, stub)

    result = runner.invoke(app, ["forecast", "sensor-123", "--hours-ahead", "0"])

    assert result.exit_code != 0
    assert stub.forecast_calls == []


def test_sensors_lists_registered(monkeypatch, runner: CliRunner) -> None:
    stub = StubClient(config=None)
    _install_stub(monkeypatch, stub)

    result = runner.invoke(app, ["sensors"])

    assert result.exit_code == 0
    assert "sensor-123 Station (Rooftop), last seen never" in result.stdout


def test_load_config_reads_environment(monkeypatch) -> None:
    monkeypatch.setenv("API_BASE_URL", "http://sensors.local:9000/")
    monkeypatch.setenv("SENSOR_API_KEY", " key-789 ")
    monkeypatch.setenv("CLI_TIMEOUT", "not-a-number")

    config = load_config()

    assert config.base_url == "http://sensors.local:9000"
    assert config.api_key == "key-789"
    assert config.timeout == 30.0
