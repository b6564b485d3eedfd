"""Tests for the forecast service against an in-memory store."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Iterable

import pytest

from datastore.sensor_store import SensorStore, StoreError
from services.forecast import FORECAST_NOTE, ForecastService

NOW = datetime(2024, 6, 1, 12, 0, tzinfo=timezone.utc)
WINDOW_START = datetime(2024, 6, 1, 9, 0, tzinfo=timezone.utc)


def _fixed_clock() -> datetime:
    return NOW


def _seed(
    store: SensorStore,
    sensor_id: str,
    offsets: Iterable[float],
    temperatures: Iterable[float],
    humidity: float = 50.0,
    pressure_start: float = 1000.0,
) -> None:
    for offset, temperature in zip(offsets, temperatures):
        store.add_reading(
            sensor_id,
            temperature=temperature,
            humidity=humidity,
            pressure=pressure_start - offset * (0.1 / 60),
            created_at=WINDOW_START + timedelta(seconds=offset),
        )


@pytest.fixture
def store() -> SensorStore:
    return SensorStore()


@pytest.fixture
def sensor_id(store: SensorStore) -> str:
    return store.create_sensor("Weather Station Alpha", "Rooftop").id


def test_linear_window_extrapolates_one_hour(store: SensorStore, sensor_id: str) -> None:
    _seed(store, sensor_id, [0, 60, 120, 180, 240], [20, 21, 22, 23, 24])
    service = ForecastService(store, clock=_fixed_clock)

    forecast = service.generate_forecast(sensor_id, hours_ahead=1)

    assert forecast is not None
    assert forecast.predicted_temp == pytest.approx(84.0)
    assert forecast.predicted_humidity == pytest.approx(50.0)
    assert forecast.predicted_pressure == pytest.approx(1000.0 - 3840 * (0.1 / 60))
    assert forecast.forecast_time == NOW + timedelta(hours=1)
    assert forecast.hours_ahead == 1
    assert forecast.sensor_id == sensor_id
    assert forecast.note == FORECAST_NOTE


def test_longer_horizon_extends_from_window_timeline(store: SensorStore, sensor_id: str) -> None:
    _seed(store, sensor_id, [0, 60, 120, 180, 240], [20, 21, 22, 23, 24])
    service = ForecastService(store, clock=_fixed_clock)

    forecast = service.generate_forecast(sensor_id, hours_ahead=3)

    assert forecast is not None
    assert forecast.predicted_temp == pytest.approx(20 + (240 + 3 * 3600) / 60)
    assert forecast.forecast_time == NOW + timedelta(hours=3)


def test_forecast_is_persisted(store: SensorStore, sensor_id: str) -> None:
    _seed(store, sensor_id, [0, 60, 120], [20, 21, 22])
    service = ForecastService(store, clock=_fixed_clock)

    forecast = service.generate_forecast(sensor_id)

    assert forecast is not None
    stored = store.list_forecasts(sensor_id)
    assert len(stored) == 1
    assert stored[0].id == forecast.id
    assert stored[0].forecast_time == forecast.forecast_time
    assert stored[0].predicted_temp == forecast.predicted_temp


@pytest.mark.parametrize("count", [0, 1])
@pytest.mark.parametrize("hours_ahead", [1, 6, 48])
def test_fewer_than_two_readings_yields_none(
    store: SensorStore, sensor_id: str, count: int, hours_ahead: int
) -> None:
    _seed(store, sensor_id, [0, 60][:count], [20, 21][:count])
    service = ForecastService(store, clock=_fixed_clock)

    assert service.generate_forecast(sensor_id, hours_ahead) is None
    assert store.list_forecasts(sensor_id) == []


def test_unknown_sensor_yields_none(store: SensorStore) -> None:
    service = ForecastService(store, clock=_fixed_clock)

    assert service.generate_forecast("missing-sensor") is None


def test_identical_timestamps_are_treated_as_not_enough_data(
    store: SensorStore, sensor_id: str
) -> None:
    _seed(store, sensor_id, [30, 30, 30], [20, 25, 30])
    service = ForecastService(store, clock=_fixed_clock)

    assert service.generate_forecast(sensor_id) is None
    assert store.list_forecasts(sensor_id) == []


def test_window_uses_only_most_recent_readings(store: SensorStore, sensor_id: str) -> None:
    _seed(store, sensor_id, [0, 60, 120, 180, 240], [100, 100, 20, 21, 22])
    service = ForecastService(store, window_size=3, clock=_fixed_clock)

    forecast = service.generate_forecast(sensor_id)

    assert forecast is not None
    assert forecast.predicted_temp == pytest.approx(20 + (120 + 3600) / 60)


def test_out_of_order_inserts_are_ordered_by_timestamp(store: SensorStore, sensor_id: str) -> None:
    _seed(store, sensor_id, [240, 0, 120, 60, 180], [24, 20, 22, 21, 23])
    service = ForecastService(store, clock=_fixed_clock)

    forecast = service.generate_forecast(sensor_id)

    assert forecast is not None
    assert forecast.predicted_temp == pytest.approx(84.0)


def test_repeated_calls_append_distinct_rows_with_same_predictions(
    store: SensorStore, sensor_id: str
) -> None:
    _seed(store, sensor_id, [0, 60, 120, 180], [20.5, 20.9, 22.1, 22.6])
    service = ForecastService(store, clock=_fixed_clock)
    readings_before = store.list_readings(sensor_id)

    first = service.generate_forecast(sensor_id, hours_ahead=2)
    second = service.generate_forecast(sensor_id, hours_ahead=2)

    assert first is not None and second is not None
    assert first.id != second.id
    assert first.predicted_temp == second.predicted_temp
    assert first.predicted_humidity == second.predicted_humidity
    assert first.predicted_pressure == second.predicted_pressure
    assert [f.id for f in store.list_forecasts(sensor_id)] == [first.id, second.id]
    assert store.list_readings(sensor_id) == readings_before


class _FailingInsertStore(SensorStore):
    def insert_forecast(self, *args, **kwargs) -> int:
        raise StoreError("insert failed")


class _FailingFetchStore(SensorStore):
    def fetch_recent_readings(self, sensor_id: str, limit: int = 50):
        raise StoreError("fetch failed")


def test_insert_failure_propagates() -> None:
    store = _FailingInsertStore()
    sensor = store.create_sensor("s", "lab")
    _seed(store, sensor.id, [0, 60], [20, 21])
    service = ForecastService(store, clock=_fixed_clock)

    with pytest.raises(StoreError):
        service.generate_forecast(sensor.id)


def test_fetch_failure_propagates() -> None:
    service = ForecastService(_FailingFetchStore(), clock=_fixed_clock)

    with pytest.raises(StoreError):
        service.generate_forecast("any")


def test_zero_horizon_from_direct_caller_returns_the_stored_row(
    store: SensorStore, sensor_id: str
) -> None:
    _seed(store, sensor_id, [0, 60, 120, 180, 240], [20, 21, 22, 23, 24])
    service = ForecastService(store, clock=_fixed_clock)

    forecast = service.generate_forecast(sensor_id, hours_ahead=0)

    assert forecast is not None
    assert forecast.hours_ahead == 0
    assert forecast.predicted_temp == pytest.approx(24.0)
    assert forecast.forecast_time == NOW
    assert [f.id for f in store.list_forecasts(sensor_id)] == [forecast.id]
