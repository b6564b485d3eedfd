from __future__ import annotations
import json
from datetime import datetime, timezone
from functools import lru_cache
from pathlib import Path
from threading import Lock
from typing import Dict, List, Optional
from uuid import uuid4

from app.schemas import (
    ForecastRecord,
    Sensor,
    SensorLocation,
    SensorLocationSummary,
    SensorReading,
)
from settings import get_settings


class StoreError(RuntimeError):
    """Raised when the store cannot complete a read or write."""


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class SensorStore:
    """In-memory sensor database with an optional JSON snapshot on disk.

    Mirrors the relational layout of the service: sensors own readings, a
    single location row and any number of forecast rows. Every mutation
    rewrites the snapshot while holding the lock, so the file always
    reflects a complete state.
    """

    def __init__(self, persistence_path: Optional[Path] = None) -> None:
        self.persistence_path = persistence_path
        self._sensors: Dict[str, Sensor] = {}
        self._readings: List[SensorReading] = []
        self._locations: Dict[str, SensorLocation] = {}
        self._forecasts: List[ForecastRecord] = []
        self._next_reading_id = 1
        self._next_forecast_id = 1
        self._lock = Lock()
        if persistence_path:
            persistence_path.parent.mkdir(parents=True, exist_ok=True)
            self._load_from_disk()

    # Sensors

    def create_sensor(self, name: str, location: str) -> Sensor:
        sensor = Sensor(
            id=str(uuid4()),
            name=name,
            location=location,
            api_key=str(uuid4()),
            created_at=_utcnow(),
        )
        with self._lock:
            self._sensors[sensor.id] = sensor
            try:
                self._persist()
            except StoreError:
                del self._sensors[sensor.id]
                raise
        return sensor.model_copy(deep=True)

    def get_sensor(self, sensor_id: str) -> Optional[Sensor]:
        with self._lock:
            sensor = self._sensors.get(sensor_id)
            return sensor.model_copy(deep=True) if sensor else None

    def get_sensor_by_api_key(self, api_key: str) -> Optional[Sensor]:
        with self._lock:
            for sensor in self._sensors.values():
                if sensor.api_key == api_key:
                    return sensor.model_copy(deep=True)
        return None

    def list_sensors(self) -> list[Sensor]:
        with self._lock:
            return [sensor.model_copy(deep=True) for sensor in self._sensors.values()]

    def delete_sensor(self, sensor_id: str) -> bool:
        """Remove a sensor together with its readings, location and forecasts."""

        with self._lock:
            if sensor_id not in self._sensors:
                return False
            sensors, readings = dict(self._sensors), self._readings
            locations, forecasts = dict(self._locations), self._forecasts
            del self._sensors[sensor_id]
            self._readings = [r for r in readings if r.sensor_id != sensor_id]
            self._forecasts = [f for f in forecasts if f.sensor_id != sensor_id]
            self._locations.pop(sensor_id, None)
            try:
                self._persist()
            except StoreError:
                self._sensors, self._readings = sensors, readings
                self._locations, self._forecasts = locations, forecasts
                raise
        return True

    # Readings

    def add_reading(
        self,
        sensor_id: str,
        temperature: float,
        humidity: float,
        pressure: float,
        created_at: Optional[datetime] = None,
    ) -> SensorReading:
        """Append a reading and refresh the sensor's ``last_seen_at``."""

        recorded_at = _utcnow() if created_at is None else _as_utc(created_at)
        with self._lock:
            sensor = self._sensors.get(sensor_id)
            if sensor is None:
                raise KeyError(f"Sensor {sensor_id!r} not found.")
            reading = SensorReading(
                id=self._next_reading_id,
                sensor_id=sensor_id,
                temperature=temperature,
                humidity=humidity,
                pressure=pressure,
                created_at=recorded_at,
            )
            self._next_reading_id += 1
            self._readings.append(reading)
            self._sensors[sensor_id] = sensor.model_copy(update={"last_seen_at": _utcnow()})
            try:
                self._persist()
            except StoreError:
                self._readings.pop()
                self._sensors[sensor_id] = sensor
                self._next_reading_id -= 1
                raise
        return reading.model_copy(deep=True)

    def list_readings(self, sensor_id: str) -> list[SensorReading]:
        with self._lock:
            return [r.model_copy(deep=True) for r in self._readings if r.sensor_id == sensor_id]

    def fetch_recent_readings(self, sensor_id: str, limit: int = 50) -> list[SensorReading]:
        """Return up to ``limit`` readings for a sensor, newest first."""

        if limit <= 0:
            return []
        with self._lock:
            matching = [r for r in self._readings if r.sensor_id == sensor_id]
            newest_first = sorted(matching, key=lambda r: (r.created_at, r.id), reverse=True)
            return [r.model_copy(deep=True) for r in newest_first[:limit]]

    # Locations

    def upsert_location(
        self,
        sensor_id: str,
        city_name: str,
        country: Optional[str] = None,
        lat: Optional[float] = None,
        lon: Optional[float] = None,
    ) -> SensorLocation:
        location = SensorLocation(
            sensor_id=sensor_id,
            city_name=city_name,
            country=country,
            lat=lat,
            lon=lon,
            updated_at=_utcnow(),
        )
        with self._lock:
            if sensor_id not in self._sensors:
                raise KeyError(f"Sensor {sensor_id!r} not found.")
            previous = self._locations.get(sensor_id)
            self._locations[sensor_id] = location
            try:
                self._persist()
            except StoreError:
                if previous is None:
                    del self._locations[sensor_id]
                else:
                    self._locations[sensor_id] = previous
                raise
        return location.model_copy(deep=True)

    def find_sensors_by_city(self, city_name: str) -> list[SensorLocationSummary]:
        with self._lock:
            return [
                SensorLocationSummary(
                    id=location.sensor_id,
                    last_seen_at=self._sensors[location.sensor_id].last_seen_at,
                    city_name=location.city_name,
                    country=location.country,
                )
                for location in self._locations.values()
                if location.city_name == city_name and location.sensor_id in self._sensors
            ]

    # Forecasts

    def insert_forecast(
        self,
        sensor_id: str,
        forecast_time: datetime,
        predicted_temp: float,
        predicted_humidity: float,
        predicted_pressure: float,
    ) -> int:
        """Append a forecast row and return its assigned identifier."""

        with self._lock:
            record = ForecastRecord(
                id=self._next_forecast_id,
                sensor_id=sensor_id,
                forecast_time=_as_utc(forecast_time),
                predicted_temp=predicted_temp,
                predicted_humidity=predicted_humidity,
                predicted_pressure=predicted_pressure,
                created_at=_utcnow(),
            )
            self._next_forecast_id += 1
            self._forecasts.append(record)
            try:
                self._persist()
            except StoreError:
                self._forecasts.pop()
                self._next_forecast_id -= 1
                raise
        return record.id

    def list_forecasts(self, sensor_id: str) -> list[ForecastRecord]:
        with self._lock:
            return [f.model_copy(deep=True) for f in self._forecasts if f.sensor_id == sensor_id]

    # Snapshot handling

    def _persist(self) -> None:
        if not self.persistence_path:
            return
        payload = {
            "sensors": [s.model_dump(mode="json") for s in self._sensors.values()],
            "readings": [r.model_dump(mode="json") for r in self._readings],
            "locations": [loc.model_dump(mode="json") for loc in self._locations.values()],
            "forecasts": [f.model_dump(mode="json") for f in self._forecasts],
            "next_reading_id": self._next_reading_id,
            "next_forecast_id": self._next_forecast_id,
        }
        try:
            self.persistence_path.write_text(json.dumps(payload, indent=2, sort_keys=True))
        except OSError as exc:
            raise StoreError(f"Failed to write snapshot to {self.persistence_path}.") from exc

    def _load_from_disk(self) -> None:
        if not self.persistence_path or not self.persistence_path.exists():
            return

        try:
            raw = self.persistence_path.read_text() or "{}"
            data = json.loads(raw)
        except (OSError, json.JSONDecodeError):
            data = {}

        for payload in data.get("sensors", []):
            sensor = Sensor.model_validate(payload)
            self._sensors[sensor.id] = sensor
        self._readings = [SensorReading.model_validate(p) for p in data.get("readings", [])]
        for payload in data.get("locations", []):
            location = SensorLocation.model_validate(payload)
            self._locations[location.sensor_id] = location
        self._forecasts = [ForecastRecord.model_validate(p) for p in data.get("forecasts", [])]
        self._next_reading_id = data.get(
            "next_reading_id", max((r.id for r in self._readings), default=0) + 1
        )
        self._next_forecast_id = data.get(
            "next_forecast_id", max((f.id for f in self._forecasts), default=0) + 1
        )


@lru_cache
def build_default_store(path: Optional[str] = None) -> SensorStore:
    settings = get_settings()
    store_path = settings.store_persistence_path if path is None else path
    persistence = Path(store_path) if store_path else None
    return SensorStore(persistence_path=persistence)
