"""Pydantic schemas for stored records and the HTTP API layer."""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field


class SensorCreate(BaseModel):
    """Payload for registering a new sensor."""

    name: str = Field(..., min_length=1, examples=["Weather Station Alpha"])
    location: str = Field(..., min_length=1, examples=["Rooftop"])


class Sensor(BaseModel):
    """A registered sensor, including the API key it authenticates with."""

    id: str = Field(..., description="Generated UUID of the sensor.")
    name: str
    location: str
    api_key: str = Field(..., description="Key sent by the sensor in the x-api-key header.")
    created_at: datetime
    last_seen_at: Optional[datetime] = Field(
        default=None, description="Timestamp of the most recent reading."
    )


class ReadingCreate(BaseModel):
    """Measurements submitted by an authenticated sensor."""

    temperature: float = Field(..., allow_inf_nan=False, description="Celsius.", examples=[22.5])
    humidity: float = Field(..., allow_inf_nan=False, description="Relative humidity, percent.", examples=[55.2])
    pressure: float = Field(..., allow_inf_nan=False, description="Atmospheric pressure, hPa.", examples=[1012.5])


class SensorReading(BaseModel):
    """A stored, immutable reading."""

    id: int
    sensor_id: str
    temperature: float
    humidity: float
    pressure: float
    created_at: datetime


class ReadingAccepted(BaseModel):
    message: str = "Sensor reading recorded"
    id: int


class LocationCreate(BaseModel):
    """Geographic location reported by a sensor."""

    city_name: str = Field(..., min_length=1, examples=["Berlin"])
    country: Optional[str] = Field(default=None, examples=["Germany"])
    lat: Optional[float] = Field(default=None, ge=-90, le=90, examples=[52.52])
    lon: Optional[float] = Field(default=None, ge=-180, le=180, examples=[13.405])


class SensorLocation(BaseModel):
    sensor_id: str
    city_name: str
    country: Optional[str] = None
    lat: Optional[float] = None
    lon: Optional[float] = None
    updated_at: datetime


class LocationAccepted(BaseModel):
    message: str = "Sensor location recorded"
    sensor_id: str


class SensorLocationSummary(BaseModel):
    """Row returned when searching sensors by city."""

    id: str
    last_seen_at: Optional[datetime] = None
    city_name: str
    country: Optional[str] = None


class ForecastRecord(BaseModel):
    """A persisted forecast row."""

    id: int
    sensor_id: str
    forecast_time: datetime
    predicted_temp: float
    predicted_humidity: float
    predicted_pressure: float
    created_at: datetime


class LocalForecast(BaseModel):
    """Forecast returned to callers after it has been persisted."""

    id: int
    sensor_id: str
    forecast_time: datetime = Field(..., description="Invocation time advanced by hours_ahead.")
    hours_ahead: int
    predicted_temp: float
    predicted_humidity: float
    predicted_pressure: float
    note: str


class MessageResponse(BaseModel):
    message: str
