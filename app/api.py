"""HTTP route definitions for the service."""

from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from fastapi.security import APIKeyHeader

from app.schemas import (
    ForecastRecord,
    LocalForecast,
    LocationAccepted,
    LocationCreate,
    MessageResponse,
    ReadingAccepted,
    ReadingCreate,
    Sensor,
    SensorCreate,
    SensorLocationSummary,
    SensorReading,
)
from datastore.sensor_store import SensorStore, StoreError, build_default_store
from services.forecast import MAX_HOURS_AHEAD, ForecastService, build_default_forecast_service

logger = logging.getLogger(__name__)

router = APIRouter()

api_key_header = APIKeyHeader(name="x-api-key", auto_error=False)


def get_store() -> SensorStore:
    return build_default_store()


def get_forecast_service() -> ForecastService:
    return build_default_forecast_service()


def get_authenticated_sensor(
    api_key: Optional[str] = Depends(api_key_header),
    store: SensorStore = Depends(get_store),
) -> Sensor:
    if not api_key:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="API Key is required")
    sensor = store.get_sensor_by_api_key(api_key)
    if sensor is None:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Invalid API Key")
    return sensor


def _internal_error(detail: str) -> HTTPException:
    return HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=detail)


@router.post(
    "/sensors",
    status_code=status.HTTP_201_CREATED,
    response_model=Sensor,
    tags=["Sensors"],
    summary="Register a new sensor.",
)
async def register_sensor(
    payload: SensorCreate,
    store: SensorStore = Depends(get_store),
) -> Sensor:
    try:
        sensor = store.create_sensor(payload.name, payload.location)
    except StoreError as exc:
        logger.exception("Error registering sensor")
        raise _internal_error("Failed to register sensor") from exc
    logger.info("Sensor registered", extra={"sensor_id": sensor.id})
    return sensor


@router.post(
    "/readings",
    status_code=status.HTTP_201_CREATED,
    response_model=ReadingAccepted,
    tags=["Sensors"],
    summary="Record a new sensor reading.",
)
async def record_reading(
    payload: ReadingCreate,
    sensor: Sensor = Depends(get_authenticated_sensor),
    store: SensorStore = Depends(get_store),
) -> ReadingAccepted:
    try:
        reading = store.add_reading(
            sensor.id,
            temperature=payload.temperature,
            humidity=payload.humidity,
            pressure=payload.pressure,
        )
    except KeyError as exc:
        # Sensor deleted between authentication and insert.
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Invalid API Key") from exc
    except StoreError as exc:
        logger.exception("Error inserting sensor reading", extra={"sensor_id": sensor.id})
        raise _internal_error("Failed to record sensor reading") from exc
    return ReadingAccepted(id=reading.id)


@router.post(
    "/sensor_locations",
    status_code=status.HTTP_201_CREATED,
    response_model=LocationAccepted,
    tags=["Sensors"],
    summary="Record or update a sensor's geographic location.",
)
async def record_location(
    payload: LocationCreate,
    sensor: Sensor = Depends(get_authenticated_sensor),
    store: SensorStore = Depends(get_store),
) -> LocationAccepted:
    try:
        store.upsert_location(
            sensor.id,
            city_name=payload.city_name,
            country=payload.country,
            lat=payload.lat,
            lon=payload.lon,
        )
    except KeyError as exc:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Invalid API Key") from exc
    except StoreError as exc:
        logger.exception("Error recording sensor location", extra={"sensor_id": sensor.id})
        raise _internal_error("Failed to record sensor location") from exc
    return LocationAccepted(sensor_id=sensor.id)


@router.get(
    "/locations/{location_name}",
    response_model=list[SensorLocationSummary],
    tags=["Sensors"],
    summary="List sensors reporting from a city.",
)
async def sensors_by_location(
    location_name: str,
    store: SensorStore = Depends(get_store),
) -> list[SensorLocationSummary]:
    rows = store.find_sensors_by_city(location_name)
    if not rows:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="No sensors found for this location",
        )
    return rows


@router.get(
    "/local-forecasts/{sensor_id}",
    response_model=LocalForecast,
    tags=["Sensors"],
    summary="Generate and store a local forecast for a sensor.",
)
async def local_forecast(
    sensor_id: str,
    hours_ahead: int = Query(
        1,
        ge=1,
        le=MAX_HOURS_AHEAD,
        description=f"Number of hours ahead to forecast, at most {MAX_HOURS_AHEAD}.",
    ),
    service: ForecastService = Depends(get_forecast_service),
) -> LocalForecast:
    try:
        forecast = service.generate_forecast(sensor_id, hours_ahead)
    except StoreError as exc:
        logger.exception(
            "Error generating local forecast",
            extra={"sensor_id": sensor_id, "hours_ahead": hours_ahead},
        )
        raise _internal_error("Failed to generate local forecast") from exc
    if forecast is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Not enough data to generate a local forecast. At least 2 readings are required.",
        )
    return forecast


@router.get(
    "/admin/sensors",
    response_model=list[Sensor],
    tags=["Admin"],
    summary="List all registered sensors, including API keys.",
)
async def list_sensors(store: SensorStore = Depends(get_store)) -> list[Sensor]:
    return store.list_sensors()


@router.delete(
    "/admin/sensors/{sensor_id}",
    response_model=MessageResponse,
    tags=["Admin"],
    summary="Delete a sensor and everything it recorded.",
)
async def delete_sensor(
    sensor_id: str,
    store: SensorStore = Depends(get_store),
) -> MessageResponse:
    try:
        deleted = store.delete_sensor(sensor_id)
    except StoreError as exc:
        logger.exception("Error deleting sensor", extra={"sensor_id": sensor_id})
        raise _internal_error("Failed to delete sensor") from exc
    if not deleted:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Sensor not found")
    logger.info("Sensor deleted", extra={"sensor_id": sensor_id})
    return MessageResponse(message="Sensor deleted successfully")


@router.get(
    "/admin/sensors/{sensor_id}/readings",
    response_model=list[SensorReading],
    tags=["Admin"],
    summary="List every reading recorded by a sensor.",
)
async def sensor_readings(
    sensor_id: str,
    store: SensorStore = Depends(get_store),
) -> list[SensorReading]:
    if store.get_sensor(sensor_id) is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Sensor not found")
    return store.list_readings(sensor_id)


@router.get(
    "/admin/sensors/{sensor_id}/forecasts",
    response_model=list[ForecastRecord],
    tags=["Admin"],
    summary="List forecasts previously generated for a sensor.",
)
async def sensor_forecasts(
    sensor_id: str,
    store: SensorStore = Depends(get_store),
) -> list[ForecastRecord]:
    if store.get_sensor(sensor_id) is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Sensor not found")
    return store.list_forecasts(sensor_id)


@router.get(
    "/health",
    summary="Health check endpoint.",
    status_code=status.HTTP_200_OK,
)
async def healthcheck() -> dict[str, str]:
    return {"status": "ok"}


@router.get(
    "/",
    summary="Root endpoint mirrors health information.",
    status_code=status.HTTP_200_OK,
)
async def root() -> dict[str, str]:
    return {"status": "ok", "detail": "See /docs for the API reference."}
