from __future__ import annotations
from contextlib import asynccontextmanager
from typing import AsyncIterator

import uvicorn
from fastapi import FastAPI

from app.api import router
from datastore.sensor_store import build_default_store
from logging_config import configure_logging, resolve_level
from services.forecast import build_default_forecast_service
from settings import get_settings


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncIterator[None]:
    build_default_forecast_service()
    try:
        yield
    finally:
        build_default_forecast_service.cache_clear()
        build_default_store.cache_clear()


def create_app() -> FastAPI:
    configure_logging()
    app = FastAPI(
        title="Sensor Forecast Service",
        description="Environmental sensor registry with linear-trend local forecasts.",
        version="0.1.0",
        lifespan=lifespan,
        openapi_tags=[
            {"name": "Sensors", "description": "Sensor interaction and data submission."},
            {"name": "Admin", "description": "Administrative management of sensors and data."},
        ],
    )
    app.include_router(router)
    return app

app = create_app()


def run() -> None:
    """Serve the application with uvicorn on the configured host and port."""
    settings = get_settings()
    uvicorn.run(
        "app.main:app",
        host=settings.host,
        port=settings.port,
        log_config=None,
        log_level=resolve_level(settings.log_level),
    )
