"""Short-horizon local forecasts derived from recent sensor readings."""

from __future__ import annotations

import logging
import math
from datetime import datetime, timedelta, timezone
from functools import lru_cache
from typing import Callable, Optional

from app.schemas import LocalForecast
from datastore.sensor_store import SensorStore, build_default_store
from services.regression import LinearFit, fit_line, normalize_times
from settings import DEFAULT_WINDOW_SIZE, get_settings

logger = logging.getLogger(__name__)

SECONDS_PER_HOUR = 3600
# Upper bound accepted by the HTTP layer; one year of hours.
MAX_HOURS_AHEAD = 24 * 365
FIELDS = ("temperature", "humidity", "pressure")
FORECAST_NOTE = (
    "This forecast is based on a linear regression of the last 50 sensor readings. "
    "Its accuracy decreases with the forecast horizon."
)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ForecastService:
    """Fits per-field trend lines over a sensor's recent window and stores the extrapolation."""

    def __init__(
        self,
        store: SensorStore,
        window_size: int = DEFAULT_WINDOW_SIZE,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self.store = store
        self.window_size = window_size
        self.clock = clock

    def generate_forecast(self, sensor_id: str, hours_ahead: int = 1) -> Optional[LocalForecast]:
        """Predict readings ``hours_ahead`` hours out and persist the result.

        Returns ``None`` when the window holds fewer than two readings or all
        of them share a timestamp; nothing is written in that case. Store
        failures propagate to the caller.
        """
        recent = self.store.fetch_recent_readings(sensor_id, limit=self.window_size)
        window = list(reversed(recent))
        if len(window) < 2:
            logger.info(
                "Not enough readings for a forecast",
                extra={"sensor_id": sensor_id, "window_size": len(window), "reason": "insufficient_data"},
            )
            return None

        xs = normalize_times([reading.created_at for reading in window])
        fits: dict[str, LinearFit] = {}
        for field in FIELDS:
            fit = fit_line(xs, [getattr(reading, field) for reading in window])
            if fit is None:
                logger.info(
                    "Reading window has no time spread",
                    extra={"sensor_id": sensor_id, "window_size": len(window), "reason": "degenerate_window"},
                )
                return None
            fits[field] = fit

        future_offset = xs[-1] + hours_ahead * SECONDS_PER_HOUR
        predictions = {field: fit.predict(future_offset) for field, fit in fits.items()}
        if not all(math.isfinite(value) for value in predictions.values()):
            logger.warning(
                "Extrapolation produced a non-finite value",
                extra={"sensor_id": sensor_id, "hours_ahead": hours_ahead, "reason": "degenerate_window"},
            )
            return None

        forecast_time = self.clock() + timedelta(hours=hours_ahead)
        forecast_id = self.store.insert_forecast(
            sensor_id,
            forecast_time,
            predictions["temperature"],
            predictions["humidity"],
            predictions["pressure"],
        )
        logger.info(
            "Local forecast stored",
            extra={
                "sensor_id": sensor_id,
                "forecast_id": forecast_id,
                "hours_ahead": hours_ahead,
                "window_size": len(window),
            },
        )
        return LocalForecast(
            id=forecast_id,
            sensor_id=sensor_id,
            forecast_time=forecast_time,
            hours_ahead=hours_ahead,
            predicted_temp=predictions["temperature"],
            predicted_humidity=predictions["humidity"],
            predicted_pressure=predictions["pressure"],
            note=FORECAST_NOTE,
        )


@lru_cache
def build_default_forecast_service() -> ForecastService:
    """Factory that wires the forecast service to the default store."""
    settings = get_settings()
    return ForecastService(store=build_default_store(), window_size=settings.forecast_window_size)
