from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from typing import Optional


_STORE_PATH_ENV = "SENSOR_STORE_PERSISTENCE_PATH"
_WINDOW_SIZE_ENV = "FORECAST_WINDOW_SIZE"
_LOG_LEVEL_ENV = "LOG_LEVEL"
_HOST_ENV = "SERVICE_HOST"
_PORT_ENV = "PORT"

DEFAULT_WINDOW_SIZE = 50


@dataclass(frozen=True)
class Settings:
    store_persistence_path: Optional[str]
    forecast_window_size: int
    log_level: str
    host: str
    port: int


def _read_optional_env(name: str, default: Optional[str]) -> Optional[str]:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip()
    return candidate or None


def _read_window_size(default: int) -> int:
    value = os.getenv(_WINDOW_SIZE_ENV)
    if value is None:
        return default
    candidate = value.strip()
    if not candidate:
        return default
    try:
        parsed = int(candidate)
    except ValueError:
        return default
    # A regression needs at least two points.
    return parsed if parsed >= 2 else default


def _read_str_env(name: str, default: str) -> str:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip()
    return candidate or default


def _read_port(default: int) -> int:
    value = os.getenv(_PORT_ENV)
    if value is None:
        return default
    try:
        parsed = int(value.strip())
    except ValueError:
        return default
    return parsed if 0 < parsed < 65536 else default


def _read_log_level(default: str) -> str:
    value = os.getenv(_LOG_LEVEL_ENV)
    if value is None:
        return default
    candidate = value.strip()
    if not candidate:
        return default
    return candidate.upper()


@lru_cache
def get_settings() -> Settings:
    return Settings(
        store_persistence_path=_read_optional_env(_STORE_PATH_ENV, "./tmp/sensor_store.json"),
        forecast_window_size=_read_window_size(DEFAULT_WINDOW_SIZE),
        log_level=_read_log_level("INFO"),
        host=_read_str_env(_HOST_ENV, "127.0.0.1"),
        port=_read_port(8000),
    )
