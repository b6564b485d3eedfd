from __future__ import annotations

from typing import Any, Dict, List, Optional

import httpx
import typer

from cli.config import CLIConfig


class ApiClient:
    """Minimal HTTP client for the sensor forecast service."""

    def __init__(self, config: CLIConfig) -> None:
        self._config = config
        self._client = httpx.Client(base_url=config.base_url, timeout=config.timeout)

    def close(self) -> None:
        self._client.close()

    def register_sensor(self, name: str, location: str) -> Dict[str, Any]:
        return self._request("POST", "/sensors", json={"name": name, "location": location})

    def send_reading(self, temperature: float, humidity: float, pressure: float) -> Dict[str, Any]:
        payload = {"temperature": temperature, "humidity": humidity, "pressure": pressure}
        return self._request("POST", "/readings", json=payload, authenticated=True)

    def send_location(
        self,
        city_name: str,
        country: Optional[str] = None,
        lat: Optional[float] = None,
        lon: Optional[float] = None,
    ) -> Dict[str, Any]:
        payload = {"city_name": city_name, "country": country, "lat": lat, "lon": lon}
        return self._request("POST", "/sensor_locations", json=payload, authenticated=True)

    def get_forecast(self, sensor_id: str, hours_ahead: int) -> Optional[Dict[str, Any]]:
        """Return the forecast payload, or ``None`` when the sensor lacks data."""
        try:
            response = self._client.get(
                f"/local-forecasts/{sensor_id}", params={"hours_ahead": hours_ahead}
            )
            if response.status_code == 404:
                return None
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            self._handle_http_error(exc)
        return response.json()

    def list_sensors(self) -> List[Dict[str, Any]]:
        return self._request("GET", "/admin/sensors")

    def _request(self, method: str, path: str, authenticated: bool = False, **kwargs: Any) -> Any:
        headers: Dict[str, str] = {}
        if authenticated:
            if not self._config.api_key:
                raise typer.BadParameter("An API key is required (use --api-key or SENSOR_API_KEY).")
            headers["x-api-key"] = self._config.api_key
        try:
            response = self._client.request(method, path, headers=headers, **kwargs)
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            self._handle_http_error(exc)
        return response.json()

    @staticmethod
    def _handle_http_error(exc: httpx.HTTPStatusError) -> None:
        detail: Any = None
        try:
            detail = exc.response.json().get("detail")
        except Exception:  # noqa: BLE001 - best effort parsing
            detail = exc.response.text.strip()
        message = (
            f"Request failed with status {exc.response.status_code}: {detail or 'no detail provided.'}"
        )
        typer.secho(message, fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1)
