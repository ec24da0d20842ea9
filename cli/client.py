from __future__ import annotations

from typing import Any, Dict, List, Optional

import httpx
import typer

from cli.config import CLIConfig


class ApiClient:
    """Minimal HTTP client for the telemetry query API."""

    def __init__(self, config: CLIConfig) -> None:
        self._config = config
        self._client = httpx.Client(base_url=config.base_url, timeout=config.timeout)

    def close(self) -> None:
        self._client.close()

    def get_recent(self) -> List[Dict[str, Any]]:
        return self._get("/api/sensordata")

    def get_latest(self) -> List[Dict[str, Any]]:
        return self._get("/api/sensordata/latest")

    def get_by_sensor(self, sensor_id: str) -> List[Dict[str, Any]]:
        return self._get(
            f"/api/sensordata/bySensor/{sensor_id}",
            not_found=f"No data found for sensor ID: {sensor_id}",
        )

    def get_by_type(self, sensor_type: str) -> List[Dict[str, Any]]:
        return self._get(
            f"/api/sensordata/byType/{sensor_type}",
            not_found=f"No data found for sensor type: {sensor_type}",
        )

    def get_summary(
        self,
        sensor_type: Optional[str] = None,
        page: int = 1,
        page_size: int = 6,
    ) -> Dict[str, Any]:
        params: Dict[str, Any] = {"page": page, "pageSize": page_size}
        if sensor_type:
            params["sensorType"] = sensor_type
        return self._get("/api/sensordata/summary", params=params)

    def get_errors(self) -> List[Dict[str, Any]]:
        return self._get("/api/sensorerrors")

    def _get(
        self,
        path: str,
        params: Optional[Dict[str, Any]] = None,
        not_found: Optional[str] = None,
    ) -> Any:
        try:
            response = self._client.get(path, params=params)
            if response.status_code == 404 and not_found:
                raise typer.BadParameter(not_found)
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            self._handle_http_error(exc)
        except httpx.TransportError as exc:
            typer.secho(
                f"Could not reach {self._config.base_url}: {exc}",
                fg=typer.colors.RED,
                err=True,
            )
            raise typer.Exit(code=1) from exc
        return response.json()

    @staticmethod
    def _handle_http_error(exc: httpx.HTTPStatusError) -> None:
        detail: str | None = None
        try:
            data = exc.response.json()
            detail = data.get("detail") if isinstance(data, dict) else None
        except ValueError:
            detail = exc.response.text.strip()
        message = (
            f"Request failed with status {exc.response.status_code}: {detail or 'no detail provided.'}"
        )
        typer.secho(message, fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1)
