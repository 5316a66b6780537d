from __future__ import annotations

from typing import Any, Dict, NoReturn, Tuple

import httpx
import typer

from cli.config import CLIConfig


class ApiClient:
    """Minimal HTTP client for the telemetry dashboard service."""

    def __init__(self, config: CLIConfig) -> None:
        self._config = config
        self._client = httpx.Client(base_url=config.base_url, timeout=config.timeout)

    def close(self) -> None:
        self._client.close()

    def push_record(self, message: str, sender: str) -> str:
        try:
            response = self._client.post(
                "/records", json={"message": message, "sender": sender}
            )
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            self._handle_http_error(exc)
        payload = response.json()
        key = payload.get("key")
        if not isinstance(key, str):
            raise typer.BadParameter("Unexpected response payload when pushing record.")
        return key

    def get_summary(self, refresh: bool = False) -> Dict[str, Any]:
        try:
            if refresh:
                response = self._client.post("/refresh")
            else:
                response = self._client.get("/aggregates")
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            self._handle_http_error(exc)
        return response.json()

    def get_panel_readings(self, date_key: str, panel: str) -> Dict[str, Any]:
        try:
            response = self._client.get(f"/dates/{date_key}/panels/{panel}")
            if response.status_code == 404:
                raise typer.BadParameter(f"No readings recorded for date {date_key}.")
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            self._handle_http_error(exc)
        return response.json()

    def download_export(self, export_format: str) -> Tuple[str, bytes]:
        """Return the server-suggested filename and the file content."""
        try:
            response = self._client.get(f"/export/{export_format}")
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            self._handle_http_error(exc)
        disposition = response.headers.get("content-disposition", "")
        filename = f"export.{export_format}"
        if "filename=" in disposition:
            filename = disposition.split("filename=", 1)[1].strip('"; ')
        return filename, response.content

    @staticmethod
    def _handle_http_error(exc: httpx.HTTPStatusError) -> NoReturn:
        detail: str | None = None
        try:
            data = exc.response.json()
            detail = data.get("detail")
        except Exception:  # noqa: BLE001 - best effort parsing
            detail = exc.response.text.strip()
        message = (
            f"Request failed with status {exc.response.status_code}: {detail or 'no detail provided.'}"
        )
        typer.secho(message, fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1)
