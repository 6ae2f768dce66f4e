from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict, List

import httpx
import typer

from cli.config import CLIConfig


def load_snapshot_file(path: Path) -> Dict[str, Any]:
    try:
        payload = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise typer.BadParameter(f"{path} is not valid JSON: {exc.msg}") from exc
    if payload is None:
        return {}
    if not isinstance(payload, dict):
        raise typer.BadParameter(f"{path} must contain a JSON object.")
    return payload


class ApiClient:
    """Minimal HTTP client for the chart service."""

    def __init__(self, config: CLIConfig) -> None:
        self._config = config
        self._client = httpx.Client(base_url=config.base_url, timeout=config.timeout)

    def close(self) -> None:
        self._client.close()

    def ingest_file(self, path: Path) -> Dict[str, Any]:
        if not path.is_file():
            raise typer.BadParameter(f"Path {path} is not a file.")
        snapshot = load_snapshot_file(path)
        return self._request("POST", "/snapshots", json=snapshot)

    def list_metrics(self) -> List[Dict[str, Any]]:
        return self._request("GET", "/metrics")

    def get_buckets(self, metric: str) -> List[Dict[str, Any]]:
        return self._request("GET", f"/metrics/{metric}/buckets")

    def get_series(self, metric: str, zoom: float, pan: float) -> Dict[str, Any]:
        return self._request("GET", f"/metrics/{metric}/series", params={"zoom": zoom, "pan": pan})

    def get_status(self) -> Dict[str, Any]:
        return self._request("GET", "/status")

    def _request(self, method: str, path: str, **kwargs: Any) -> Any:
        try:
            response = self._client.request(method, path, **kwargs)
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            self._handle_http_error(exc)
        except httpx.TransportError as exc:
            typer.secho(f"Could not reach {self._config.base_url}: {exc}", fg=typer.colors.RED, err=True)
            raise typer.Exit(code=1) from exc
        return response.json()

    @staticmethod
    def _handle_http_error(exc: httpx.HTTPStatusError) -> None:
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
