from __future__ import annotations

from typing import Any, Dict, List, Optional

import httpx
import typer

from cli.config import CLIConfig


class ApiClient:
    """Minimal HTTP client for the meter readings service."""

    def __init__(self, config: CLIConfig) -> None:
        self._config = config
        self._client = httpx.Client(base_url=config.base_url, timeout=config.timeout)

    def close(self) -> None:
        self._client.close()

    def record_reading(
        self,
        space_id: str,
        utility: str,
        value: float,
        room: Optional[str] = None,
        notes: Optional[str] = None,
        reading_date: Optional[str] = None,
    ) -> Dict[str, Any]:
        body: Dict[str, Any] = {"value": value}
        if notes:
            body["notes"] = notes
        if reading_date:
            body["reading_date"] = reading_date
        return self._request(
            "POST",
            f"/spaces/{space_id}/readings/{utility}",
            params=self._params(room=room),
            json=body,
        )

    def latest_reading(
        self, space_id: str, utility: str, room: Optional[str] = None
    ) -> Optional[Dict[str, Any]]:
        return self._request(
            "GET",
            f"/spaces/{space_id}/readings/{utility}/latest",
            params=self._params(room=room),
        )

    def reading_history(
        self,
        space_id: str,
        utility: str,
        room: Optional[str] = None,
        price: Optional[float] = None,
    ) -> Dict[str, Any]:
        return self._request(
            "GET",
            f"/spaces/{space_id}/readings/{utility}",
            params=self._params(room=room, price=price),
        )

    def monthly(
        self,
        space_id: str,
        utility: str,
        room: Optional[str] = None,
        price: Optional[float] = None,
        year: Optional[int] = None,
        month: Optional[int] = None,
    ) -> Dict[str, Any]:
        return self._request(
            "GET",
            f"/spaces/{space_id}/readings/{utility}/monthly",
            params=self._params(room=room, price=price, year=year, month=month),
        )

    def combined_monthly(
        self,
        space_id: str,
        room: Optional[str] = None,
        year: Optional[int] = None,
        month: Optional[int] = None,
    ) -> List[Dict[str, Any]]:
        return self._request(
            "GET",
            f"/spaces/{space_id}/utilities/monthly",
            params=self._params(room=room, year=year, month=month),
        )

    @staticmethod
    def _params(**values: Any) -> Dict[str, Any]:
        return {key: value for key, value in values.items() if value is not None}

    def _request(self, method: str, url: str, **kwargs: Any) -> Any:
        try:
            response = self._client.request(method, url, **kwargs)
        except httpx.TransportError as exc:
            typer.secho(
                f"Could not reach {self._config.base_url}: {exc}",
                fg=typer.colors.RED,
                err=True,
            )
            raise typer.Exit(code=1) from exc
        return self._unwrap(response)

    def _unwrap(self, response: httpx.Response) -> Any:
        try:
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            self._handle_http_error(exc)
        return response.json()

    @staticmethod
    def _handle_http_error(exc: httpx.HTTPStatusError) -> None:
        detail: str | None = None
        try:
            data = exc.response.json()
            detail = data.get("detail")
            if data.get("reason") == "duplicate":
                detail = (
                    f"{detail} (latest value is {data.get('latest_value')}; "
                    "the reading may already be recorded)"
                )
        except Exception:  # noqa: BLE001 - best effort parsing
            detail = exc.response.text.strip()
        message = (
            f"Request failed with status {exc.response.status_code}: {detail or 'no detail provided.'}"
        )
        typer.secho(message, fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1)
