"""PostgREST client for the ``rover_instances`` table.

Talks to a Supabase-style REST endpoint (``{base_url}/rest/v1``) with
``httpx.AsyncClient``. Owner scoping is enforced with ``user_id``
filters on every query.
"""

from __future__ import annotations

from typing import Any

import httpx
from pydantic import ValidationError as PydanticValidationError

from roverdeck.exceptions import StoreConflictError, StoreError
from roverdeck.models.session import RoverRecord
from roverdeck.store.base import RoverStore
from roverdeck.utils.logging import get_logger

logger = get_logger(__name__)

TABLE = "rover_instances"

# PostgreSQL unique_violation
UNIQUE_VIOLATION = "23505"


def _error_code(response: httpx.Response) -> str | None:
    try:
        body = response.json()
    except ValueError:
        return None
    if isinstance(body, dict):
        code = body.get("code")
        return str(code) if code is not None else None
    return None


def _json_body(response: httpx.Response) -> Any:
    try:
        return response.json()
    except ValueError as exc:
        raise StoreError(
            f"Store returned a non-JSON body ({response.status_code})",
            status_code=response.status_code,
        ) from exc


class RestRoverStore(RoverStore):
    """Remote store backed by a PostgREST API."""

    def __init__(
        self,
        base_url: str,
        api_key: str = "",
        access_token: str | None = None,
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        headers = {"Content-Type": "application/json"}
        if api_key:
            headers["apikey"] = api_key
            headers["Authorization"] = f"Bearer {access_token or api_key}"
        self._client = httpx.AsyncClient(
            base_url=f"{base_url.rstrip('/')}/rest/v1",
            headers=headers,
            timeout=timeout,
            transport=transport,
        )

    async def fetch_records(self, owner_id: str) -> list[RoverRecord]:
        response = await self._request(
            "GET",
            f"/{TABLE}",
            params={
                "select": "*",
                "user_id": f"eq.{owner_id}",
                "order": "created_at.desc",
            },
        )
        rows = _json_body(response)
        if not isinstance(rows, list):
            raise StoreError("Unexpected response body from store")

        records: list[RoverRecord] = []
        for row in rows:
            try:
                records.append(RoverRecord.model_validate(row))
            except PydanticValidationError as exc:
                logger.warning(
                    "store_row_skipped",
                    row_id=row.get("id") if isinstance(row, dict) else None,
                    error=str(exc),
                )
        return records

    async def create_record(
        self,
        owner_id: str,
        name: str,
        host: str,
        port: int,
        nav_config: dict[str, Any],
        sdr_config: dict[str, Any],
    ) -> str:
        response = await self._request(
            "POST",
            f"/{TABLE}",
            json={
                "user_id": owner_id,
                "name": name,
                "ip_address": host,
                "port": port,
                "nav_config": nav_config,
                "sdr_config": sdr_config,
            },
            headers={"Prefer": "return=representation"},
        )
        body = _json_body(response)
        row = body[0] if isinstance(body, list) and body else body
        if not isinstance(row, dict) or not row.get("id"):
            raise StoreError("Store did not return the created record id")
        return str(row["id"])

    async def update_record(
        self,
        owner_id: str,
        record_id: str,
        nav_config: dict[str, Any],
        sdr_config: dict[str, Any],
    ) -> None:
        await self._request(
            "PATCH",
            f"/{TABLE}",
            params={"id": f"eq.{record_id}", "user_id": f"eq.{owner_id}"},
            json={"nav_config": nav_config, "sdr_config": sdr_config},
        )

    async def delete_record(self, owner_id: str, record_id: str) -> None:
        await self._request(
            "DELETE",
            f"/{TABLE}",
            params={"id": f"eq.{record_id}", "user_id": f"eq.{owner_id}"},
        )

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _request(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        try:
            response = await self._client.request(method, url, **kwargs)
        except httpx.HTTPError as exc:
            raise StoreError(f"{method} {url} failed: {exc}") from exc

        if response.is_success:
            return response

        code = _error_code(response)
        logger.debug(
            "store_request_rejected",
            method=method,
            status=response.status_code,
            code=code,
        )
        if response.status_code == 409 or code == UNIQUE_VIOLATION:
            raise StoreConflictError(
                "Rover with this IP and port already exists",
                status_code=response.status_code,
            )
        raise StoreError(
            f"{method} {url} returned {response.status_code}: {response.text}",
            status_code=response.status_code,
        )
