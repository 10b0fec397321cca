"""HTTP client for a single rover's control endpoint."""

from __future__ import annotations

from typing import Any

import httpx

from roverdeck.exceptions import RoverRequestError
from roverdeck.models.config import SdrConfig
from roverdeck.models.session import RoverEndpoint


def sdr_payload(config: SdrConfig, uri: str | None = None) -> dict[str, Any]:
    """Build the ``/sdr/apply`` body from a radio configuration."""
    payload: dict[str, Any] = {
        "frequency": config.frequency,
        "bandwidth": config.bandwidth,
        "sampleRate": config.sample_rate,
        "gainMode": config.gain_mode.value,
        "gainValue": config.gain_value,
        "direction": config.direction.value,
    }
    if uri:
        payload["uri"] = uri
    return payload


class RoverClient:
    """Plain request/response calls against ``http://host:port``.

    Every method raises :class:`RoverRequestError` on transport failure
    or a non-success status; callers decide how to surface it.
    """

    def __init__(
        self,
        endpoint: RoverEndpoint,
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._endpoint = endpoint
        self._timeout = timeout
        self._transport = transport

    @property
    def endpoint(self) -> RoverEndpoint:
        return self._endpoint

    async def ping(self) -> None:
        """Handshake used to resolve a connection attempt."""
        await self._request("GET", "/health", "Rover did not answer")

    async def release(self) -> None:
        """Tell the rover the operator disconnected."""
        await self._request("POST", "/disconnect", "Failed to disconnect")

    async def run_movement_test(self) -> None:
        await self._request("POST", "/test/movement", "Movement test failed")

    async def stop(self) -> None:
        await self._request("POST", "/stop", "Force stop failed")

    async def apply_sdr(self, config: SdrConfig, uri: str | None = None) -> Any:
        response = await self._request(
            "POST", "/sdr/apply", "Failed to apply SDR", json=sdr_payload(config, uri),
        )
        return _json_or_none(response)

    async def verify_sdr(self, uri: str) -> Any:
        response = await self._request(
            "POST", "/sdr/verify", "Failed to verify SDR", json={"uri": uri},
        )
        return _json_or_none(response)

    async def transmit_gps(self) -> None:
        await self._request("POST", "/sdr/txgps", "Failed to trigger GPS transmission")

    async def _request(
        self, method: str, path: str, failure: str, **kwargs: Any
    ) -> httpx.Response:
        url = f"{self._endpoint.base_url}{path}"
        try:
            async with httpx.AsyncClient(
                timeout=self._timeout, transport=self._transport
            ) as client:
                response = await client.request(method, url, **kwargs)
        except httpx.HTTPError as exc:
            raise RoverRequestError(f"{failure}: {exc}") from exc

        if not response.is_success:
            body = response.text
            raise RoverRequestError(
                body or failure, status_code=response.status_code, body=body,
            )
        return response


def _json_or_none(response: httpx.Response) -> Any:
    try:
        return response.json()
    except ValueError:
        return None
