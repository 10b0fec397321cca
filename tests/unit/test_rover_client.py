"""Tests for RoverClient request shapes and error mapping."""

from __future__ import annotations

import asyncio
import json

import httpx
import pytest

from roverdeck.exceptions import RoverRequestError
from roverdeck.models.config import DEFAULT_SDR, GainMode
from roverdeck.models.session import RoverEndpoint
from roverdeck.rover.client import RoverClient, sdr_payload

ENDPOINT = RoverEndpoint(host="10.0.0.7", port="8000")


def _client(handler):
    return RoverClient(ENDPOINT, transport=httpx.MockTransport(handler))


class TestPayload:
    def test_sdr_payload_uses_wire_names(self):
        payload = sdr_payload(DEFAULT_SDR.model_copy(update={"gain_mode": GainMode.MANUAL}))
        assert payload == {
            "frequency": 2400,
            "bandwidth": 5,
            "sampleRate": 5,
            "gainMode": "manual",
            "gainValue": 40,
            "direction": "rx",
        }

    def test_uri_included_when_given(self):
        assert sdr_payload(DEFAULT_SDR, "ip:192.168.2.1")["uri"] == "ip:192.168.2.1"


class TestRequests:
    @pytest.mark.parametrize(
        "method_name, http_method, path",
        [
            ("ping", "GET", "/health"),
            ("release", "POST", "/disconnect"),
            ("run_movement_test", "POST", "/test/movement"),
            ("stop", "POST", "/stop"),
            ("transmit_gps", "POST", "/sdr/txgps"),
        ],
    )
    def test_command_routes(self, method_name, http_method, path):
        seen: list[httpx.Request] = []

        def handler(request):
            seen.append(request)
            return httpx.Response(200, json={"ok": True})

        asyncio.run(getattr(_client(handler), method_name)())
        assert seen[0].method == http_method
        assert str(seen[0].url) == f"http://10.0.0.7:8000{path}"

    def test_apply_sdr_posts_config(self):
        seen: list[httpx.Request] = []

        def handler(request):
            seen.append(request)
            return httpx.Response(200, json={"applied": True})

        result = asyncio.run(_client(handler).apply_sdr(DEFAULT_SDR, "ip:192.168.2.1"))
        assert result == {"applied": True}
        body = json.loads(seen[0].content)
        assert body["uri"] == "ip:192.168.2.1"
        assert body["sampleRate"] == 5

    def test_verify_sdr_sends_uri(self):
        seen: list[httpx.Request] = []

        def handler(request):
            seen.append(request)
            return httpx.Response(200, text="")

        assert asyncio.run(_client(handler).verify_sdr("usb:1.2.5")) is None
        assert json.loads(seen[0].content) == {"uri": "usb:1.2.5"}


class TestErrors:
    def test_error_body_becomes_message(self):
        def handler(request):
            return httpx.Response(400, text="frequency out of range")

        with pytest.raises(RoverRequestError) as excinfo:
            asyncio.run(_client(handler).apply_sdr(DEFAULT_SDR))
        assert str(excinfo.value) == "frequency out of range"
        assert excinfo.value.status_code == 400
        assert excinfo.value.body == "frequency out of range"

    def test_empty_error_body_uses_default_message(self):
        def handler(request):
            return httpx.Response(500)

        with pytest.raises(RoverRequestError, match="Movement test failed"):
            asyncio.run(_client(handler).run_movement_test())

    def test_transport_failure(self):
        def handler(request):
            raise httpx.ConnectError("unreachable")

        with pytest.raises(RoverRequestError, match="Rover did not answer"):
            asyncio.run(_client(handler).ping())
