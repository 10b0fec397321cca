"""Unit tests for session models and endpoint validation."""

from __future__ import annotations

import pytest

from roverdeck.models.config import DEFAULT_NAV, DEFAULT_SDR
from roverdeck.models.session import (
    ConnectionState,
    RoverEndpoint,
    RoverRecord,
    RoverSession,
    is_valid_ipv4,
    is_valid_port,
)


class TestEndpointValidation:
    @pytest.mark.parametrize("host", ["192.168.0.159", "0.0.0.0", "255.255.255.255", "10.1.2.3"])
    def test_valid_hosts(self, host):
        assert is_valid_ipv4(host)

    @pytest.mark.parametrize(
        "host", ["999.1.1.1", "256.0.0.1", "1.2.3", "1.2.3.4.5", "01.2.3.4", "rover.local", ""],
    )
    def test_invalid_hosts(self, host):
        assert not is_valid_ipv4(host)

    @pytest.mark.parametrize("port", ["1", "8000", "65535", " 80 "])
    def test_valid_ports(self, port):
        assert is_valid_port(port)

    @pytest.mark.parametrize("port", ["0", "65536", "-1", "80.5", "http", "", "123456"])
    def test_invalid_ports(self, port):
        assert not is_valid_port(port)

    def test_endpoint_base_url(self):
        endpoint = RoverEndpoint(host="10.0.0.7", port="8000")
        assert endpoint.is_valid
        assert endpoint.base_url == "http://10.0.0.7:8000"

    def test_blank_endpoint_invalid(self):
        assert not RoverEndpoint().is_valid

    def test_non_ascii_digits_rejected(self):
        assert not is_valid_ipv4("\u0661.\u0662.\u0663.\u0664")
        assert not is_valid_port("\u0668\u0660")
        assert not RoverEndpoint(host="\u0661.\u0662.\u0663.\u0664", port="\u0668\u0660").is_valid


class TestRoverSession:
    def test_blank_session_defaults(self):
        session = RoverSession(id="rover-1", display_name="Rover 1")
        assert session.connection is ConnectionState.DISCONNECTED
        assert session.grid_waypoints == ()
        assert session.mission_waypoints is None
        assert session.nav == DEFAULT_NAV
        assert session.sdr == DEFAULT_SDR
        assert session.test_state.running is False
        assert session.test_state.last_result is None
        assert session.remote_id is None

    def test_patch_returns_copy(self):
        session = RoverSession(id="rover-1", display_name="Rover 1")
        renamed = session.patch(display_name="Scout")
        assert renamed.display_name == "Scout"
        assert session.display_name == "Rover 1"


class TestRoverRecord:
    def test_parses_store_row(self):
        record = RoverRecord.model_validate({
            "id": "abc",
            "user_id": "owner-1",
            "name": "Scout",
            "ip_address": "10.0.0.7",
            "port": 8000,
            "nav_config": {"baseSpeed": 1},
            "sdr_config": None,
            "created_at": "2026-01-01T00:00:00Z",
        })
        assert record.host == "10.0.0.7"
        assert record.port == 8000
        assert record.nav_config == {"baseSpeed": 1}

    def test_tolerates_missing_optional_fields(self):
        record = RoverRecord.model_validate({"id": "abc", "nav_config": "garbage"})
        assert record.name == ""
        assert record.nav_config == "garbage"

    def test_null_columns_become_blank(self):
        record = RoverRecord.model_validate(
            {"id": 42, "name": None, "ip_address": None, "port": None, "created_at": None},
        )
        assert record.id == "42"
        assert record.name == ""
        assert record.host == ""
        assert record.port == ""
