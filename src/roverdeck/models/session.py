"""Rover session state and remote record models."""

from __future__ import annotations

import re
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from roverdeck.models.config import DEFAULT_NAV, DEFAULT_SDR, NavConfig, SdrConfig
from roverdeck.models.waypoints import GridCell, MissionWaypoint

_OCTET = r"(25[0-5]|2[0-4]\d|1\d{2}|[1-9]?\d)"
_IPV4_RE = re.compile(rf"^{_OCTET}(\.{_OCTET}){{3}}$", re.ASCII)
_PORT_RE = re.compile(r"^\d{1,5}$", re.ASCII)


def is_valid_ipv4(host: str) -> bool:
    """Return True for a dotted-quad IPv4 address without leading zeros."""
    return bool(_IPV4_RE.fullmatch(host))


def is_valid_port(port: str) -> bool:
    """Return True for an integer port string in [1, 65535]."""
    text = port.strip()
    return bool(_PORT_RE.fullmatch(text)) and 1 <= int(text) <= 65535


class ConnectionState(StrEnum):
    """Lifecycle of a session's link to its rover."""
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"


class MovementResult(StrEnum):
    """Outcome of the last movement test."""
    SUCCESS = "success"
    ERROR = "error"


class MovementTestState(BaseModel):
    """Local-only movement test state; never persisted."""
    model_config = ConfigDict(frozen=True)

    running: bool = False
    last_result: MovementResult | None = None


class RoverEndpoint(BaseModel):
    """Network address of a rover as typed by the operator."""
    model_config = ConfigDict(frozen=True)

    host: str = ""
    port: str = ""

    @property
    def is_valid(self) -> bool:
        return is_valid_ipv4(self.host) and is_valid_port(self.port)

    @property
    def base_url(self) -> str:
        return f"http://{self.host}:{int(self.port)}"


class RoverSession(BaseModel):
    """One managed rover: connection, configuration and waypoints.

    Instances are immutable; the registry replaces a session with a
    patched copy on every change.
    """
    model_config = ConfigDict(frozen=True)

    id: str
    display_name: str
    remote_id: str | None = None
    endpoint: RoverEndpoint = Field(default_factory=RoverEndpoint)
    connection: ConnectionState = ConnectionState.DISCONNECTED
    grid_waypoints: tuple[GridCell, ...] = ()
    mission_waypoints: tuple[MissionWaypoint, ...] | None = None
    nav: NavConfig = DEFAULT_NAV
    sdr: SdrConfig = DEFAULT_SDR
    test_state: MovementTestState = Field(default_factory=MovementTestState)
    last_gps_tx: float | None = None

    def patch(self, **changes) -> RoverSession:
        return self.model_copy(update=changes)


class RoverRecord(BaseModel):
    """A saved rover row from the remote store.

    ``nav_config`` and ``sdr_config`` stay untyped here; they are decoded
    once, when a session is hydrated.
    """
    id: str
    name: str = ""
    host: str = Field(default="", alias="ip_address")
    port: int | str = ""
    nav_config: Any = None
    sdr_config: Any = None
    created_at: str | None = None

    model_config = ConfigDict(populate_by_name=True)

    @field_validator("id", mode="before")
    @classmethod
    def _id_as_text(cls, value: Any) -> Any:
        if isinstance(value, int) and not isinstance(value, bool):
            return str(value)
        return value

    @field_validator("name", "host", "port", mode="before")
    @classmethod
    def _null_as_blank(cls, value: Any) -> Any:
        return "" if value is None else value

    @field_validator("created_at", mode="before")
    @classmethod
    def _timestamp_as_text(cls, value: Any) -> Any:
        return value if value is None or isinstance(value, str) else str(value)


class ActiveRover(BaseModel):
    """Summary of the active session shared with other screens."""
    name: str
    host: str
    port: str
    remote_id: str | None = None
