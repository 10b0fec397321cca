"""Pydantic data models for RoverDeck."""

from roverdeck.models.config import (
    DEFAULT_NAV,
    DEFAULT_SDR,
    GainMode,
    NavConfig,
    SdrConfig,
    SdrDirection,
    decode_nav_config,
    decode_sdr_config,
)
from roverdeck.models.session import (
    ActiveRover,
    ConnectionState,
    MovementResult,
    MovementTestState,
    RoverEndpoint,
    RoverRecord,
    RoverSession,
)
from roverdeck.models.waypoints import GRID_SIZE, MARKER_CELL, GridCell, MissionWaypoint

__all__ = [
    "ActiveRover",
    "ConnectionState",
    "DEFAULT_NAV",
    "DEFAULT_SDR",
    "GRID_SIZE",
    "GainMode",
    "GridCell",
    "MARKER_CELL",
    "MissionWaypoint",
    "MovementResult",
    "MovementTestState",
    "NavConfig",
    "RoverEndpoint",
    "RoverRecord",
    "RoverSession",
    "SdrConfig",
    "SdrDirection",
    "decode_nav_config",
    "decode_sdr_config",
]
