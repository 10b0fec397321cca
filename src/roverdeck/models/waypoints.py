"""Grid and mission waypoint models."""

from __future__ import annotations

from typing import Iterable, NamedTuple

from roverdeck.exceptions import WaypointError

GRID_SIZE = 10


class GridCell(NamedTuple):
    """A cell in the preview grid."""
    row: int
    col: int


class MissionWaypoint(NamedTuple):
    """A real-valued mission coordinate imported from a file."""
    x: float
    y: float


# Fixed vehicle marker at the grid center
MARKER_CELL = GridCell(4, 4)


def toggle_grid_waypoint(
    waypoints: tuple[GridCell, ...], row: int, col: int
) -> tuple[GridCell, ...]:
    """Add the cell if absent, remove it if present.

    The marker cell is never added. Order of the remaining cells is kept.

    Raises:
        WaypointError: If the cell lies outside the grid.
    """
    if not (0 <= row < GRID_SIZE and 0 <= col < GRID_SIZE):
        raise WaypointError(f"Cell ({row}, {col}) is outside the {GRID_SIZE}x{GRID_SIZE} grid")

    cell = GridCell(row, col)
    if cell == MARKER_CELL:
        return waypoints
    if cell in waypoints:
        return tuple(p for p in waypoints if p != cell)
    return (*waypoints, cell)


def set_mission_waypoints(points: Iterable[tuple[float, float]]) -> tuple[MissionWaypoint, ...]:
    """Build a replacement mission sequence from coordinate pairs."""
    return tuple(MissionWaypoint(float(x), float(y)) for x, y in points)
