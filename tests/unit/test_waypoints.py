"""Unit tests for grid and mission waypoint models."""

from __future__ import annotations

import pytest

from roverdeck.exceptions import WaypointError
from roverdeck.models.waypoints import (
    GRID_SIZE,
    MARKER_CELL,
    GridCell,
    MissionWaypoint,
    set_mission_waypoints,
    toggle_grid_waypoint,
)


class TestToggleGridWaypoint:
    def test_adds_missing_cell(self):
        assert toggle_grid_waypoint((), 1, 2) == (GridCell(1, 2),)

    def test_removes_present_cell_keeping_order(self):
        start = (GridCell(0, 0), GridCell(1, 1), GridCell(2, 2))
        assert toggle_grid_waypoint(start, 1, 1) == (GridCell(0, 0), GridCell(2, 2))

    def test_appends_at_end(self):
        start = (GridCell(3, 3),)
        assert toggle_grid_waypoint(start, 0, 9)[-1] == GridCell(0, 9)

    def test_marker_cell_is_noop(self):
        start = (GridCell(0, 0),)
        assert toggle_grid_waypoint(start, MARKER_CELL.row, MARKER_CELL.col) == start

    @pytest.mark.parametrize("row,col", [(-1, 0), (0, GRID_SIZE), (GRID_SIZE, 5)])
    def test_outside_grid_rejected(self, row, col):
        with pytest.raises(WaypointError):
            toggle_grid_waypoint((), row, col)

    def test_toggle_twice_restores_every_cell(self):
        start = (GridCell(7, 1), GridCell(2, 8))
        for row in range(GRID_SIZE):
            for col in range(GRID_SIZE):
                twice = toggle_grid_waypoint(toggle_grid_waypoint(start, row, col), row, col)
                assert set(twice) == set(start)
                if (row, col) not in start:
                    assert twice == start

    def test_never_duplicates_or_contains_marker(self):
        cells: tuple[GridCell, ...] = ()
        for row, col in [(1, 1), (4, 4), (2, 2), (1, 1), (1, 1), (3, 3)]:
            cells = toggle_grid_waypoint(cells, row, col)
        assert len(cells) == len(set(cells))
        assert MARKER_CELL not in cells
        assert cells == (GridCell(2, 2), GridCell(1, 1), GridCell(3, 3))


class TestMissionWaypoints:
    def test_replaces_with_floats(self):
        mission = set_mission_waypoints([(1, 2), (3.5, -4)])
        assert mission == (MissionWaypoint(1.0, 2.0), MissionWaypoint(3.5, -4.0))

    def test_empty(self):
        assert set_mission_waypoints([]) == ()
