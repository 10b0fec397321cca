"""Parse ``x,y`` coordinate files into mission waypoints.

Import is all-or-nothing: the first bad line aborts the whole file and
the error carries its 1-based line number. Blank lines are dropped
before numbering.
"""

from __future__ import annotations

import math
from pathlib import Path

from roverdeck.exceptions import CsvImportError
from roverdeck.models.waypoints import MissionWaypoint
from roverdeck.utils.logging import get_logger

logger = get_logger(__name__)


def _parse_field(text: str) -> float | None:
    try:
        value = float(text)
    except ValueError:
        return None
    return value if math.isfinite(value) else None


def parse_waypoint_csv(text: str) -> tuple[MissionWaypoint, ...]:
    """Parse a CSV payload into an ordered mission waypoint sequence.

    Raises:
        CsvImportError: On the first line that is not two finite numbers.
    """
    lines = [line.rstrip("\r") for line in text.split("\n")]
    lines = [line for line in lines if line.strip()]

    points: list[MissionWaypoint] = []
    for idx, line in enumerate(lines, start=1):
        fields = line.split(",")
        if len(fields) != 2:
            raise CsvImportError(f"Invalid coordinate on line {idx}", line_number=idx)
        x, y = (_parse_field(f.strip()) for f in fields)
        if x is None or y is None:
            raise CsvImportError(f"Invalid coordinate on line {idx}", line_number=idx)
        points.append(MissionWaypoint(x, y))

    logger.debug("waypoint_csv_parsed", count=len(points))
    return tuple(points)


def read_waypoint_file(path: str | Path) -> tuple[MissionWaypoint, ...]:
    """Read and parse a waypoint file from disk."""
    return parse_waypoint_csv(Path(path).read_text(encoding="utf-8-sig"))
