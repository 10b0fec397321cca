"""Mission waypoint import."""

from roverdeck.mission.csv_import import parse_waypoint_csv, read_waypoint_file

__all__ = ["parse_waypoint_csv", "read_waypoint_file"]
