"""Rover endpoint access."""

from roverdeck.rover.client import RoverClient

__all__ = ["RoverClient"]
