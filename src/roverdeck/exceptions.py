"""Exception hierarchy for rover session management."""

from __future__ import annotations


class RoverDeckError(Exception):
    """Base exception for all RoverDeck errors."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        self.status_code = status_code
        super().__init__(message)


class ValidationError(RoverDeckError):
    """Input rejected locally before any network call."""


class ConfigValidationError(ValidationError):
    """A navigation or radio configuration patch is invalid."""


class WaypointError(ValidationError):
    """A grid waypoint lies outside the grid."""


class CsvImportError(ValidationError):
    """A waypoint file line could not be parsed."""

    def __init__(self, message: str, line_number: int) -> None:
        self.line_number = line_number
        super().__init__(message)


class SessionError(RoverDeckError):
    """Base exception for session registry operations."""


class SessionNotFoundError(SessionError):
    """No session exists with the given id."""


class SessionConnectedError(SessionError):
    """The session must be disconnected before this operation."""


class StoreError(RoverDeckError):
    """The remote configuration store rejected or failed a request."""


class StoreConflictError(StoreError):
    """A record with the same host and port already exists for the owner."""


class RoverRequestError(RoverDeckError):
    """A request to a rover endpoint failed or returned a non-success status."""

    def __init__(self, message: str, status_code: int | None = None, body: str = "") -> None:
        self.body = body
        super().__init__(message, status_code=status_code)
