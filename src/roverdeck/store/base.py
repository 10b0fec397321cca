"""Abstract interface for the owner-scoped rover configuration store."""

from __future__ import annotations

import abc
from typing import Any

from roverdeck.models.session import RoverRecord


class RoverStore(abc.ABC):
    """Persistence service holding saved rover records.

    Records are unique per ``(owner_id, host, port)``. Update and delete
    only touch rows owned by *owner_id*.
    """

    @abc.abstractmethod
    async def fetch_records(self, owner_id: str) -> list[RoverRecord]:
        """Return the owner's records, newest first."""

    @abc.abstractmethod
    async def create_record(
        self,
        owner_id: str,
        name: str,
        host: str,
        port: int,
        nav_config: dict[str, Any],
        sdr_config: dict[str, Any],
    ) -> str:
        """Insert a record and return its id.

        Raises:
            StoreConflictError: If host and port already exist for the owner.
            StoreError: On any other failure.
        """

    @abc.abstractmethod
    async def update_record(
        self,
        owner_id: str,
        record_id: str,
        nav_config: dict[str, Any],
        sdr_config: dict[str, Any],
    ) -> None:
        """Replace the stored configuration of a record."""

    @abc.abstractmethod
    async def delete_record(self, owner_id: str, record_id: str) -> None:
        """Delete a record."""

    async def aclose(self) -> None:
        """Release any held resources."""
