"""In-process rover store for offline runs and tests."""

from __future__ import annotations

import copy
import uuid
from datetime import datetime, timezone
from typing import Any

from roverdeck.exceptions import StoreConflictError, StoreError
from roverdeck.models.session import RoverRecord
from roverdeck.store.base import RoverStore


class MemoryRoverStore(RoverStore):
    """Keeps records in a dict with the same uniqueness rules as the remote table."""

    def __init__(self) -> None:
        self._rows: dict[str, dict[str, Any]] = {}
        self.calls: list[tuple[str, str]] = []

    async def fetch_records(self, owner_id: str) -> list[RoverRecord]:
        self.calls.append(("fetch", owner_id))
        rows = [r for r in self._rows.values() if r["user_id"] == owner_id]
        rows.sort(key=lambda r: r["created_at"], reverse=True)
        return [RoverRecord.model_validate(copy.deepcopy(r)) for r in rows]

    async def create_record(
        self,
        owner_id: str,
        name: str,
        host: str,
        port: int,
        nav_config: dict[str, Any],
        sdr_config: dict[str, Any],
    ) -> str:
        self.calls.append(("create", name))
        for row in self._rows.values():
            if (row["user_id"], row["ip_address"], row["port"]) == (owner_id, host, port):
                raise StoreConflictError(
                    f"Rover {host}:{port} already exists", status_code=409,
                )
        record_id = str(uuid.uuid4())
        self._rows[record_id] = {
            "id": record_id,
            "user_id": owner_id,
            "name": name,
            "ip_address": host,
            "port": port,
            "nav_config": copy.deepcopy(nav_config),
            "sdr_config": copy.deepcopy(sdr_config),
            "created_at": datetime.now(timezone.utc).isoformat(),
        }
        return record_id

    async def update_record(
        self,
        owner_id: str,
        record_id: str,
        nav_config: dict[str, Any],
        sdr_config: dict[str, Any],
    ) -> None:
        self.calls.append(("update", record_id))
        row = self._owned(owner_id, record_id)
        row["nav_config"] = copy.deepcopy(nav_config)
        row["sdr_config"] = copy.deepcopy(sdr_config)

    async def delete_record(self, owner_id: str, record_id: str) -> None:
        self.calls.append(("delete", record_id))
        self._owned(owner_id, record_id)
        del self._rows[record_id]

    def get_row(self, record_id: str) -> dict[str, Any] | None:
        """Return a copy of a raw row, for inspection."""
        row = self._rows.get(record_id)
        return copy.deepcopy(row) if row is not None else None

    def _owned(self, owner_id: str, record_id: str) -> dict[str, Any]:
        row = self._rows.get(record_id)
        if row is None or row["user_id"] != owner_id:
            raise StoreError(f"Record {record_id} not found", status_code=404)
        return row
