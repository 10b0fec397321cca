"""Create-or-update persistence with per-session debounced auto-save."""

from __future__ import annotations

import asyncio
from enum import StrEnum
from typing import Callable

from roverdeck.exceptions import StoreConflictError, StoreError
from roverdeck.models.config import to_record
from roverdeck.models.session import RoverRecord, RoverSession
from roverdeck.store.base import RoverStore
from roverdeck.utils.logging import get_logger

logger = get_logger(__name__)

DEFAULT_DEBOUNCE_SECONDS = 0.8

SessionLookup = Callable[[str], "RoverSession | None"]
RemoteIdAssigner = Callable[[str, str], None]


class SaveOutcome(StrEnum):
    """Result of an explicit save."""
    CREATED = "created"
    UPDATED = "updated"
    CONFLICT = "conflict"
    FAILED = "failed"
    INVALID_ENDPOINT = "invalid_endpoint"
    NO_OWNER = "no_owner"


SAVE_MESSAGES: dict[SaveOutcome, str] = {
    SaveOutcome.CREATED: "Rover saved",
    SaveOutcome.UPDATED: "Configuration updated",
    SaveOutcome.CONFLICT: "Rover with this IP and port already exists",
    SaveOutcome.FAILED: "Save failed",
    SaveOutcome.INVALID_ENDPOINT: "Invalid IP address or port",
    SaveOutcome.NO_OWNER: "No owner configured",
}


class PersistenceSynchronizer:
    """Reconciles local session configuration with the remote store.

    Explicit :meth:`save` creates the record when the session has no
    ``remote_id`` and updates it otherwise. :meth:`schedule` arms a
    per-session timer that updates the record once edits go quiet for
    ``debounce_seconds``; re-arming cancels the previous timer. The timer
    reads the latest session through *lookup* when it fires, so only the
    final state of a burst is written.
    """

    def __init__(
        self,
        store: RoverStore,
        owner_id: str | None,
        lookup: SessionLookup,
        assign_remote_id: RemoteIdAssigner,
        debounce_seconds: float = DEFAULT_DEBOUNCE_SECONDS,
    ) -> None:
        self._store = store
        self._owner_id = owner_id
        self._lookup = lookup
        self._assign_remote_id = assign_remote_id
        self._debounce_seconds = debounce_seconds
        self._timers: dict[str, asyncio.TimerHandle] = {}
        self._in_flight: set[asyncio.Task] = set()

    @property
    def owner_id(self) -> str | None:
        return self._owner_id

    @property
    def debounce_seconds(self) -> float:
        return self._debounce_seconds

    # ------------------------------------------------------------------
    # Explicit operations
    # ------------------------------------------------------------------

    async def save(self, session: RoverSession) -> SaveOutcome:
        """Create or update the record for *session*. Never raises StoreError."""
        if not self._owner_id:
            return SaveOutcome.NO_OWNER
        if not session.endpoint.is_valid:
            return SaveOutcome.INVALID_ENDPOINT

        if session.remote_id is not None:
            try:
                await self._update(session)
            except StoreError as exc:
                logger.warning("save_update_failed", session_id=session.id, error=str(exc))
                return SaveOutcome.FAILED
            return SaveOutcome.UPDATED

        try:
            record_id = await self._store.create_record(
                owner_id=self._owner_id,
                name=session.display_name,
                host=session.endpoint.host,
                port=int(session.endpoint.port),
                nav_config=to_record(session.nav),
                sdr_config=to_record(session.sdr),
            )
        except StoreConflictError:
            logger.info(
                "save_conflict",
                session_id=session.id,
                host=session.endpoint.host,
                port=session.endpoint.port,
            )
            return SaveOutcome.CONFLICT
        except StoreError as exc:
            logger.warning("save_create_failed", session_id=session.id, error=str(exc))
            return SaveOutcome.FAILED

        self._assign_remote_id(session.id, record_id)
        logger.info("session_saved", session_id=session.id, remote_id=record_id)
        return SaveOutcome.CREATED

    async def fetch_saved(self) -> list[RoverRecord]:
        """Fetch the owner's saved records.

        Raises:
            StoreError: If the store request fails.
        """
        if not self._owner_id:
            return []
        return await self._store.fetch_records(self._owner_id)

    async def delete_remote(self, remote_id: str) -> bool:
        """Best-effort delete of a saved record; failures are logged."""
        if not self._owner_id:
            return False
        try:
            await self._store.delete_record(self._owner_id, remote_id)
        except StoreError as exc:
            logger.warning("remote_delete_failed", remote_id=remote_id, error=str(exc))
            return False
        logger.info("remote_deleted", remote_id=remote_id)
        return True

    # ------------------------------------------------------------------
    # Debounced auto-save
    # ------------------------------------------------------------------

    def schedule(self, session_id: str) -> bool:
        """(Re)arm the auto-save timer for a saved session.

        Returns False, arming nothing, when the session has no
        ``remote_id`` or no owner is configured. Must be called from the
        event loop thread.
        """
        session = self._lookup(session_id)
        if session is None or session.remote_id is None or not self._owner_id:
            return False

        loop = asyncio.get_running_loop()
        self.cancel(session_id)
        self._timers[session_id] = loop.call_later(
            self._debounce_seconds, self._fire, session_id,
        )
        return True

    def cancel(self, session_id: str) -> None:
        handle = self._timers.pop(session_id, None)
        if handle is not None:
            handle.cancel()

    def is_pending(self, session_id: str) -> bool:
        return session_id in self._timers

    async def flush(self) -> None:
        """Fire every pending timer now and wait for all in-flight writes."""
        for session_id in list(self._timers):
            self.cancel(session_id)
            self._fire(session_id)
        if self._in_flight:
            await asyncio.gather(*self._in_flight, return_exceptions=True)

    async def close(self) -> None:
        await self.flush()

    def _fire(self, session_id: str) -> None:
        self._timers.pop(session_id, None)
        session = self._lookup(session_id)
        if session is None or session.remote_id is None:
            return
        task = asyncio.get_running_loop().create_task(self._auto_save(session))
        self._in_flight.add(task)
        task.add_done_callback(self._in_flight.discard)

    async def _auto_save(self, session: RoverSession) -> None:
        try:
            await self._update(session)
        except StoreError as exc:
            logger.warning("auto_save_failed", session_id=session.id, error=str(exc))
            return
        logger.debug("auto_saved", session_id=session.id, remote_id=session.remote_id)

    async def _update(self, session: RoverSession) -> None:
        await self._store.update_record(
            owner_id=self._owner_id,
            record_id=session.remote_id,
            nav_config=to_record(session.nav),
            sdr_config=to_record(session.sdr),
        )
