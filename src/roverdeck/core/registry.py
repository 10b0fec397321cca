"""Rover session registry -- owns every session and routes edits to it.

All mutation happens on the event loop thread. Sessions are immutable
models; every edit replaces the stored session with a patched copy, and
asynchronous completions re-read the latest copy by id when they apply,
so results for different sessions never interfere and results for the
same session apply in completion order.
"""

from __future__ import annotations

import asyncio
import time
from typing import Any, Callable, Coroutine, Iterable, Mapping

from roverdeck.core.connection import (
    ClientFactory,
    ConnectionResolver,
    abort_test,
    begin_connect,
    begin_test,
    disconnect as disconnect_session,
    finish_test,
    resolve_connect,
)
from roverdeck.core.sync import SAVE_MESSAGES, PersistenceSynchronizer, SaveOutcome
from roverdeck.exceptions import (
    CsvImportError,
    RoverRequestError,
    SessionConnectedError,
    SessionNotFoundError,
    StoreError,
    ValidationError,
)
from roverdeck.mission.csv_import import parse_waypoint_csv
from roverdeck.models.config import (
    decode_nav_config,
    decode_sdr_config,
    patch_nav_config,
    patch_sdr_config,
)
from roverdeck.models.session import (
    ActiveRover,
    ConnectionState,
    RoverEndpoint,
    RoverRecord,
    RoverSession,
)
from roverdeck.models.waypoints import (
    MissionWaypoint,
    set_mission_waypoints,
    toggle_grid_waypoint,
)
from roverdeck.rover.client import RoverClient
from roverdeck.settings import ManagerSettings
from roverdeck.store.base import RoverStore
from roverdeck.utils.logging import get_logger

logger = get_logger(__name__)

_EDITABLE_FIELDS = ("display_name", "host", "port")


class RoverSessionRegistry:
    """Ordered collection of rover sessions with one active selection.

    The registry always holds at least one session. Use it as an async
    context manager, or call :meth:`close`, so pending auto-saves are
    flushed and background requests finish before teardown.

    Usage:
        async with RoverSessionRegistry(store, settings) as registry:
            registry.update_session({"host": "10.0.0.7", "port": "8000"})
            await registry.connect()
    """

    def __init__(
        self,
        store: RoverStore,
        settings: ManagerSettings | None = None,
        client_factory: ClientFactory | None = None,
    ) -> None:
        self._settings = settings or ManagerSettings()
        self._client_factory = client_factory or self._default_client
        self._resolver = ConnectionResolver(
            self._client_factory,
            handshake=self._settings.handshake,
            connect_delay=self._settings.connect_delay,
            timeout=self._settings.connect_timeout,
        )
        self._sync = PersistenceSynchronizer(
            store,
            owner_id=self._settings.owner_id,
            lookup=self.get,
            assign_remote_id=self._assign_remote_id,
            debounce_seconds=self._settings.debounce_seconds,
        )
        self._sessions: dict[str, RoverSession] = {}
        self._order: list[str] = []
        self._next_index = 1
        self._tasks: set[asyncio.Task] = set()
        self._closed = False

        self.status = ""
        self.saved_records: list[RoverRecord] = []

        first = self._new_session()
        self._order.append(first.id)
        self._active_id = first.id

    async def __aenter__(self) -> RoverSessionRegistry:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()

    # ------------------------------------------------------------------
    # Lookup
    # ------------------------------------------------------------------

    @property
    def sessions(self) -> list[RoverSession]:
        return [self._sessions[sid] for sid in self._order]

    @property
    def active_id(self) -> str:
        return self._active_id

    @property
    def active(self) -> RoverSession:
        return self.require(self._active_id)

    @property
    def active_rover(self) -> ActiveRover:
        """Summary of the active session for collaborating screens."""
        session = self.active
        return ActiveRover(
            name=session.display_name,
            host=session.endpoint.host,
            port=session.endpoint.port,
            remote_id=session.remote_id,
        )

    @property
    def synchronizer(self) -> PersistenceSynchronizer:
        return self._sync

    def __len__(self) -> int:
        return len(self._order)

    def get(self, session_id: str) -> RoverSession | None:
        return self._sessions.get(session_id)

    def require(self, session_id: str | None = None) -> RoverSession:
        """Return the addressed session, defaulting to the active one.

        Raises:
            SessionNotFoundError: If no session has that id.
        """
        sid = self._active_id if session_id is None else session_id
        session = self._sessions.get(sid)
        if session is None:
            raise SessionNotFoundError(f"Session {sid} not found")
        return session

    # ------------------------------------------------------------------
    # Collection management
    # ------------------------------------------------------------------

    def add_session(self, display_name: str | None = None) -> RoverSession:
        """Append a blank session and make it active."""
        session = self._new_session(display_name)
        self._order.append(session.id)
        self._active_id = session.id
        logger.info("session_added", session_id=session.id)
        return session

    def select_session(self, session_id: str) -> RoverSession:
        session = self.require(session_id)
        self._active_id = session.id
        return session

    def hydrate_from_saved(self, record: RoverRecord) -> RoverSession:
        """Open a saved record as a session and make it active.

        A record that is already open is activated instead of duplicated.
        """
        for session in self.sessions:
            if session.remote_id == record.id:
                self._active_id = session.id
                return session

        session_id = self._allocate_id()
        session = RoverSession(
            id=session_id,
            display_name=record.name or session_id,
            remote_id=record.id,
            endpoint=RoverEndpoint(host=record.host, port=str(record.port)),
            nav=decode_nav_config(record.nav_config),
            sdr=decode_sdr_config(record.sdr_config),
        )
        self._sessions[session.id] = session
        self._order.insert(0, session.id)
        self._active_id = session.id
        logger.info("session_hydrated", session_id=session.id, remote_id=record.id)
        return session

    def load_saved(self, record_id: str) -> RoverSession:
        """Hydrate a session from the cached saved-record list.

        Raises:
            SessionNotFoundError: If the record is not in the cache.
        """
        for record in self.saved_records:
            if record.id == record_id:
                return self.hydrate_from_saved(record)
        raise SessionNotFoundError(f"Saved rover {record_id} not found")

    async def refresh_saved(self) -> list[RoverRecord]:
        """Reload the owner's saved records from the store."""
        try:
            records = await self._sync.fetch_saved()
        except StoreError as exc:
            logger.warning("saved_records_fetch_failed", error=str(exc))
            self.status = "Failed to load saved rovers"
            return self.saved_records
        self.saved_records = records
        return records

    async def delete_session(self, session_id: str) -> RoverSession:
        """Remove a session and return the session that is now active.

        The remote record, if any, is deleted best-effort. Removing the
        last session leaves a fresh blank one in its place.

        Raises:
            SessionConnectedError: If the session is connected.
        """
        session = self.require(session_id)
        if session.connection == ConnectionState.CONNECTED:
            self.status = "Disconnect rover before deleting"
            raise SessionConnectedError(
                f"Disconnect rover {session.display_name} before deleting"
            )

        self._sync.cancel(session.id)
        del self._sessions[session.id]
        self._order.remove(session.id)

        if not self._order:
            blank = self._new_session()
            self._order.append(blank.id)
        if self._active_id == session.id:
            self._active_id = self._order[0]
        logger.info("session_deleted", session_id=session.id, remote_id=session.remote_id)

        if session.remote_id is not None:
            if await self._sync.delete_remote(session.remote_id):
                self.saved_records = [
                    r for r in self.saved_records if r.id != session.remote_id
                ]
        return self.active

    # ------------------------------------------------------------------
    # Edits
    # ------------------------------------------------------------------

    def update_session(
        self, patch: Mapping[str, Any], session_id: str | None = None
    ) -> RoverSession:
        """Edit the display name, host or port of a session."""
        unknown = set(patch) - set(_EDITABLE_FIELDS)
        if unknown:
            raise ValidationError(f"Cannot edit session fields: {sorted(unknown)}")

        def _edit(session: RoverSession) -> RoverSession:
            changes: dict[str, Any] = {}
            if "display_name" in patch:
                changes["display_name"] = str(patch["display_name"])
            if "host" in patch or "port" in patch:
                changes["endpoint"] = RoverEndpoint(
                    host=str(patch.get("host", session.endpoint.host)).strip(),
                    port=str(patch.get("port", session.endpoint.port)).strip(),
                )
            return session.patch(**changes)

        return self._apply_required(session_id, _edit)

    def update_nav(
        self, patch: Mapping[str, Any], session_id: str | None = None
    ) -> RoverSession:
        """Merge a navigation patch and schedule an auto-save."""
        session = self.require(session_id)
        updated = session.patch(nav=patch_nav_config(session.nav, patch))
        # Arm the timer first; it needs a running loop for saved sessions
        self._sync.schedule(session.id)
        return self._replace(updated)

    def update_sdr(
        self, patch: Mapping[str, Any], session_id: str | None = None
    ) -> RoverSession:
        """Merge a radio patch and schedule an auto-save."""
        session = self.require(session_id)
        updated = session.patch(sdr=patch_sdr_config(session.sdr, patch))
        self._sync.schedule(session.id)
        return self._replace(updated)

    def update_connection(
        self, state: ConnectionState, session_id: str | None = None
    ) -> RoverSession:
        """Set the connection state directly, bypassing endpoint checks."""
        return self._apply_required(session_id, lambda s: s.patch(connection=state))

    def toggle_grid_waypoint(
        self, row: int, col: int, session_id: str | None = None
    ) -> RoverSession:
        return self._apply_required(
            session_id,
            lambda s: s.patch(grid_waypoints=toggle_grid_waypoint(s.grid_waypoints, row, col)),
        )

    def clear_grid_waypoints(self, session_id: str | None = None) -> RoverSession:
        return self._apply_required(session_id, lambda s: s.patch(grid_waypoints=()))

    def set_mission_waypoints(
        self, points: Iterable[tuple[float, float]], session_id: str | None = None
    ) -> RoverSession:
        mission = set_mission_waypoints(points)
        return self._apply_required(session_id, lambda s: s.patch(mission_waypoints=mission))

    def clear_mission_waypoints(self, session_id: str | None = None) -> RoverSession:
        return self._apply_required(session_id, lambda s: s.patch(mission_waypoints=None))

    def import_mission_csv(
        self, text: str, session_id: str | None = None
    ) -> tuple[MissionWaypoint, ...] | None:
        """Replace the mission sequence from CSV text.

        On a malformed file nothing is imported, the status names the
        offending line and None is returned.
        """
        session = self.require(session_id)
        try:
            points = parse_waypoint_csv(text)
        except CsvImportError as exc:
            self.status = f"Invalid CSV format (line {exc.line_number})"
            logger.info("mission_import_rejected", session_id=session.id, line=exc.line_number)
            return None
        self._apply(session.id, lambda s: s.patch(mission_waypoints=points))
        self.status = f"Loaded {len(points)} waypoints"
        return points

    # ------------------------------------------------------------------
    # Connection and rover commands
    # ------------------------------------------------------------------

    def connect(self, session_id: str | None = None) -> asyncio.Task | None:
        """Start connecting; returns the resolution task, or None if not permitted."""
        session = self.require(session_id)
        if not session.endpoint.is_valid:
            self.status = "Invalid IP address or port"
            return None
        started = begin_connect(session)
        if started is None:
            return None
        self._replace(started)
        logger.info("session_connecting", session_id=session.id, host=session.endpoint.host)
        return self._spawn(self._resolve_connection(started.id, started.endpoint))

    def disconnect(self, session_id: str | None = None) -> RoverSession:
        """Mark the session disconnected now and notify the rover in the background."""
        session = self.require(session_id)
        updated = self._replace(disconnect_session(session))
        if session.connection != ConnectionState.DISCONNECTED and session.endpoint.is_valid:
            client = self._client_factory(session.endpoint)
            self._spawn(self._background_call(session.id, client.release, "disconnect_notify_failed"))
        logger.info("session_disconnected", session_id=session.id)
        return updated

    def force_stop(self, session_id: str | None = None) -> bool:
        """Abort the movement test and send a stop command; connected sessions only."""
        session = self.require(session_id)
        if session.connection != ConnectionState.CONNECTED:
            return False
        self._replace(abort_test(session))
        client = self._client_factory(session.endpoint)
        self._spawn(self._background_call(session.id, client.stop, "force_stop_failed"))
        return True

    def run_movement_test(self, session_id: str | None = None) -> asyncio.Task | None:
        """Start a movement test; returns its task, or None if rejected."""
        session = self.require(session_id)
        started = begin_test(session)
        if started is None:
            logger.info(
                "movement_test_rejected",
                session_id=session.id,
                connection=session.connection.value,
                running=session.test_state.running,
            )
            return None
        self._replace(started)
        return self._spawn(self._movement_test(started))

    async def apply_sdr(self, uri: str | None = None, session_id: str | None = None) -> bool:
        """Push the session's radio configuration to the rover."""
        session = self._require_connected(session_id)
        if session is None:
            return False
        client = self._client_factory(session.endpoint)
        try:
            await client.apply_sdr(session.sdr, uri)
        except RoverRequestError as exc:
            logger.warning("sdr_apply_failed", session_id=session.id, error=str(exc))
            self.status = str(exc) or "Failed to apply SDR"
            return False
        self.status = "SDR configuration applied"
        return True

    async def verify_sdr(self, uri: str, session_id: str | None = None) -> bool:
        session = self._require_connected(session_id)
        if session is None:
            return False
        client = self._client_factory(session.endpoint)
        try:
            await client.verify_sdr(uri)
        except RoverRequestError as exc:
            logger.warning("sdr_verify_failed", session_id=session.id, error=str(exc))
            self.status = str(exc) or "Failed to verify SDR"
            return False
        self.status = "SDR verified"
        return True

    async def transmit_gps(self, session_id: str | None = None) -> bool:
        session = self._require_connected(session_id)
        if session is None:
            return False
        client = self._client_factory(session.endpoint)
        try:
            await client.transmit_gps()
        except RoverRequestError as exc:
            logger.warning("gps_transmit_failed", session_id=session.id, error=str(exc))
            self.status = str(exc)
            return False
        sent_at = time.time()
        self._apply(session.id, lambda s: s.patch(last_gps_tx=sent_at))
        self.status = "GPS transmission sent"
        return True

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    async def save(self, session_id: str | None = None) -> SaveOutcome:
        """Create or update the session's remote record."""
        session = self.require(session_id)
        outcome = await self._sync.save(session)
        self.status = SAVE_MESSAGES[outcome]
        if outcome == SaveOutcome.CREATED:
            await self.refresh_saved()
        return outcome

    async def close(self) -> None:
        """Flush pending auto-saves and wait for background requests."""
        if self._closed:
            return
        self._closed = True
        await self._sync.close()
        if self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)
        logger.info("registry_closed", sessions=len(self._order))

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _default_client(self, endpoint: RoverEndpoint) -> RoverClient:
        return RoverClient(endpoint, timeout=self._settings.request_timeout)

    def _allocate_id(self) -> str:
        # Ids are never reused, even after deletion
        session_id = f"rover-{self._next_index}"
        self._next_index += 1
        return session_id

    def _new_session(self, display_name: str | None = None) -> RoverSession:
        session_id = self._allocate_id()
        number = session_id.split("-", 1)[1]
        session = RoverSession(id=session_id, display_name=display_name or f"Rover {number}")
        self._sessions[session.id] = session
        return session

    def _replace(self, session: RoverSession) -> RoverSession:
        self._sessions[session.id] = session
        return session

    def _apply(
        self, session_id: str, edit: Callable[[RoverSession], RoverSession]
    ) -> RoverSession | None:
        """Patch the latest copy of a session; None if it was deleted."""
        current = self._sessions.get(session_id)
        if current is None:
            return None
        return self._replace(edit(current))

    def _apply_required(
        self, session_id: str | None, edit: Callable[[RoverSession], RoverSession]
    ) -> RoverSession:
        session = self.require(session_id)
        return self._replace(edit(session))

    def _require_connected(self, session_id: str | None) -> RoverSession | None:
        session = self.require(session_id)
        if session.connection != ConnectionState.CONNECTED:
            self.status = "Rover not connected"
            return None
        return session

    def _assign_remote_id(self, session_id: str, remote_id: str) -> None:
        current = self._sessions.get(session_id)
        if current is None:
            logger.warning("saved_session_gone", session_id=session_id, remote_id=remote_id)
            self._spawn(self._sync.delete_remote(remote_id))
            return
        if current.remote_id is not None:
            logger.warning(
                "remote_id_already_set",
                session_id=session_id,
                remote_id=current.remote_id,
                ignored=remote_id,
            )
            return
        self._replace(current.patch(remote_id=remote_id))

    def _spawn(self, coro: Coroutine[Any, Any, Any]) -> asyncio.Task:
        task = asyncio.get_running_loop().create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def _resolve_connection(self, session_id: str, endpoint: RoverEndpoint) -> None:
        reachable = await self._resolver.resolve(endpoint)
        updated = self._apply(session_id, lambda s: resolve_connect(s, reachable))
        if updated is None:
            logger.debug("connect_resolved_for_deleted_session", session_id=session_id)
            return
        if not reachable:
            self.status = f"Could not reach {endpoint.host}:{endpoint.port}"
        logger.info("session_connect_resolved", session_id=session_id, reachable=reachable)

    async def _movement_test(self, session: RoverSession) -> None:
        client = self._client_factory(session.endpoint)
        ok = False
        try:
            await asyncio.wait_for(
                client.run_movement_test(), timeout=self._settings.test_timeout,
            )
            ok = True
        except asyncio.TimeoutError:
            logger.warning(
                "movement_test_timeout", session_id=session.id, timeout=self._settings.test_timeout,
            )
        except RoverRequestError as exc:
            logger.warning("movement_test_failed", session_id=session.id, error=str(exc))
        self._apply(session.id, lambda s: finish_test(s, ok))

    async def _background_call(
        self, session_id: str, call: Callable[[], Coroutine[Any, Any, Any]], event: str
    ) -> None:
        try:
            await call()
        except RoverRequestError as exc:
            logger.warning(event, session_id=session_id, error=str(exc))
