"""Rover session API endpoints."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Body, Depends, HTTPException, Request
from pydantic import BaseModel

from roverdeck.api.app import get_registry
from roverdeck.core.registry import RoverSessionRegistry
from roverdeck.core.sync import SaveOutcome
from roverdeck.exceptions import (
    SessionConnectedError,
    SessionNotFoundError,
    ValidationError,
)
from roverdeck.models.session import ActiveRover, RoverSession

router = APIRouter(tags=["sessions"])


class SessionListResponse(BaseModel):
    active_id: str
    sessions: list[RoverSession]
    status: str = ""


class AddSessionRequest(BaseModel):
    display_name: str | None = None


class EndpointPatch(BaseModel):
    display_name: str | None = None
    host: str | None = None
    port: str | None = None


class GridToggleRequest(BaseModel):
    row: int
    col: int


class SdrApplyRequest(BaseModel):
    uri: str | None = None


class SdrVerifyRequest(BaseModel):
    uri: str


class ActionResponse(BaseModel):
    ok: bool
    status: str = ""
    session: RoverSession


class SaveResponse(BaseModel):
    outcome: SaveOutcome
    status: str
    session: RoverSession


def _listing(registry: RoverSessionRegistry) -> SessionListResponse:
    return SessionListResponse(
        active_id=registry.active_id,
        sessions=registry.sessions,
        status=registry.status,
    )


def _require(registry: RoverSessionRegistry, session_id: str) -> RoverSession:
    try:
        return registry.require(session_id)
    except SessionNotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc


@router.get("/sessions", response_model=SessionListResponse)
async def list_sessions(
    registry: RoverSessionRegistry = Depends(get_registry),
) -> SessionListResponse:
    return _listing(registry)


@router.post("/sessions", response_model=RoverSession)
async def add_session(
    request: AddSessionRequest | None = None,
    registry: RoverSessionRegistry = Depends(get_registry),
) -> RoverSession:
    """Add a blank rover session and make it active."""
    return registry.add_session(request.display_name if request else None)


@router.get("/sessions/active", response_model=ActiveRover)
async def active_rover(
    registry: RoverSessionRegistry = Depends(get_registry),
) -> ActiveRover:
    return registry.active_rover


@router.get("/sessions/{session_id}", response_model=RoverSession)
async def get_session(
    session_id: str, registry: RoverSessionRegistry = Depends(get_registry),
) -> RoverSession:
    return _require(registry, session_id)


@router.post("/sessions/{session_id}/select", response_model=RoverSession)
async def select_session(
    session_id: str, registry: RoverSessionRegistry = Depends(get_registry),
) -> RoverSession:
    _require(registry, session_id)
    return registry.select_session(session_id)


@router.delete("/sessions/{session_id}", response_model=SessionListResponse)
async def delete_session(
    session_id: str, registry: RoverSessionRegistry = Depends(get_registry),
) -> SessionListResponse:
    """Delete a session; connected sessions must be disconnected first."""
    _require(registry, session_id)
    try:
        await registry.delete_session(session_id)
    except SessionConnectedError as exc:
        raise HTTPException(status_code=409, detail=str(exc)) from exc
    return _listing(registry)


@router.patch("/sessions/{session_id}", response_model=RoverSession)
async def edit_session(
    session_id: str,
    patch: EndpointPatch,
    registry: RoverSessionRegistry = Depends(get_registry),
) -> RoverSession:
    _require(registry, session_id)
    return registry.update_session(patch.model_dump(exclude_none=True), session_id)


@router.patch("/sessions/{session_id}/nav", response_model=RoverSession)
async def update_nav(
    session_id: str,
    patch: dict[str, Any] = Body(...),
    registry: RoverSessionRegistry = Depends(get_registry),
) -> RoverSession:
    _require(registry, session_id)
    try:
        return registry.update_nav(patch, session_id)
    except ValidationError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc


@router.patch("/sessions/{session_id}/sdr", response_model=RoverSession)
async def update_sdr(
    session_id: str,
    patch: dict[str, Any] = Body(...),
    registry: RoverSessionRegistry = Depends(get_registry),
) -> RoverSession:
    _require(registry, session_id)
    try:
        return registry.update_sdr(patch, session_id)
    except ValidationError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc


@router.post("/sessions/{session_id}/waypoints/grid", response_model=RoverSession)
async def toggle_grid_waypoint(
    session_id: str,
    request: GridToggleRequest,
    registry: RoverSessionRegistry = Depends(get_registry),
) -> RoverSession:
    _require(registry, session_id)
    try:
        return registry.toggle_grid_waypoint(request.row, request.col, session_id)
    except ValidationError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc


@router.delete("/sessions/{session_id}/waypoints/grid", response_model=RoverSession)
async def clear_grid_waypoints(
    session_id: str, registry: RoverSessionRegistry = Depends(get_registry),
) -> RoverSession:
    _require(registry, session_id)
    return registry.clear_grid_waypoints(session_id)


@router.put("/sessions/{session_id}/waypoints/mission", response_model=ActionResponse)
async def import_mission(
    session_id: str,
    request: Request,
    registry: RoverSessionRegistry = Depends(get_registry),
) -> ActionResponse:
    """Replace the mission waypoints from an ``x,y`` per line CSV body."""
    _require(registry, session_id)
    csv_text = (await request.body()).decode("utf-8-sig", errors="replace")
    points = registry.import_mission_csv(csv_text, session_id)
    if points is None:
        raise HTTPException(status_code=400, detail=registry.status)
    return ActionResponse(ok=True, status=registry.status, session=registry.require(session_id))


@router.delete("/sessions/{session_id}/waypoints/mission", response_model=RoverSession)
async def clear_mission(
    session_id: str, registry: RoverSessionRegistry = Depends(get_registry),
) -> RoverSession:
    _require(registry, session_id)
    return registry.clear_mission_waypoints(session_id)


@router.post("/sessions/{session_id}/connect", response_model=ActionResponse)
async def connect(
    session_id: str, registry: RoverSessionRegistry = Depends(get_registry),
) -> ActionResponse:
    """Begin connecting; the state resolves in the background."""
    _require(registry, session_id)
    task = registry.connect(session_id)
    return ActionResponse(
        ok=task is not None,
        status=registry.status if task is None else "",
        session=registry.require(session_id),
    )


@router.post("/sessions/{session_id}/disconnect", response_model=RoverSession)
async def disconnect(
    session_id: str, registry: RoverSessionRegistry = Depends(get_registry),
) -> RoverSession:
    _require(registry, session_id)
    return registry.disconnect(session_id)


@router.post("/sessions/{session_id}/stop", response_model=ActionResponse)
async def force_stop(
    session_id: str, registry: RoverSessionRegistry = Depends(get_registry),
) -> ActionResponse:
    _require(registry, session_id)
    ok = registry.force_stop(session_id)
    return ActionResponse(ok=ok, session=registry.require(session_id))


@router.post("/sessions/{session_id}/test", response_model=ActionResponse)
async def run_movement_test(
    session_id: str, registry: RoverSessionRegistry = Depends(get_registry),
) -> ActionResponse:
    """Start a movement test; poll the session for its result."""
    _require(registry, session_id)
    task = registry.run_movement_test(session_id)
    if task is None:
        raise HTTPException(
            status_code=409, detail="Rover must be connected with no test running",
        )
    return ActionResponse(ok=True, session=registry.require(session_id))


@router.post("/sessions/{session_id}/sdr/apply", response_model=ActionResponse)
async def apply_sdr(
    session_id: str,
    request: SdrApplyRequest | None = None,
    registry: RoverSessionRegistry = Depends(get_registry),
) -> ActionResponse:
    _require(registry, session_id)
    ok = await registry.apply_sdr(request.uri if request else None, session_id)
    return ActionResponse(ok=ok, status=registry.status, session=registry.require(session_id))


@router.post("/sessions/{session_id}/sdr/verify", response_model=ActionResponse)
async def verify_sdr(
    session_id: str,
    request: SdrVerifyRequest,
    registry: RoverSessionRegistry = Depends(get_registry),
) -> ActionResponse:
    _require(registry, session_id)
    ok = await registry.verify_sdr(request.uri, session_id)
    return ActionResponse(ok=ok, status=registry.status, session=registry.require(session_id))


@router.post("/sessions/{session_id}/sdr/txgps", response_model=ActionResponse)
async def transmit_gps(
    session_id: str, registry: RoverSessionRegistry = Depends(get_registry),
) -> ActionResponse:
    _require(registry, session_id)
    ok = await registry.transmit_gps(session_id)
    return ActionResponse(ok=ok, status=registry.status, session=registry.require(session_id))


@router.post("/sessions/{session_id}/save", response_model=SaveResponse)
async def save_session(
    session_id: str, registry: RoverSessionRegistry = Depends(get_registry),
) -> SaveResponse:
    """Create or update the session's saved record."""
    _require(registry, session_id)
    outcome = await registry.save(session_id)
    if outcome == SaveOutcome.CONFLICT:
        raise HTTPException(status_code=409, detail=registry.status)
    return SaveResponse(
        outcome=outcome, status=registry.status, session=registry.require(session_id),
    )
