"""Saved rover record endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException

from roverdeck.api.app import get_registry
from roverdeck.core.registry import RoverSessionRegistry
from roverdeck.exceptions import SessionNotFoundError
from roverdeck.models.session import RoverRecord, RoverSession

router = APIRouter(tags=["saved"])


@router.get("/saved", response_model=list[RoverRecord])
async def list_saved(
    refresh: bool = False,
    registry: RoverSessionRegistry = Depends(get_registry),
) -> list[RoverRecord]:
    """List the owner's saved rovers, optionally reloading from the store."""
    if refresh:
        return await registry.refresh_saved()
    return registry.saved_records


@router.post("/saved/{record_id}/load", response_model=RoverSession)
async def load_saved(
    record_id: str, registry: RoverSessionRegistry = Depends(get_registry),
) -> RoverSession:
    """Open a saved rover as the active session."""
    try:
        return registry.load_saved(record_id)
    except SessionNotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
