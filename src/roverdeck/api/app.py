"""FastAPI application factory and configuration."""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

from roverdeck import __version__
from roverdeck.core.connection import ClientFactory
from roverdeck.core.registry import RoverSessionRegistry
from roverdeck.settings import ManagerSettings
from roverdeck.store.base import RoverStore
from roverdeck.store.memory import MemoryRoverStore
from roverdeck.store.rest import RestRoverStore
from roverdeck.utils.logging import get_logger

logger = get_logger(__name__)


def build_store(settings: ManagerSettings) -> RoverStore:
    """Pick the REST store when a URL is configured, else an in-memory one."""
    if settings.store_url:
        return RestRoverStore(
            settings.store_url,
            api_key=settings.store_key,
            access_token=settings.store_token,
            timeout=settings.request_timeout,
        )
    logger.warning("store_url_missing", msg="Saved rovers are kept in memory only")
    return MemoryRoverStore()


def get_registry(request: Request) -> RoverSessionRegistry:
    """FastAPI dependency returning the application's registry."""
    registry = getattr(request.app.state, "registry", None)
    if registry is None:
        raise RuntimeError("Session registry used outside the application lifespan")
    return registry


def create_app(
    settings: ManagerSettings | None = None,
    store: RoverStore | None = None,
    client_factory: ClientFactory | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        settings: Manager settings; read from the environment when omitted.
        store: Remote store override, mainly for tests.
        client_factory: Rover client override, mainly for tests.

    Returns:
        Configured FastAPI application instance.
    """
    settings = settings or ManagerSettings.from_env()

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        active_store = store or build_store(settings)
        registry = RoverSessionRegistry(active_store, settings, client_factory)
        app.state.registry = registry
        logger.info("roverdeck_api_starting", owner_id=settings.owner_id)
        await registry.refresh_saved()
        try:
            yield
        finally:
            await registry.close()
            await active_store.aclose()
            app.state.registry = None
            logger.info("roverdeck_api_stopped")

    app = FastAPI(
        title="RoverDeck API",
        description="Concurrent rover control sessions with synchronized configuration",
        version=__version__,
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    from roverdeck.api.routes import saved, sessions
    app.include_router(sessions.router, prefix="/api")
    app.include_router(saved.router, prefix="/api")

    return app
