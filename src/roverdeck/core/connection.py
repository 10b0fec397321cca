"""Per-session connection lifecycle and movement test transitions.

The transition helpers are pure: they take a session and return the
patched copy, or ``None`` when the transition is not permitted from the
current state. ``ConnectionResolver`` performs the asynchronous half of
a connection attempt.
"""

from __future__ import annotations

import asyncio
from typing import Callable

from roverdeck.exceptions import RoverRequestError
from roverdeck.models.session import (
    ConnectionState,
    MovementResult,
    MovementTestState,
    RoverEndpoint,
    RoverSession,
)
from roverdeck.rover.client import RoverClient
from roverdeck.utils.logging import get_logger

logger = get_logger(__name__)

ClientFactory = Callable[[RoverEndpoint], RoverClient]


def begin_connect(session: RoverSession) -> RoverSession | None:
    """disconnected -> connecting, only with a valid endpoint."""
    if session.connection != ConnectionState.DISCONNECTED:
        return None
    if not session.endpoint.is_valid:
        return None
    return session.patch(connection=ConnectionState.CONNECTING)


def resolve_connect(session: RoverSession, reachable: bool) -> RoverSession:
    """Apply the outcome of a connection attempt."""
    state = ConnectionState.CONNECTED if reachable else ConnectionState.DISCONNECTED
    return session.patch(connection=state)


def disconnect(session: RoverSession) -> RoverSession:
    """Any state -> disconnected."""
    return session.patch(connection=ConnectionState.DISCONNECTED)


def abort_test(session: RoverSession) -> RoverSession:
    """Mark the movement test stopped with an error result."""
    return session.patch(
        test_state=MovementTestState(running=False, last_result=MovementResult.ERROR),
    )


def begin_test(session: RoverSession) -> RoverSession | None:
    """Start a movement test; only when connected and no test is running."""
    if session.connection != ConnectionState.CONNECTED or session.test_state.running:
        return None
    return session.patch(test_state=MovementTestState(running=True))


def finish_test(session: RoverSession, ok: bool) -> RoverSession:
    result = MovementResult.SUCCESS if ok else MovementResult.ERROR
    return session.patch(test_state=MovementTestState(running=False, last_result=result))


class ConnectionResolver:
    """Decides whether a rover endpoint is reachable.

    In simulation mode the attempt succeeds after ``connect_delay``
    seconds. In handshake mode the rover's ``/health`` route is called.
    Either way the attempt fails once ``timeout`` elapses.
    """

    def __init__(
        self,
        client_factory: ClientFactory,
        handshake: bool = False,
        connect_delay: float = 0.7,
        timeout: float = 10.0,
    ) -> None:
        self._client_factory = client_factory
        self._handshake = handshake
        self._connect_delay = connect_delay
        self._timeout = timeout

    async def resolve(self, endpoint: RoverEndpoint) -> bool:
        try:
            await asyncio.wait_for(self._attempt(endpoint), timeout=self._timeout)
        except asyncio.TimeoutError:
            logger.warning(
                "connect_timeout", host=endpoint.host, port=endpoint.port, timeout=self._timeout,
            )
            return False
        except RoverRequestError as exc:
            logger.warning("connect_failed", host=endpoint.host, port=endpoint.port, error=str(exc))
            return False
        return True

    async def _attempt(self, endpoint: RoverEndpoint) -> None:
        if self._handshake:
            await self._client_factory(endpoint).ping()
        else:
            await asyncio.sleep(self._connect_delay)
