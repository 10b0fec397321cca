"""Pytest configuration and shared fixtures."""

from __future__ import annotations

import asyncio

import pytest

from roverdeck.exceptions import RoverRequestError
from roverdeck.models.session import RoverEndpoint
from roverdeck.settings import ManagerSettings
from roverdeck.store.memory import MemoryRoverStore


class FakeRover:
    """Stands in for every rover endpoint; records calls per host.

    Add a method name to ``fail`` to make that call raise, or set
    ``test_gate`` to hold movement tests until the event is set.
    """

    def __init__(self) -> None:
        self.calls: list[tuple[str, str]] = []
        self.fail: set[str] = set()
        self.fail_body = ""
        self.test_gate: asyncio.Event | None = None
        self.hang: set[str] = set()

    def __call__(self, endpoint: RoverEndpoint) -> _FakeClient:
        return _FakeClient(self, endpoint)

    def names(self) -> list[str]:
        return [name for name, _ in self.calls]


class _FakeClient:
    def __init__(self, rover: FakeRover, endpoint: RoverEndpoint) -> None:
        self._rover = rover
        self.endpoint = endpoint

    async def _call(self, name: str) -> None:
        self._rover.calls.append((name, self.endpoint.host))
        if name in self._rover.hang:
            await asyncio.sleep(3600)
        if name in self._rover.fail:
            raise RoverRequestError(
                self._rover.fail_body or f"{name} failed",
                status_code=500,
                body=self._rover.fail_body,
            )

    async def ping(self) -> None:
        await self._call("ping")

    async def release(self) -> None:
        await self._call("release")

    async def stop(self) -> None:
        await self._call("stop")

    async def run_movement_test(self) -> None:
        if self._rover.test_gate is not None:
            await self._rover.test_gate.wait()
        await self._call("movement_test")

    async def apply_sdr(self, config, uri=None):
        await self._call("apply_sdr")
        return {"ok": True}

    async def verify_sdr(self, uri):
        await self._call("verify_sdr")
        return {"ok": True}

    async def transmit_gps(self) -> None:
        await self._call("transmit_gps")


@pytest.fixture
def settings() -> ManagerSettings:
    """Settings with short timers so async tests finish quickly."""
    return ManagerSettings(
        owner_id="owner-1",
        debounce_seconds=0.05,
        connect_delay=0.01,
        connect_timeout=0.5,
        test_timeout=0.5,
    )


@pytest.fixture
def store() -> MemoryRoverStore:
    return MemoryRoverStore()


@pytest.fixture
def fake_rover() -> FakeRover:
    return FakeRover()
