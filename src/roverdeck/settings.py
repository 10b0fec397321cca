"""Runtime settings loaded from the environment and an optional ``.env`` file."""

from __future__ import annotations

import os
from dataclasses import dataclass, replace

from dotenv import load_dotenv


def _env_float(name: str, default: float) -> float:
    value = os.getenv(name)
    if value is None or value.strip() == "":
        return default
    return float(value)


@dataclass(frozen=True)
class ManagerSettings:
    """Settings for a rover session registry and its collaborators."""

    owner_id: str | None = None
    store_url: str | None = None
    store_key: str = ""
    store_token: str | None = None
    debounce_seconds: float = 0.8
    connect_delay: float = 0.7
    connect_timeout: float = 10.0
    test_timeout: float = 30.0
    request_timeout: float = 10.0
    handshake: bool = False

    @classmethod
    def from_env(cls, dotenv: bool = True) -> ManagerSettings:
        """Build settings from ``ROVERDECK_*`` environment variables."""
        if dotenv:
            load_dotenv()
        return cls(
            owner_id=os.getenv("ROVERDECK_OWNER_ID") or None,
            store_url=os.getenv("ROVERDECK_STORE_URL") or None,
            store_key=os.getenv("ROVERDECK_STORE_KEY", ""),
            store_token=os.getenv("ROVERDECK_STORE_TOKEN") or None,
            debounce_seconds=_env_float("ROVERDECK_DEBOUNCE_SECONDS", 0.8),
            connect_delay=_env_float("ROVERDECK_CONNECT_DELAY", 0.7),
            connect_timeout=_env_float("ROVERDECK_CONNECT_TIMEOUT", 10.0),
            test_timeout=_env_float("ROVERDECK_TEST_TIMEOUT", 30.0),
            request_timeout=_env_float("ROVERDECK_REQUEST_TIMEOUT", 10.0),
            handshake=os.getenv("ROVERDECK_HANDSHAKE", "0") == "1",
        )

    def with_overrides(self, **changes) -> ManagerSettings:
        """Return a copy with the non-None *changes* applied."""
        return replace(self, **{k: v for k, v in changes.items() if v is not None})
