"""Tests for ManagerSettings."""

from __future__ import annotations

import pytest

from roverdeck.settings import ManagerSettings


class TestFromEnv:
    def test_defaults(self, monkeypatch):
        for name in (
            "ROVERDECK_OWNER_ID",
            "ROVERDECK_STORE_URL",
            "ROVERDECK_DEBOUNCE_SECONDS",
            "ROVERDECK_HANDSHAKE",
        ):
            monkeypatch.delenv(name, raising=False)
        settings = ManagerSettings.from_env(dotenv=False)
        assert settings.owner_id is None
        assert settings.store_url is None
        assert settings.debounce_seconds == 0.8
        assert settings.handshake is False

    def test_reads_environment(self, monkeypatch):
        monkeypatch.setenv("ROVERDECK_OWNER_ID", "owner-9")
        monkeypatch.setenv("ROVERDECK_STORE_URL", "https://db.example.test")
        monkeypatch.setenv("ROVERDECK_DEBOUNCE_SECONDS", "1.5")
        monkeypatch.setenv("ROVERDECK_HANDSHAKE", "1")
        settings = ManagerSettings.from_env(dotenv=False)
        assert settings.owner_id == "owner-9"
        assert settings.store_url == "https://db.example.test"
        assert settings.debounce_seconds == 1.5
        assert settings.handshake is True

    def test_blank_number_uses_default(self, monkeypatch):
        monkeypatch.setenv("ROVERDECK_TEST_TIMEOUT", "  ")
        assert ManagerSettings.from_env(dotenv=False).test_timeout == 30.0

    def test_bad_number_raises(self, monkeypatch):
        monkeypatch.setenv("ROVERDECK_CONNECT_TIMEOUT", "soon")
        with pytest.raises(ValueError):
            ManagerSettings.from_env(dotenv=False)


class TestOverrides:
    def test_none_values_are_ignored(self):
        base = ManagerSettings(owner_id="a", handshake=True)
        updated = base.with_overrides(owner_id=None, handshake=False, store_url="http://x")
        assert updated.owner_id == "a"
        assert updated.handshake is False
        assert updated.store_url == "http://x"
        assert base.store_url is None
