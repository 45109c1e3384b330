"""Tests for TrackerSettings."""

from __future__ import annotations

import pytest

from order_tracker.config import TrackerSettings


class TestTrackerSettings:
    def test_defaults(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.delenv("ORDER_TRACKER_DATABASE_PATH", raising=False)
        settings = TrackerSettings()
        assert settings.database_path == "orders.sqlite3"
        assert settings.seed_demo_data is True
        assert settings.order_id_max_attempts == 1000
        assert "http://localhost:3000" in settings.cors_origins

    def test_env_overrides(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("ORDER_TRACKER_DATABASE_PATH", "/tmp/other.sqlite3")
        monkeypatch.setenv("ORDER_TRACKER_SEED_DEMO_DATA", "false")
        monkeypatch.setenv("ORDER_TRACKER_CORS_ORIGINS", '["https://admin.example.com"]')
        settings = TrackerSettings()
        assert settings.database_path == "/tmp/other.sqlite3"
        assert settings.seed_demo_data is False
        assert settings.cors_origins == ["https://admin.example.com"]

    def test_init_kwargs_win_over_env(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("ORDER_TRACKER_VERBOSE", "true")
        assert TrackerSettings(verbose=False).verbose is False

    def test_frozen(self) -> None:
        settings = TrackerSettings()
        with pytest.raises(Exception):
            settings.verbose = True  # type: ignore[misc]

    def test_attempts_must_be_positive(self) -> None:
        with pytest.raises(Exception):
            TrackerSettings(order_id_max_attempts=0)
