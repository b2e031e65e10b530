"""Tests for app startup with and without quota persistence."""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock, patch

from fastapi.testclient import TestClient

from inkwell.api.main import create_app
from inkwell.core.types import FeatureKey, UsageCounter, UsageRecord, UsageWindow
from inkwell.saas.gate import UsageGate
from inkwell.saas.store import QuotaStore


def _settings(persistence: bool) -> MagicMock:
    settings = MagicMock()
    settings.inkwell_quota_persistence = persistence
    settings.log_level = "INFO"
    settings.log_json = False
    settings.frontend_url = "http://localhost:3000"
    return settings


class TestLifespan:
    def test_restores_counters_and_closes_engine(self, clock) -> None:
        gate = UsageGate(QuotaStore(clock))
        repo = MagicMock()
        repo.load_all = AsyncMock(return_value=[
            UsageRecord("u1", FeatureKey.AI_CHAT, UsageCounter(6, UsageWindow(2026, 10))),
        ])
        close_engine = AsyncMock()

        with patch("inkwell.api.main.get_settings", return_value=_settings(True)), \
                patch("inkwell.api.main.get_engine", AsyncMock(return_value=MagicMock())), \
                patch("inkwell.api.main.close_engine", close_engine), \
                patch("inkwell.api.main.UsageRepository", return_value=repo):
            app = create_app(gate)
            with TestClient(app):
                assert app.state.usage_repo is repo
                assert gate.store.current_count("u1", FeatureKey.AI_CHAT) == 6

        close_engine.assert_awaited_once()

    def test_memory_only_skips_database(self, clock) -> None:
        get_engine = AsyncMock()
        with patch("inkwell.api.main.get_settings", return_value=_settings(False)), \
                patch("inkwell.api.main.get_engine", get_engine):
            app = create_app(UsageGate(QuotaStore(clock)))
            with TestClient(app):
                assert app.state.usage_repo is None

        get_engine.assert_not_awaited()
