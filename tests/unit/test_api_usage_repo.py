"""Tests for UsageRepository — DB-backed usage counter storage."""

from __future__ import annotations

from contextlib import asynccontextmanager
from collections.abc import AsyncIterator
from unittest.mock import AsyncMock, MagicMock

import pytest

from inkwell.api.db.usage import UsageRepository
from inkwell.core.types import FeatureKey, UsageCounter, UsageWindow


def _make_row(**kwargs: object) -> dict[str, object]:
    """Create a fake DB row mapping."""
    defaults: dict[str, object] = {
        "user_id": "u1",
        "feature": "story_generation",
        "count": 3,
        "window_year": 2026,
        "window_month": 10,
    }
    defaults.update(kwargs)
    return defaults


def _mock_engine(mock_conn: AsyncMock) -> MagicMock:
    """Create a mock engine with proper async context manager for begin()."""
    engine = MagicMock()

    @asynccontextmanager
    async def _begin() -> AsyncIterator[AsyncMock]:
        yield mock_conn

    engine.begin = _begin
    return engine


class TestRowToRecord:
    def test_basic_conversion(self) -> None:
        record = UsageRepository._row_to_record(_make_row())
        assert record is not None
        assert record.user_id == "u1"
        assert record.feature is FeatureKey.STORY_GENERATION
        assert record.counter == UsageCounter(3, UsageWindow(2026, 10))

    def test_unknown_feature_skipped(self) -> None:
        assert UsageRepository._row_to_record(_make_row(feature="legacy_feature")) is None

    def test_negative_count_clamped(self) -> None:
        record = UsageRepository._row_to_record(_make_row(count=-4))
        assert record is not None
        assert record.counter.count == 0


class TestLoadAll:
    @pytest.mark.asyncio
    async def test_loads_known_rows(self) -> None:
        mock_result = MagicMock()
        mock_result.mappings.return_value.all.return_value = [
            _make_row(),
            _make_row(user_id="u2", feature="ai_chat", count=12),
            _make_row(feature="retired"),
        ]
        mock_conn = AsyncMock()
        mock_conn.execute.return_value = mock_result

        records = await UsageRepository(_mock_engine(mock_conn)).load_all()
        assert [(r.user_id, r.feature) for r in records] == [
            ("u1", FeatureKey.STORY_GENERATION),
            ("u2", FeatureKey.AI_CHAT),
        ]
        assert records[1].counter.count == 12

    @pytest.mark.asyncio
    async def test_empty_table(self) -> None:
        mock_result = MagicMock()
        mock_result.mappings.return_value.all.return_value = []
        mock_conn = AsyncMock()
        mock_conn.execute.return_value = mock_result

        assert await UsageRepository(_mock_engine(mock_conn)).load_all() == []


class TestSave:
    @pytest.mark.asyncio
    async def test_upsert_params(self) -> None:
        mock_conn = AsyncMock()
        repo = UsageRepository(_mock_engine(mock_conn))

        await repo.save("u1", FeatureKey.EXPORT_PDF, UsageCounter(7, UsageWindow(2026, 9)))

        mock_conn.execute.assert_awaited_once()
        statement, params = mock_conn.execute.await_args.args
        assert "ON CONFLICT (user_id, feature)" in str(statement)
        assert params["uid"] == "u1"
        assert params["feature"] == "export_pdf"
        assert params["count"] == 7
        assert (params["year"], params["month"]) == (2026, 9)

    @pytest.mark.asyncio
    async def test_upsert_only_moves_forward(self) -> None:
        mock_conn = AsyncMock()
        repo = UsageRepository(_mock_engine(mock_conn))

        await repo.save("u1", FeatureKey.AI_CHAT, UsageCounter(2, UsageWindow(2026, 10)))

        statement = " ".join(str(mock_conn.execute.await_args.args[0]).split())
        assert (
            "WHERE (EXCLUDED.window_year, EXCLUDED.window_month, EXCLUDED.count) "
            "> (usage_counters.window_year, usage_counters.window_month, usage_counters.count)"
        ) in statement


class TestDelete:
    @pytest.mark.asyncio
    async def test_delete_single_feature(self) -> None:
        mock_conn = AsyncMock()
        await UsageRepository(_mock_engine(mock_conn)).delete("u1", FeatureKey.AI_CHAT)
        statement, params = mock_conn.execute.await_args.args
        assert "AND feature = :feature" in str(statement)
        assert params == {"uid": "u1", "feature": "ai_chat"}

    @pytest.mark.asyncio
    async def test_delete_all_for_user(self) -> None:
        mock_conn = AsyncMock()
        await UsageRepository(_mock_engine(mock_conn)).delete("u1")
        statement, params = mock_conn.execute.await_args.args
        assert "feature" not in str(statement)
        assert params == {"uid": "u1"}
