"""Write-through persistence for QuotaStore counters."""

from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncEngine

from inkwell.core.exceptions import UnknownFeatureError
from inkwell.core.logging import get_logger
from inkwell.core.types import FeatureKey, UsageCounter, UsageRecord, UsageWindow

log = get_logger(__name__)


class UsageRepository:
    """Async PostgreSQL-backed storage for monthly usage counters."""

    def __init__(self, engine: AsyncEngine) -> None:
        self._engine = engine

    async def load_all(self) -> list[UsageRecord]:
        """Every persisted counter. Rows with unknown features are skipped."""
        async with self._engine.begin() as conn:
            result = await conn.execute(
                text(
                    "SELECT user_id, feature, count, window_year, window_month "
                    "FROM usage_counters"
                )
            )
            rows = result.mappings().all()

        records: list[UsageRecord] = []
        for r in rows:
            record = self._row_to_record(r)
            if record is not None:
                records.append(record)
        log.info("usage_counters_loaded", rows=len(rows), records=len(records))
        return records

    async def save(self, user_id: str, feature: FeatureKey, counter: UsageCounter) -> None:
        """Insert one counter, or move the stored one forward.

        The stored row only changes when the new counter is in a later window,
        or in the same window with a higher count. Saves from concurrent
        requests can land in any order without losing uses.
        """
        async with self._engine.begin() as conn:
            await conn.execute(
                text(
                    """
                    INSERT INTO usage_counters
                        (user_id, feature, count, window_year, window_month, updated_at)
                    VALUES
                        (:uid, :feature, :count, :year, :month, :now)
                    ON CONFLICT (user_id, feature) DO UPDATE SET
                        count = EXCLUDED.count,
                        window_year = EXCLUDED.window_year,
                        window_month = EXCLUDED.window_month,
                        updated_at = EXCLUDED.updated_at
                    WHERE (EXCLUDED.window_year, EXCLUDED.window_month, EXCLUDED.count)
                        > (usage_counters.window_year, usage_counters.window_month,
                           usage_counters.count)
                    """
                ),
                {
                    "uid": user_id,
                    "feature": feature.value,
                    "count": counter.count,
                    "year": counter.window.year,
                    "month": counter.window.month,
                    "now": datetime.now(timezone.utc),
                },
            )

    async def delete(self, user_id: str, feature: FeatureKey | None = None) -> None:
        """Remove one counter, or all of a user's counters."""
        async with self._engine.begin() as conn:
            if feature is None:
                await conn.execute(
                    text("DELETE FROM usage_counters WHERE user_id = :uid"),
                    {"uid": user_id},
                )
            else:
                await conn.execute(
                    text(
                        "DELETE FROM usage_counters "
                        "WHERE user_id = :uid AND feature = :feature"
                    ),
                    {"uid": user_id, "feature": feature.value},
                )
        log.info(
            "usage_counters_deleted",
            user_id=user_id,
            feature=feature.value if feature is not None else "all",
        )

    @staticmethod
    def _row_to_record(r: object) -> UsageRecord | None:
        """Convert a DB row mapping to a UsageRecord; None for unknown features."""
        try:
            feature = FeatureKey.parse(r["feature"])  # type: ignore[index]
        except UnknownFeatureError:
            log.warning("usage_row_unknown_feature", feature=r["feature"])  # type: ignore[index]
            return None

        return UsageRecord(
            user_id=r["user_id"],  # type: ignore[index]
            feature=feature,
            counter=UsageCounter(
                count=max(int(r["count"]), 0),  # type: ignore[index]
                window=UsageWindow(
                    year=int(r["window_year"]),  # type: ignore[index]
                    month=int(r["window_month"]),  # type: ignore[index]
                ),
            ),
        )
