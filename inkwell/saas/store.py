"""In-memory monthly usage counters with lazy calendar-month rollover.

Counters are keyed by (user_id, feature). A counter whose window is one or
more whole calendar months behind the clock is reset to zero and moved to the
current month on its next access. There is no background timer.
"""

from __future__ import annotations

import threading
from collections.abc import Callable, Iterable, Iterator
from contextlib import contextmanager
from datetime import datetime, timezone

from inkwell.core.constants import NO_ACCESS, UNLIMITED
from inkwell.core.logging import get_logger
from inkwell.core.types import FeatureKey, UsageCounter, UsageRecord, UsageWindow

log = get_logger(__name__)

Clock = Callable[[], datetime]
CounterKey = tuple[str, FeatureKey]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class QuotaStore:
    """Owns every UsageCounter. Other components only see copies."""

    def __init__(self, clock: Clock = utc_now) -> None:
        self._clock = clock
        self._counters: dict[CounterKey, UsageCounter] = {}
        self._locks: dict[CounterKey, threading.Lock] = {}
        self._registry_lock = threading.Lock()

    # ── Internals ────────────────────────────────────────────────

    def current_window(self) -> UsageWindow:
        return UsageWindow.from_datetime(self._clock())

    def _lock_for(self, key: CounterKey) -> threading.Lock:
        lock = self._locks.get(key)
        if lock is None:
            with self._registry_lock:
                lock = self._locks.setdefault(key, threading.Lock())
        return lock

    @contextmanager
    def _writing(self, key: CounterKey) -> Iterator[None]:
        """Hold the key lock for a write, creating it if needed.

        A full reset may drop the lock while we wait on it; retry with the
        registered one so two writers never hold different locks for a key.
        """
        while True:
            lock = self._lock_for(key)
            with lock:
                if self._locks.get(key) is lock:
                    yield
                    return

    def _rolled(self, key: CounterKey) -> UsageCounter | None:
        """Fetch the counter for key, resetting it first if its window is stale.

        Caller must hold the key lock.
        """
        now = self.current_window()
        counter = self._counters.get(key)
        if counter is not None and counter.is_stale(now):
            log.debug(
                "usage_window_rolled",
                user_id=key[0],
                feature=key[1].value,
                previous=str(counter.window),
                current=str(now),
                discarded=counter.count,
            )
            counter.count = 0
            counter.window = now
        return counter

    def _touch(self, key: CounterKey) -> UsageCounter:
        """Like _rolled, but creates an empty counter for this month if absent."""
        counter = self._rolled(key)
        if counter is None:
            counter = UsageCounter(count=0, window=self.current_window())
            self._counters[key] = counter
        return counter

    # ── Reads ────────────────────────────────────────────────────
    # A counter only exists once a write has registered its lock, so a key
    # without a lock reads as untracked. Reads never register locks.

    def current_count(self, user_id: str, feature: FeatureKey) -> int:
        """Usage this month; 0 when the pair has never been tracked."""
        counter = self.snapshot(user_id, feature)
        return counter.count if counter is not None else 0

    def snapshot(self, user_id: str, feature: FeatureKey) -> UsageCounter | None:
        key = (user_id, feature)
        lock = self._locks.get(key)
        if lock is None:
            return None
        with lock:
            counter = self._rolled(key)
            return counter.copy() if counter is not None else None

    def counters_for(self, user_id: str) -> dict[FeatureKey, UsageCounter]:
        """Copies of every counter the user has, rolled over to this month."""
        result: dict[FeatureKey, UsageCounter] = {}
        for feature in FeatureKey:
            counter = self.snapshot(user_id, feature)
            if counter is not None:
                result[feature] = counter
        return result

    def records(self) -> list[UsageRecord]:
        """Every stored counter as-is (no rollover), for persistence and export."""
        with self._registry_lock:
            keys = list(self._counters)
        records: list[UsageRecord] = []
        for user_id, feature in keys:
            lock = self._locks.get((user_id, feature))
            if lock is None:
                continue
            with lock:
                counter = self._counters.get((user_id, feature))
                if counter is not None:
                    records.append(UsageRecord(user_id, feature, counter.copy()))
        return records

    # ── Writes ───────────────────────────────────────────────────

    def increment(self, user_id: str, feature: FeatureKey) -> int:
        """Add one use and return the new count. No bound is enforced here."""
        key = (user_id, feature)
        with self._writing(key):
            counter = self._touch(key)
            counter.count += 1
            return counter.count

    def try_increment(self, user_id: str, feature: FeatureKey, allowance: int) -> int | None:
        """Atomically increment if the count is below ``allowance``.

        Returns the new count, or None when denied. UNLIMITED always
        increments; NO_ACCESS never does.
        """
        if allowance == NO_ACCESS:
            return None
        key = (user_id, feature)
        with self._writing(key):
            counter = self._touch(key)
            if allowance != UNLIMITED and counter.count >= allowance:
                return None
            counter.count += 1
            return counter.count

    def reset(self, user_id: str, feature: FeatureKey | None = None) -> None:
        """Zero one counter, or forget every counter (and lock) the user has."""
        if feature is not None:
            key = (user_id, feature)
            with self._writing(key):
                self._counters[key] = UsageCounter(count=0, window=self.current_window())
            return

        with self._registry_lock:
            keys = [k for k in list(self._locks) if k[0] == user_id]
        for key in keys:
            lock = self._locks.get(key)
            if lock is None:
                continue
            with lock:
                self._counters.pop(key, None)
                with self._registry_lock:
                    self._locks.pop(key, None)

    def restore(self, records: Iterable[UsageRecord]) -> int:
        """Load persisted counters, replacing any in memory. Returns how many."""
        loaded = 0
        for record in records:
            key = (record.user_id, record.feature)
            with self._writing(key):
                self._counters[key] = record.counter.copy()
            loaded += 1
        log.info("usage_counters_restored", count=loaded)
        return loaded
