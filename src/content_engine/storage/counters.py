"""Atomic expiring counters shared by the gateway and feedback capture."""

from __future__ import annotations

import asyncio
import time
from collections.abc import Callable

import aiosqlite

from content_engine.storage.migrations import initialize_counter_db

# Expired rows restart at 1 with a fresh expiry inside the same statement,
# so concurrent callers never observe a check-then-increment gap.
INCREMENT_SQL = """
INSERT INTO counters (key, value, expires_at) VALUES (?, 1, ?)
ON CONFLICT(key) DO UPDATE SET
    value = CASE WHEN counters.expires_at <= ? THEN 1 ELSE counters.value + 1 END,
    expires_at = CASE WHEN counters.expires_at <= ? THEN excluded.expires_at
                      ELSE counters.expires_at END
RETURNING value
"""

PURGE_SQL = "DELETE FROM counters WHERE expires_at <= ?"

DEFAULT_PURGE_EVERY = 100


class SQLiteCounterStore:
    """Counters in a SQLite table. Expired rows are deleted every ``purge_every`` increments."""

    def __init__(
        self,
        db_path: str,
        clock: Callable[[], float] = time.time,
        purge_every: int = DEFAULT_PURGE_EVERY,
    ) -> None:
        self._db_path = db_path
        self._clock = clock
        self._purge_every = purge_every
        self._increments = 0

    async def initialize(self) -> None:
        await initialize_counter_db(self._db_path)

    async def increment(self, key: str, ttl_seconds: int) -> int:
        now = self._clock()
        async with aiosqlite.connect(self._db_path) as db:
            async with db.execute(INCREMENT_SQL, (key, now + ttl_seconds, now, now)) as cursor:
                row = await cursor.fetchone()
            self._increments += 1
            if self._purge_every and self._increments % self._purge_every == 0:
                await db.execute(PURGE_SQL, (now,))
            await db.commit()
        return int(row[0])

    async def get(self, key: str) -> int:
        async with aiosqlite.connect(self._db_path) as db:
            async with db.execute(
                "SELECT value FROM counters WHERE key = ? AND expires_at > ?",
                (key, self._clock()),
            ) as cursor:
                row = await cursor.fetchone()
                return int(row[0]) if row else 0

    async def reset(self, key: str) -> None:
        async with aiosqlite.connect(self._db_path) as db:
            await db.execute("DELETE FROM counters WHERE key = ?", (key,))
            await db.commit()

    async def purge_expired(self) -> int:
        async with aiosqlite.connect(self._db_path) as db:
            cursor = await db.execute(PURGE_SQL, (self._clock(),))
            await db.commit()
            return cursor.rowcount


class InMemoryCounterStore:
    """Process-local counter store for single-worker deployments and tests."""

    def __init__(
        self,
        clock: Callable[[], float] = time.monotonic,
        purge_every: int = DEFAULT_PURGE_EVERY,
    ) -> None:
        self._clock = clock
        self._purge_every = purge_every
        self._increments = 0
        self._values: dict[str, tuple[int, float]] = {}
        self._lock = asyncio.Lock()

    async def increment(self, key: str, ttl_seconds: int) -> int:
        async with self._lock:
            now = self._clock()
            value, expires_at = self._values.get(key, (0, 0.0))
            if expires_at <= now:
                value, expires_at = 0, now + ttl_seconds
            value += 1
            self._values[key] = (value, expires_at)
            self._increments += 1
            if self._purge_every and self._increments % self._purge_every == 0:
                self._evict(now)
            return value

    async def get(self, key: str) -> int:
        value, expires_at = self._values.get(key, (0, 0.0))
        return value if expires_at > self._clock() else 0

    async def reset(self, key: str) -> None:
        async with self._lock:
            self._values.pop(key, None)

    async def purge_expired(self) -> int:
        async with self._lock:
            return self._evict(self._clock())

    def _evict(self, now: float) -> int:
        expired = [key for key, (_, expires_at) in self._values.items() if expires_at <= now]
        for key in expired:
            del self._values[key]
        return len(expired)
