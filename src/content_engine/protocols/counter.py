"""Protocol for the shared atomic counter service."""

from __future__ import annotations

from typing import Protocol


class CounterStore(Protocol):
    async def increment(self, key: str, ttl_seconds: int) -> int:
        """Atomically add one to ``key`` and return the new value.

        A missing or expired key starts again at 1 with a fresh TTL.
        """
        ...

    async def get(self, key: str) -> int: ...

    async def reset(self, key: str) -> None: ...

    async def purge_expired(self) -> int:
        """Delete expired keys and return how many were removed."""
        ...
