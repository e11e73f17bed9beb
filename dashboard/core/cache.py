import asyncio
from collections.abc import Callable
from dataclasses import dataclass
from time import time
from typing import Any


@dataclass(frozen=True)
class CacheEntry:
    payload: Any
    fetched_at: float
    status: int


class ResponseCache:
    """In-memory upstream response cache with time-based expiry.

    Expired entries are not evicted; `get` ignores them and the next `put`
    for the same key overwrites them. The key space is bounded by
    users x years x endpoints, so there is no size limit.
    """

    def __init__(
        self, ttl_seconds: float = 300.0, clock: Callable[[], float] = time
    ) -> None:
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: dict[str, CacheEntry] = {}
        # At most one upstream fetch in flight per key.
        self._locks: dict[str, asyncio.Lock] = {}

    def get(self, key: str) -> CacheEntry | None:
        entry = self._entries.get(key)
        if entry is None:
            return None
        if self._clock() - entry.fetched_at >= self.ttl_seconds:
            return None
        return entry

    def put(self, key: str, payload: Any, status: int = 200) -> CacheEntry:
        entry = CacheEntry(payload=payload, fetched_at=self._clock(), status=status)
        self._entries[key] = entry
        return entry

    def lock(self, key: str) -> asyncio.Lock:
        return self._locks.setdefault(key, asyncio.Lock())

    def __len__(self) -> int:
        return len(self._entries)
