from __future__ import annotations

import time
from collections import OrderedDict
from typing import Any, Callable, Iterable

from pydantic import BaseModel


class CacheEntry(BaseModel):
    """Snapshot of one successful upstream fetch."""

    key: str
    payload: Any = None
    fetched_at: float


def make_key(resource: str, *parts: object) -> str:
    """``games_<steamId>``, ``achievements_<steamId>_<appId>`` and so on."""
    return "_".join([resource, *(str(p) for p in parts)])


def set_key(resource: str, ids: Iterable[object]) -> str:
    """Key for a set-valued lookup; order and duplicates do not matter."""
    return make_key(resource, *sorted({str(i) for i in ids}))


class TTLCache:
    """In-memory response cache for a single-worker async app.

    Entries carry their fetch time and each caller decides freshness with
    its own TTL, so one store serves every resource type.  Writes replace
    the whole entry.  The store is capped at ``max_entries``; the oldest
    write is evicted first.
    """

    def __init__(
        self,
        max_entries: int = 1024,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._store: OrderedDict[str, CacheEntry] = OrderedDict()
        self._max_entries = max_entries
        self._clock = clock

    def __len__(self) -> int:
        return len(self._store)

    def __contains__(self, key: str) -> bool:
        return key in self._store

    def get(self, key: str) -> CacheEntry | None:
        return self._store.get(key)

    def put(self, key: str, payload: Any) -> CacheEntry:
        entry = CacheEntry(key=key, payload=payload, fetched_at=self._clock())
        self._store.pop(key, None)
        self._store[key] = entry
        while len(self._store) > self._max_entries:
            self._store.popitem(last=False)
        return entry

    def is_fresh(self, entry: CacheEntry, ttl: float) -> bool:
        return self._clock() - entry.fetched_at < ttl

    def get_fresh(self, key: str, ttl: float) -> CacheEntry | None:
        entry = self.get(key)
        if entry is not None and self.is_fresh(entry, ttl):
            return entry
        return None

    def sweep(self, max_age: float) -> int:
        """Drop entries older than *max_age*; return how many went."""
        now = self._clock()
        stale = [k for k, e in self._store.items() if now - e.fetched_at >= max_age]
        for k in stale:
            del self._store[k]
        return len(stale)

    def clear(self) -> None:
        self._store.clear()

    def stats(self) -> dict[str, int]:
        return {"entries": len(self._store), "max_entries": self._max_entries}
