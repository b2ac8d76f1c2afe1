"""
Expansion Cache

Expansion is referentially transparent, so its results can be memoized.

DESIGN DECISION: The cache is an explicit value the caller creates and
owns. Nothing in the engine keeps global state. Keys carry the master's
revision token, so an edited record can never be served a stale expansion;
the evaluation instant enters the key only through its paid-through date.
"""

from datetime import date
from typing import Callable

from cachetools import LRUCache

from recurrence_engine.models.entry import Instance, MasterEntry
from recurrence_engine.models.window import Window


CacheKey = tuple[str, str, date, date, date, bool]


class ExpansionCache:
    """Bounded LRU of materialized windows."""

    def __init__(self, max_entries: int = 512):
        if max_entries < 1:
            raise ValueError("max_entries must be at least 1")
        self._entries: LRUCache = LRUCache(maxsize=max_entries)
        self.hits = 0
        self.misses = 0

    @staticmethod
    def key_for(
        master: MasterEntry,
        window: Window,
        paid_through: date,
        income_counts_as_autopay: bool = False,
    ) -> CacheKey:
        return (
            master.id,
            master.revision_token(),
            window.start,
            window.end,
            paid_through,
            income_counts_as_autopay,
        )

    def get_or_compute(
        self,
        key: CacheKey,
        compute: Callable[[], list[Instance]],
    ) -> list[Instance]:
        cached = self._entries.get(key)
        if cached is not None:
            self.hits += 1
            return list(cached)

        self.misses += 1
        instances = compute()
        # LRUCache evicts the least recently used window on insert
        self._entries[key] = tuple(instances)
        return list(instances)

    def invalidate(self, master_id: str) -> int:
        """Drop every cached window of one master. Returns how many."""
        stale = [key for key in list(self._entries) if key[0] == master_id]
        for key in stale:
            self._entries.pop(key, None)
        return len(stale)

    def clear(self) -> None:
        self._entries.clear()
        self.hits = 0
        self.misses = 0

    def __len__(self) -> int:
        return len(self._entries)
