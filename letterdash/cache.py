"""TTL + LRU caches for category lookups and letter frequency tables."""

import time
from collections import OrderedDict
from typing import Any, Callable, Dict, Hashable, List, Optional

from .config import CacheConfig


class TTLCache:
    """
    Bounded map whose entries expire ``ttl`` milliseconds after being written.

    Expiry is checked lazily on read; the least recently used entry is evicted
    when a new key would exceed ``max_size``.
    """

    def __init__(self, max_size: int = 1000, ttl: int = 300000,
                 clock: Callable[[], float] = time.monotonic):
        self.max_size = max_size
        self.ttl = ttl
        self._clock = clock
        self._entries: "OrderedDict[Hashable, tuple]" = OrderedDict()
        self.stats = {'hits': 0, 'misses': 0, 'evictions': 0, 'total_requests': 0}

    @classmethod
    def from_config(cls, config: Optional[CacheConfig], **kwargs):
        config = config or CacheConfig()
        return cls(max_size=config.max_size, ttl=config.ttl, **kwargs)

    def _expired(self, created_at: float) -> bool:
        return (self._clock() - created_at) * 1000 > self.ttl

    def get(self, key: Hashable) -> Optional[Any]:
        self.stats['total_requests'] += 1
        entry = self._entries.get(key)
        if entry is None:
            self.stats['misses'] += 1
            return None
        value, created_at = entry
        if self._expired(created_at):
            del self._entries[key]
            self.stats['misses'] += 1
            return None
        self._entries.move_to_end(key)
        self.stats['hits'] += 1
        return value

    def set(self, key: Hashable, value: Any) -> None:
        if key in self._entries:
            self._entries.move_to_end(key)
        elif len(self._entries) >= self.max_size:
            self._entries.popitem(last=False)
            self.stats['evictions'] += 1
        self._entries[key] = (value, self._clock())

    def has(self, key: Hashable) -> bool:
        entry = self._entries.get(key)
        if entry is None:
            return False
        if self._expired(entry[1]):
            del self._entries[key]
            return False
        return True

    def delete(self, key: Hashable) -> None:
        self._entries.pop(key, None)

    def clear(self) -> None:
        self._entries.clear()
        self.stats = {'hits': 0, 'misses': 0, 'evictions': 0, 'total_requests': 0}

    def cleanup(self) -> int:
        """Drop every expired entry; returns how many were removed."""
        expired = [k for k, (_, created_at) in self._entries.items() if self._expired(created_at)]
        for key in expired:
            del self._entries[key]
        return len(expired)

    def __len__(self) -> int:
        return len(self._entries)

    def get_stats(self) -> Dict[str, Any]:
        total = self.stats['total_requests']
        hit_rate = (self.stats['hits'] / total) * 100 if total else 0
        return {
            **self.stats,
            'hit_rate': hit_rate,
            'size': len(self._entries),
            'max_size': self.max_size,
        }


class CategoryCache(TTLCache):
    """Cache for filtered category lists, keyed by difficulty or compatible letter."""

    def get_by_difficulty(self, difficulty: int) -> Optional[List]:
        return self.get(f"difficulty_{difficulty}")

    def set_by_difficulty(self, difficulty: int, categories: List) -> None:
        self.set(f"difficulty_{difficulty}", categories)

    def get_compatible(self, letter: str) -> Optional[List]:
        return self.get(f"compatible_{letter}")

    def set_compatible(self, letter: str, categories: List) -> None:
        self.set(f"compatible_{letter}", categories)


class LetterFrequencyCache(TTLCache):
    """Cache for difficulty-adjusted frequency tables."""

    def get_adjusted(self, scope: str, difficulty: int) -> Optional[Dict[str, float]]:
        table = self.get(f"{scope}_{difficulty}")
        return dict(table) if table is not None else None

    def set_adjusted(self, scope: str, difficulty: int, table: Dict[str, float]) -> None:
        self.set(f"{scope}_{difficulty}", dict(table))
