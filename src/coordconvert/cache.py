"""Bounded LRU caches with lazy expiry."""

from __future__ import annotations

import logging
import time
from collections import OrderedDict
from typing import Callable, Generic, Hashable, Optional, TypeVar

from coordconvert.models import CacheEntry, Conversions, Coordinate, Format

logger = logging.getLogger(__name__)

DEFAULT_CAPACITY = 100
DEFAULT_MAX_AGE = 300.0  # seconds

K = TypeVar("K", bound=Hashable)
V = TypeVar("V")


class BoundedLRUCache(Generic[K, V]):
    """
    Fixed-capacity mapping that evicts the least-recently-used key.

    With *max_age* set, values older than that are treated as absent on
    lookup but stay in place until evicted or overwritten; nothing sweeps
    them in the background.
    """

    def __init__(
        self,
        capacity: int = DEFAULT_CAPACITY,
        max_age: Optional[float] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        if capacity <= 0:
            raise ValueError("Cache capacity must be positive")
        self._capacity = capacity
        self._max_age = max_age
        self._clock = clock
        self._data: OrderedDict[K, tuple[float, V]] = OrderedDict()
        self.hits = 0
        self.misses = 0
        self.evictions = 0

    @property
    def capacity(self) -> int:
        return self._capacity

    def get(self, key: K) -> Optional[V]:
        item = self._data.get(key)
        if item is None or self._expired(item[0]):
            self.misses += 1
            return None
        self._data.move_to_end(key)
        self.hits += 1
        return item[1]

    def set(self, key: K, value: V) -> None:
        if key in self._data:
            self._data.move_to_end(key)
        elif len(self._data) >= self._capacity:
            evicted, _ = self._data.popitem(last=False)
            self.evictions += 1
            logger.debug("Evicted LRU cache key %r", evicted)
        self._data[key] = (self._clock(), value)

    def timestamp(self, key: K) -> Optional[float]:
        item = self._data.get(key)
        return item[0] if item is not None else None

    def clear(self) -> None:
        self._data.clear()

    def _expired(self, stored_at: float) -> bool:
        return self._max_age is not None and self._clock() - stored_at > self._max_age

    def __len__(self) -> int:
        return len(self._data)

    def __contains__(self, key: object) -> bool:
        return key in self._data


class ConversionCache:
    """Conversion results keyed by format plus lower-cased, trimmed input text."""

    def __init__(
        self,
        capacity: int = DEFAULT_CAPACITY,
        max_age: float = DEFAULT_MAX_AGE,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._lru: BoundedLRUCache[str, CacheEntry] = BoundedLRUCache(
            capacity, max_age, clock
        )
        self._clock = clock

    @staticmethod
    def key(raw: str, fmt: Format) -> str:
        return f"{Format.coerce(fmt).value}:{raw.strip().lower()}"

    def get(self, raw: str, fmt: Format) -> Optional[CacheEntry]:
        """Return the live entry for (raw, fmt), or None if missing or expired."""
        return self._lru.get(self.key(raw, fmt))

    def set(self, coordinate: Coordinate, conversions: Conversions) -> CacheEntry:
        """Store a conversion, evicting the least-recently-used entry when full."""
        if not isinstance(coordinate, Coordinate) or not coordinate.raw:
            raise ValueError("Invalid coordinate for caching")
        if not conversions:
            raise ValueError("Invalid conversions for caching")
        entry = CacheEntry(
            source=coordinate,
            conversions=dict(conversions),
            timestamp=self._clock(),
        )
        self._lru.set(self.key(coordinate.raw, coordinate.format), entry)
        return entry

    def clear(self) -> None:
        self._lru.clear()

    def stats(self) -> dict:
        return {
            "size": len(self._lru),
            "capacity": self._lru.capacity,
            "hits": self._lru.hits,
            "misses": self._lru.misses,
            "evictions": self._lru.evictions,
        }

    def __len__(self) -> int:
        return len(self._lru)
