"""Bounded, TTL-aware LRU store backing the memory tier.

:class:`MemoryTier` is used four times by the hybrid cache: once for
document entries and once per secondary index. Each instance has its own
capacity; inserting into a full tier evicts the least recently *accessed*
key (a ``get`` refreshes recency, a ``put`` counts as an access too).

Expiry is lazy. Every value is stored with the timestamp its age is
measured from -- ``cached_at`` for document entries, the insertion time for
index pointers -- and a read of a value older than the TTL reports a miss
without deleting it. Stale values are dropped later by eviction or by an
explicit ``delete``/``clear``.
"""

from __future__ import annotations

import threading
import time
from collections import OrderedDict
from typing import Callable, Generic, Optional, TypeVar

V = TypeVar("V")


class MemoryTier(Generic[V]):
    """In-process LRU map with lazy TTL expiry.

    All operations complete synchronously under an internal lock, so the
    tier can be shared between the caller's thread and the background
    sync worker.

    Args:
        capacity: Maximum number of keys held at once.
        ttl_seconds: Age after which a value reads as absent.
        clock: Source of the current Unix time in seconds.

    Example::

        tier = MemoryTier(capacity=2, ttl_seconds=60)
        tier.put("a", 1)
        tier.put("b", 2)
        tier.get("a")       # "a" is now most recently used
        tier.put("c", 3)    # evicts "b"
    """

    def __init__(
        self,
        capacity: int,
        ttl_seconds: float,
        clock: Callable[[], float] = time.time,
    ) -> None:
        if capacity < 1:
            raise ValueError(f"capacity must be at least 1, got {capacity}")
        self._capacity = capacity
        self._ttl = ttl_seconds
        self._clock = clock
        self._items: OrderedDict[str, tuple[V, float]] = OrderedDict()
        self._lock = threading.Lock()

    def put(self, key: str, value: V, stamped_at: Optional[float] = None) -> Optional[str]:
        """Insert or replace *key* and mark it most recently used.

        Args:
            key: Cache key.
            value: Value to store.
            stamped_at: Timestamp the value's age is measured from. Defaults
                to now.

        Returns:
            The key evicted to make room, or ``None``.
        """
        stamp = self._clock() if stamped_at is None else stamped_at
        evicted: Optional[str] = None
        with self._lock:
            if key in self._items:
                self._items.move_to_end(key)
            elif len(self._items) >= self._capacity:
                evicted, _ = self._items.popitem(last=False)
            self._items[key] = (value, stamp)
        return evicted

    def get(self, key: str) -> Optional[V]:
        """Return the live value for *key* and refresh its recency.

        An expired value reads as absent and keeps its LRU position, so it
        is evicted ahead of live keys.
        """
        with self._lock:
            slot = self._items.get(key)
            if slot is None or self._expired(slot[1]):
                return None
            self._items.move_to_end(key)
            return slot[0]

    def peek(self, key: str) -> Optional[V]:
        """Like :meth:`get` but leaves recency untouched."""
        with self._lock:
            slot = self._items.get(key)
        if slot is None or self._expired(slot[1]):
            return None
        return slot[0]

    def delete(self, key: str) -> bool:
        """Remove *key*, live or expired.

        Returns:
            ``True`` if the key was present.
        """
        with self._lock:
            return self._items.pop(key, None) is not None

    def delete_prefix(self, prefix: str) -> list[str]:
        """Remove every key starting with *prefix*, live or expired.

        Returns:
            The removed keys.
        """
        with self._lock:
            doomed = [k for k in self._items if k.startswith(prefix)]
            for k in doomed:
                del self._items[k]
        return doomed

    def clear(self) -> None:
        """Drop every key."""
        with self._lock:
            self._items.clear()

    def items(self) -> list[tuple[str, V]]:
        """Snapshot of live ``(key, value)`` pairs, most recently used first."""
        with self._lock:
            snapshot = list(self._items.items())
        return [(k, v) for k, (v, stamp) in reversed(snapshot) if not self._expired(stamp)]

    def size(self) -> int:
        """Number of stored keys, including expired ones not yet evicted."""
        with self._lock:
            return len(self._items)

    def capacity(self) -> int:
        """Maximum number of keys held before eviction."""
        return self._capacity

    def __len__(self) -> int:
        return self.size()

    def __contains__(self, key: object) -> bool:
        with self._lock:
            return key in self._items

    def _expired(self, stamped_at: float) -> bool:
        return self._clock() - stamped_at > self._ttl
