"""Hit/miss accounting for the hybrid cache."""

from __future__ import annotations

import threading
from typing import TYPE_CHECKING, Optional

from foxdoc.models import (
    CacheStats,
    CacheTier,
    DiskStats,
    IndexStats,
    MemoryStats,
)

if TYPE_CHECKING:
    from foxdoc.cache.disk import DiskTier
    from foxdoc.cache.memory import MemoryTier


class StatsCollector:
    """Counts lookup outcomes and assembles :class:`~foxdoc.models.CacheStats`.

    A hit is credited to the tier that produced the entry. A failed lookup
    is always counted as a memory miss, even when the disk tier was
    consulted too; disk misses are not tracked separately.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._hits = {CacheTier.MEMORY: 0, CacheTier.DISK: 0}
        self._misses = 0

    def record_hit(self, tier: CacheTier) -> None:
        with self._lock:
            self._hits[tier] += 1

    def record_miss(self) -> None:
        with self._lock:
            self._misses += 1

    def hits(self, tier: CacheTier) -> int:
        with self._lock:
            return self._hits[tier]

    @property
    def misses(self) -> int:
        with self._lock:
            return self._misses

    def reset(self) -> None:
        with self._lock:
            self._hits = {CacheTier.MEMORY: 0, CacheTier.DISK: 0}
            self._misses = 0

    def snapshot(
        self,
        memory: MemoryTier,
        url_index: MemoryTier,
        name_index: MemoryTier,
        path_index: MemoryTier,
        disk: Optional[DiskTier] = None,
    ) -> CacheStats:
        with self._lock:
            memory_hits = self._hits[CacheTier.MEMORY]
            disk_hits = self._hits[CacheTier.DISK]
            misses = self._misses

        disk_stats = None
        if disk is not None:
            disk_stats = DiskStats(size=disk.size(), max=disk.capacity(), hits=disk_hits)

        return CacheStats(
            memory=MemoryStats(
                size=memory.size(),
                max=memory.capacity(),
                hits=memory_hits,
                misses=misses,
            ),
            disk=disk_stats,
            indexes=IndexStats(
                url=url_index.size(),
                name=name_index.size(),
                path=path_index.size(),
            ),
        )
