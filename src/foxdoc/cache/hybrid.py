"""Two-tier document cache: the public lookup API.

:class:`HybridCache` composes the pieces in this package:

* a :class:`~foxdoc.cache.memory.MemoryTier` of entries plus one per
  secondary index (URL, name, path), each bounded and LRU-evicted;
* an optional :class:`~foxdoc.cache.disk.DiskTier` that survives restarts;
* a :class:`~foxdoc.cache.sync.SyncScheduler` that persists writes in the
  background;
* a :class:`~foxdoc.cache.stats.StatsCollector`.

Every lookup resolves memory first, then disk. A pointer or entry found on
disk is copied into memory so the next lookup is a memory hit. Index
pointers whose entry has gone (cleared, expired, trimmed) are removed when
a lookup trips over them.

Nothing here raises on a cache problem. A store that cannot be opened
leaves the cache running in memory only; write failures are logged by the
disk tier and retried on the next flush.

Example::

    from foxdoc.cache import HybridCache
    from foxdoc.models import CacheConfig

    with HybridCache.open(CacheConfig(), config_dir) as cache:
        cache.put(entry)
        hit = cache.get_by_url("https://app.apifox.com/link/project/1/apis/api-42")
        if hit is not None:
            print(hit.tier, hit.entry.document)
"""

from __future__ import annotations

import logging
import time
from pathlib import Path
from typing import Callable, Optional

from foxdoc.cache import keys
from foxdoc.cache.disk import DiskTier, index_keys
from foxdoc.cache.memory import MemoryTier
from foxdoc.cache.stats import StatsCollector
from foxdoc.cache.store import (
    INDEX_SECTIONS,
    NAME_INDEX,
    PATH_INDEX,
    URL_INDEX,
    DocumentStore,
    open_store,
)
from foxdoc.cache.sync import SyncScheduler
from foxdoc.exceptions import StoreError
from foxdoc.models import (
    CacheConfig,
    CacheEntry,
    CacheHit,
    CacheStats,
    CacheTier,
    IndexEntry,
)

logger = logging.getLogger(__name__)


class HybridCache:
    """Memory-plus-disk cache for exported API documents.

    Args:
        config: Cache settings. With ``enabled=False`` every lookup misses
            and :meth:`put` does nothing.
        store: Backing store for the disk tier. The cache takes ownership
            and closes it on :meth:`shutdown`. ``None`` (or
            ``persistent_enabled=False``) means memory only.
        clock: Source of the current Unix time in seconds.
        autostart: Start the periodic flush timer right away.
    """

    def __init__(
        self,
        config: CacheConfig,
        store: Optional[DocumentStore] = None,
        clock: Callable[[], float] = time.time,
        autostart: bool = True,
    ) -> None:
        self._config = config
        self._clock = clock
        self._closed = False
        self._stats = StatsCollector()

        ttl = config.ttl_seconds
        index_capacity = config.memory_max_entries * config.index_capacity_factor
        self._memory: MemoryTier[CacheEntry] = MemoryTier(
            config.memory_max_entries, ttl, clock
        )
        self._indexes: dict[str, MemoryTier[IndexEntry]] = {
            section: MemoryTier(index_capacity, ttl, clock) for section in INDEX_SECTIONS
        }

        self._disk: Optional[DiskTier] = None
        self._scheduler: Optional[SyncScheduler] = None
        if store is None:
            return
        if not (config.enabled and config.persistent_enabled):
            store.close()
            return

        self._disk = DiskTier(
            store,
            ttl_seconds=ttl,
            max_entries=config.disk_max_entries,
            clock=clock,
            expired_cleanup_ratio=config.expired_cleanup_ratio,
        )
        self._backfill(self._disk.load())
        self._scheduler = SyncScheduler(self._disk, config.sync_interval_seconds)
        if autostart:
            self._scheduler.start()

    @classmethod
    def open(
        cls,
        config: CacheConfig,
        config_dir: Path,
        clock: Callable[[], float] = time.time,
    ) -> HybridCache:
        """Build a cache whose disk tier lives under *config_dir*.

        If the store cannot be opened the cache falls back to memory only
        for the rest of the process and a warning is logged.
        """
        store: Optional[DocumentStore] = None
        if config.enabled and config.persistent_enabled:
            try:
                store = open_store(config.store_backend, config_dir)
            except StoreError as exc:
                logger.warning("Disk cache unavailable, caching in memory only: %s", exc)
        return cls(config, store=store, clock=clock)

    @property
    def config(self) -> CacheConfig:
        return self._config

    @property
    def enabled(self) -> bool:
        return self._config.enabled

    @property
    def persistent_enabled(self) -> bool:
        """Whether a disk tier is active (configured *and* opened)."""
        return self._disk is not None

    # ------------------------------------------------------------------ #
    # Writes
    # ------------------------------------------------------------------ #

    def put(self, entry: CacheEntry) -> None:
        """Cache *entry* in memory and queue it for disk.

        Returns immediately; the disk write happens on the sync worker.
        """
        if not self.enabled:
            return
        meta = entry.metadata
        key = keys.primary_key(meta.project_id, meta.api_id)

        evicted = self._memory.put(key, entry, stamped_at=meta.cached_at)
        if evicted is not None:
            logger.debug("Evicted %s from memory cache", evicted)

        pointer = IndexEntry(project_id=meta.project_id, api_id=meta.api_id)
        for section, index_key in index_keys(entry).items():
            self._indexes[section].put(index_key, pointer, stamped_at=meta.cached_at)

        if self._scheduler is not None:
            self._scheduler.mark_dirty(key, entry)
        logger.debug("Cached %s (%s %s)", key, meta.method, meta.path)

    # ------------------------------------------------------------------ #
    # Lookups
    # ------------------------------------------------------------------ #

    def get_by_primary(self, project_id: str, api_id: int) -> Optional[CacheHit]:
        if not self.enabled:
            return None
        return self._counted(self._resolve(project_id, api_id, "id"), f"{project_id}:{api_id}")

    def get_by_url(self, url: str) -> Optional[CacheHit]:
        if not self.enabled:
            return None
        hit = self._lookup_index(URL_INDEX, keys.url_key(url))
        return self._counted(hit, url)

    def get_by_path(self, project_id: str, method: str, path: str) -> Optional[CacheHit]:
        if not self.enabled:
            return None
        hit = self._lookup_index(PATH_INDEX, keys.path_key(project_id, method, path))
        return self._counted(hit, f"{method.upper()} {path}")

    def get_by_name(self, project_id: str, name: str) -> Optional[CacheHit]:
        """Look an endpoint up by name.

        Tries the exact (trimmed, case-insensitive) name first. Failing
        that, scans the memory tier for an entry of the same project whose
        name or path contains *name*. The scan never touches disk.
        """
        if not self.enabled:
            return None
        hit = self._lookup_index(NAME_INDEX, keys.name_key(project_id, name))
        if hit is None:
            hit = self._fuzzy_match(project_id, name)
        return self._counted(hit, name)

    # ------------------------------------------------------------------ #
    # Clears
    # ------------------------------------------------------------------ #

    def clear_one(self, project_id: str, api_id: int) -> bool:
        """Remove one entry from both tiers.

        The entry's URL pointer goes with it. Name and path indexes are
        emptied wholesale and rebuilt by later writes and lookups.

        Returns:
            ``True`` if the entry was cached anywhere.
        """
        key = keys.primary_key(project_id, api_id)
        known = self._memory.peek(key)
        found = self._memory.delete(key)
        self._indexes[NAME_INDEX].clear()
        self._indexes[PATH_INDEX].clear()

        if self._disk is not None and self._scheduler is not None:
            with self._disk.lock:
                pending = self._scheduler.pending(key)
                self._scheduler.discard([key])
                stored = self._disk.get(key)
                known = known or pending or stored
                if self._disk.remove_entry(key) or pending is not None:
                    found = True
                if known is not None and known.metadata.source_url:
                    self._disk.remove_index(URL_INDEX, keys.url_key(known.metadata.source_url))
                self._disk.reset_indexes((NAME_INDEX, PATH_INDEX))

        if known is not None and known.metadata.source_url:
            self._indexes[URL_INDEX].delete(keys.url_key(known.metadata.source_url))
        if found:
            logger.info("Cleared cached document %s", key)
        return found

    def clear_by_url(self, url: str) -> bool:
        """Remove the entry a share URL points to. See :meth:`clear_one`."""
        url_key = keys.url_key(url)
        pointer = self._indexes[URL_INDEX].peek(url_key)
        if pointer is None and self._disk is not None:
            pointer = self._disk.get_index(URL_INDEX, url_key)
        if pointer is None:
            return False
        self._indexes[URL_INDEX].delete(url_key)
        if self._disk is not None:
            self._disk.remove_index(URL_INDEX, url_key)
        return self.clear_one(pointer.project_id, pointer.api_id)

    def clear_project(self, project_id: str) -> int:
        """Remove every entry of *project_id* and empty all indexes.

        Returns:
            Number of distinct entries removed across memory, disk and the
            unflushed queue.
        """
        prefix = keys.project_prefix(project_id)
        removed = set(self._memory.delete_prefix(prefix))
        for index in self._indexes.values():
            index.clear()

        if self._disk is not None and self._scheduler is not None:
            with self._disk.lock:
                removed.update(self._scheduler.discard_prefix(prefix))
                removed.update(self._disk.remove_by_project(project_id))

        logger.info("Cleared %d cached documents for project %s", len(removed), project_id)
        return len(removed)

    def clear_all(self) -> None:
        """Empty both tiers and reset the statistics."""
        self.clear_memory()
        self._stats.reset()
        if self._disk is not None and self._scheduler is not None:
            with self._disk.lock:
                self._scheduler.discard_all()
                self._disk.clear()
        logger.info("Cleared all cached documents")

    def clear_memory(self) -> None:
        """Drop the memory tier and memory indexes, leaving disk untouched."""
        self._memory.clear()
        for index in self._indexes.values():
            index.clear()

    # ------------------------------------------------------------------ #
    # Introspection and lifecycle
    # ------------------------------------------------------------------ #

    def stats(self) -> CacheStats:
        return self._stats.snapshot(
            self._memory,
            self._indexes[URL_INDEX],
            self._indexes[NAME_INDEX],
            self._indexes[PATH_INDEX],
            disk=self._disk,
        )

    def wait_idle(self, timeout: Optional[float] = None) -> bool:
        """Block until queued disk work has run. ``True`` when memory only."""
        if self._scheduler is None:
            return True
        return self._scheduler.wait_idle(timeout)

    def shutdown(self, timeout: Optional[float] = None) -> bool:
        """Flush pending writes and close the store.

        Safe to call more than once. The flush is bounded by *timeout*
        (default ``shutdown_timeout_seconds``); if it runs over, the store
        is left open for the worker and unflushed entries are lost.

        Returns:
            ``False`` if the final flush did not finish in time.
        """
        if self._closed:
            return True
        self._closed = True
        if self._scheduler is None or self._disk is None:
            return True

        budget = self._config.shutdown_timeout_seconds if timeout is None else timeout
        flushed = self._scheduler.shutdown(budget)
        if flushed:
            self._disk.close()
        return flushed

    def __enter__(self) -> HybridCache:
        return self

    def __exit__(self, *exc: object) -> None:
        self.shutdown()

    # ------------------------------------------------------------------ #
    # Internals
    # ------------------------------------------------------------------ #

    def _backfill(self, live: list[tuple[str, CacheEntry]]) -> None:
        # Leave half the memory tier free for this session's own writes.
        limit = (self._memory.capacity() + 1) // 2
        for key, entry in reversed(live[:limit]):
            self._memory.put(key, entry, stamped_at=entry.metadata.cached_at)
        if live:
            logger.debug("Back-filled %d of %d disk entries into memory", min(limit, len(live)), len(live))

    def _lookup_index(self, section: str, index_key: str) -> Optional[CacheHit]:
        index = self._indexes[section]
        pointer = index.get(index_key)
        if pointer is None and self._disk is not None:
            pointer = self._disk.get_index(section, index_key)
            if pointer is not None:
                index.put(index_key, pointer)
        if pointer is None:
            return None

        hit = self._resolve(pointer.project_id, pointer.api_id, section)
        if hit is None:
            logger.debug("Dropping stale %s pointer %s", section, index_key)
            index.delete(index_key)
            if self._scheduler is not None and self._disk is not None:
                self._scheduler.submit(self._disk.prune_index, section, index_key)
        return hit

    def _resolve(self, project_id: str, api_id: int, via: str) -> Optional[CacheHit]:
        key = keys.primary_key(project_id, api_id)
        entry = self._memory.get(key)
        if entry is not None:
            return self._hit(entry, CacheTier.MEMORY, key, via)
        if self._disk is None or self._scheduler is None:
            return None

        # An entry evicted from memory before its write ran is still owed to disk.
        entry = self._scheduler.pending(key)
        if entry is None:
            entry = self._disk.get(key)
            if entry is not None and self._disk.is_expired(entry):
                self._scheduler.submit(self._disk.remove_if_expired, key)
                return None
        if entry is None or self._disk.is_expired(entry):
            return None

        self._memory.put(key, entry, stamped_at=entry.metadata.cached_at)
        return self._hit(entry, CacheTier.DISK, key, via)

    def _fuzzy_match(self, project_id: str, name: str) -> Optional[CacheHit]:
        keyword = name.strip().lower()
        if not keyword:
            return None
        prefix = keys.project_prefix(project_id)
        for key, entry in self._memory.items():
            if not key.startswith(prefix):
                continue
            meta = entry.metadata
            if keyword in meta.name.lower() or keyword in meta.path.lower():
                self._memory.get(key)
                return self._hit(entry, CacheTier.MEMORY, key, "fuzzy name")
        return None

    def _hit(self, entry: CacheEntry, tier: CacheTier, key: str, via: str) -> CacheHit:
        self._stats.record_hit(tier)
        logger.info("Cache hit (%s) for %s via %s", tier.value, key, via)
        return CacheHit(entry=entry, tier=tier)

    def _counted(self, hit: Optional[CacheHit], what: str) -> Optional[CacheHit]:
        if hit is None:
            self._stats.record_miss()
            logger.debug("Cache miss for %s", what)
        return hit
