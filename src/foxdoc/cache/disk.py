"""Durable cache tier on top of a :class:`~foxdoc.cache.store.DocumentStore`.

The disk tier is the authoritative copy of every flushed entry. It owns the
three persisted index maps as well: writing an entry regenerates that
entry's URL, name, and path pointers in the same store update.

Size is not enforced per write. :meth:`DiskTier.cleanup` drops expired
entries, trims the oldest entries beyond ``max_entries`` and prunes index
pointers left dangling; it runs at load time when enough entries have
expired, and after periodic flushes once the tier has grown past its limit.

Every method that touches the store catches
:class:`~foxdoc.exceptions.StoreError`, logs it, and reports failure through
its return value. The store is never left holding a partially applied
update because each operation issues a single ``update`` call.
"""

from __future__ import annotations

import logging
import threading
import time
from typing import Any, Callable, Optional

from pydantic import ValidationError

from foxdoc.cache import keys
from foxdoc.cache.store import (
    ENTRIES,
    INDEX_SECTIONS,
    NAME_INDEX,
    PATH_INDEX,
    URL_INDEX,
    DocumentStore,
)
from foxdoc.exceptions import StoreError
from foxdoc.models import CacheEntry, IndexEntry

logger = logging.getLogger(__name__)


def _dump(model: CacheEntry | IndexEntry) -> dict[str, Any]:
    return model.model_dump(mode="json", by_alias=True)


def index_keys(entry: CacheEntry) -> dict[str, str]:
    """Map each index section to the key *entry* is reachable under."""
    meta = entry.metadata
    result = {
        NAME_INDEX: keys.name_key(meta.project_id, meta.name),
        PATH_INDEX: keys.path_key(meta.project_id, meta.method, meta.path),
    }
    if meta.source_url:
        result[URL_INDEX] = keys.url_key(meta.source_url)
    return result


class DiskTier:
    """Persistent entry and index storage.

    Args:
        store: Opened document store. The tier takes ownership and closes
            it in :meth:`close`.
        ttl_seconds: Entry lifetime, measured from ``cached_at``.
        max_entries: Size limit applied by :meth:`cleanup`.
        clock: Source of the current Unix time in seconds.
        expired_cleanup_ratio: :meth:`load` runs a cleanup when the fraction
            of expired entries is strictly greater than this.

    Attributes:
        lock: Re-entrant lock serialising read-modify-write cycles on the
            store. Callers that must make a decision and a write atomic
            (the sync scheduler, project clears) hold it around both.
    """

    def __init__(
        self,
        store: DocumentStore,
        ttl_seconds: float,
        max_entries: int,
        clock: Callable[[], float] = time.time,
        expired_cleanup_ratio: float = 0.0,
    ) -> None:
        self._store = store
        self._ttl = ttl_seconds
        self._max_entries = max_entries
        self._clock = clock
        self._cleanup_ratio = expired_cleanup_ratio
        self.lock = threading.RLock()

    @property
    def store(self) -> DocumentStore:
        return self._store

    def is_expired(self, entry: CacheEntry) -> bool:
        """Whether *entry* is older than the TTL, measured from ``cached_at``."""
        return self._clock() - entry.metadata.cached_at > self._ttl

    # ------------------------------------------------------------------ #
    # Startup
    # ------------------------------------------------------------------ #

    def load(self) -> list[tuple[str, CacheEntry]]:
        """Read every stored entry once, at startup.

        Expired entries are counted but not returned. When their share of
        the total exceeds the configured ratio, a :meth:`cleanup` pass
        rewrites the document without them.

        Returns:
            Live ``(primary_key, entry)`` pairs, newest first, for
            back-filling the memory tier.
        """
        with self.lock:
            raw = self._read(ENTRIES)
            live: list[tuple[str, CacheEntry]] = []
            expired = 0
            for key, data in raw.items():
                entry = self._parse_entry(key, data)
                if entry is None or self.is_expired(entry):
                    expired += 1
                    continue
                live.append((key, entry))

            total = len(raw)
            if expired and expired / total > self._cleanup_ratio:
                self.cleanup()

        live.sort(key=lambda item: item[1].metadata.cached_at, reverse=True)
        logger.debug(
            "Loaded cache from disk: %d live, %d expired, %d total",
            len(live),
            expired,
            total,
        )
        return live

    # ------------------------------------------------------------------ #
    # Reads
    # ------------------------------------------------------------------ #

    def get(self, key: str) -> Optional[CacheEntry]:
        """Return the stored entry for *key*, expired or not."""
        data = self._read(ENTRIES).get(key)
        if data is None:
            return None
        return self._parse_entry(key, data)

    def get_index(self, section: str, key: str) -> Optional[IndexEntry]:
        """Return the pointer stored under *key* in an index *section*.

        Args:
            section: One of ``urlIndex``, ``nameIndex`` or ``pathIndex``.
            key: Index key built by :mod:`foxdoc.cache.keys`.

        Returns:
            The pointer, or ``None`` if absent or unreadable. Whether the
            entry it points to is still live is the caller's concern.
        """
        data = self._read(section).get(key)
        if data is None:
            return None
        try:
            return IndexEntry.model_validate(data)
        except ValidationError:
            logger.debug("Ignoring malformed %s pointer %s", section, key)
            return None

    def keys(self) -> list[str]:
        """Primary keys of every stored entry, expired ones included."""
        return list(self._read(ENTRIES))

    def size(self) -> int:
        """Number of stored entries, expired ones included."""
        return len(self._read(ENTRIES))

    def capacity(self) -> int:
        """The ``disk_max_entries`` limit enforced by :meth:`cleanup`."""
        return self._max_entries

    # ------------------------------------------------------------------ #
    # Writes
    # ------------------------------------------------------------------ #

    def write(self, key: str, entry: CacheEntry) -> bool:
        """Persist *entry* under *key* together with its index pointers.

        Returns:
            ``True`` when the store accepted the write.
        """
        with self.lock:
            entries = self._read(ENTRIES)
            entries[key] = _dump(entry)
            update: dict[str, dict[str, Any]] = {ENTRIES: entries}
            pointer = _dump(
                IndexEntry(project_id=entry.metadata.project_id, api_id=entry.metadata.api_id)
            )
            for section, index_key in index_keys(entry).items():
                index = self._read(section)
                index[index_key] = pointer
                update[section] = index
            return self._write(update, f"write {key}")

    def remove_entry(self, key: str) -> bool:
        """Delete one entry. Index pointers to it are left for read-time cleanup."""
        with self.lock:
            entries = self._read(ENTRIES)
            if entries.pop(key, None) is None:
                return False
            return self._write({ENTRIES: entries}, f"remove {key}")

    def remove_if_expired(self, key: str) -> bool:
        """Delete *key* only if the stored entry is still past its TTL."""
        with self.lock:
            entry = self.get(key)
            if entry is None or not self.is_expired(entry):
                return False
            return self.remove_entry(key)

    def remove_index(self, section: str, key: str) -> bool:
        """Delete one pointer from an index section.

        Returns:
            ``True`` if the pointer existed and the store was updated.
        """
        with self.lock:
            index = self._read(section)
            if index.pop(key, None) is None:
                return False
            return self._write({section: index}, f"remove {section} {key}")

    def prune_index(self, section: str, key: str) -> bool:
        """Remove a pointer only if the entry it names is gone or expired.

        A newer write may have re-pointed *key* since the caller found it
        dangling; in that case the pointer is kept.
        """
        with self.lock:
            pointer = self.get_index(section, key)
            if pointer is None:
                return False
            entry = self.get(keys.primary_key(pointer.project_id, pointer.api_id))
            if entry is not None and not self.is_expired(entry):
                return False
            return self.remove_index(section, key)

    def reset_indexes(self, sections: tuple[str, ...] = INDEX_SECTIONS) -> bool:
        """Empty the given index sections (all three by default).

        Returns:
            ``False`` if the store write failed.
        """
        with self.lock:
            return self._write({s: {} for s in sections}, "reset indexes")

    def remove_by_project(self, project_id: str) -> list[str]:
        """Delete every entry of *project_id* and reset all index maps.

        Indexes are not partitioned by project, so they are emptied
        wholesale and rebuilt lazily by later lookups and writes.

        Returns:
            Primary keys of the removed entries.
        """
        prefix = keys.project_prefix(project_id)
        with self.lock:
            entries = self._read(ENTRIES)
            removed = [k for k in entries if k.startswith(prefix)]
            kept = {k: v for k, v in entries.items() if not k.startswith(prefix)}
            update = {ENTRIES: kept, **{s: {} for s in INDEX_SECTIONS}}
            if not self._write(update, f"remove project {project_id}"):
                return []
        return removed

    def clear(self) -> bool:
        """Delete every entry and pointer.

        Returns:
            ``False`` if the store write failed.
        """
        with self.lock:
            try:
                self._store.reset()
            except StoreError as exc:
                logger.error("Failed to clear disk cache: %s", exc)
                return False
        return True

    def cleanup(self) -> int:
        """Drop expired and surplus entries and prune dangling index pointers.

        Surplus entries (beyond ``max_entries``) are removed oldest
        ``cached_at`` first.

        Returns:
            Number of entries removed.
        """
        with self.lock:
            raw = self._read(ENTRIES)
            live: dict[str, CacheEntry] = {}
            for key, data in raw.items():
                entry = self._parse_entry(key, data)
                if entry is not None and not self.is_expired(entry):
                    live[key] = entry

            if len(live) > self._max_entries:
                newest = sorted(
                    live.items(), key=lambda item: item[1].metadata.cached_at, reverse=True
                )
                live = dict(newest[: self._max_entries])

            kept = {k: v for k, v in raw.items() if k in live}
            update: dict[str, dict[str, Any]] = {ENTRIES: kept}
            for section in INDEX_SECTIONS:
                index = self._read(section)
                update[section] = {
                    k: v
                    for k, v in index.items()
                    if isinstance(v, dict)
                    and keys.primary_key(v.get("projectId", ""), v.get("apiId", "")) in kept
                }

            removed = len(raw) - len(kept)
            if not self._write(update, "cleanup"):
                return 0

        logger.info(
            "Cleaned disk cache: before=%d after=%d", len(raw), len(kept)
        )
        return removed

    def close(self) -> None:
        """Release the backing store. The tier must not be used afterwards."""
        with self.lock:
            self._store.close()

    # ------------------------------------------------------------------ #
    # Helpers
    # ------------------------------------------------------------------ #

    def _read(self, section: str) -> dict[str, Any]:
        try:
            return self._store.get(section)
        except StoreError as exc:
            logger.error("Failed to read %s from disk cache: %s", section, exc)
            return {}

    def _write(self, update: dict[str, dict[str, Any]], action: str) -> bool:
        try:
            self._store.update(update)
        except StoreError as exc:
            logger.error("Failed to %s in disk cache: %s", action, exc)
            return False
        return True

    def _parse_entry(self, key: str, data: Any) -> Optional[CacheEntry]:
        try:
            return CacheEntry.model_validate(data)
        except ValidationError:
            logger.debug("Ignoring malformed disk entry %s", key)
            return None
