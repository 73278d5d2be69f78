"""Backing stores for the persisted cache document.

The disk tier persists one structured record with four top-level maps::

    {
      "entries":   {"api:<project>:<id>": CacheEntry, ...},
      "urlIndex":  {"url:<hash>": IndexEntry, ...},
      "nameIndex": {"name:<project>:<name>": IndexEntry, ...},
      "pathIndex": {"path:<project>:<METHOD>:<path>": IndexEntry, ...}
    }

A :class:`DocumentStore` exposes that record section by section: callers
``get`` a whole map, modify it, and ``set`` it back (or ``update`` several
maps in one write). There are no finer-grained transactions; the disk tier
serialises every read-modify-write under its own lock.

Two implementations are provided:

* :class:`JsonDocumentStore` -- the default. Holds the record in process
  memory and rewrites a single JSON file atomically on every change.
* :class:`DiskcacheDocumentStore` -- keeps each section as one value in a
  :class:`diskcache.Cache` directory (SQLite-backed).

Both validate the stored record against :class:`~foxdoc.models.CacheDocument`
when opened. A record that fails validation is set aside and replaced by an
empty one; a store that cannot be opened at all raises
:class:`~foxdoc.exceptions.StoreError`.
"""

from __future__ import annotations

import json
import logging
import os
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any

import diskcache

from foxdoc.config import atomic_write
from foxdoc.exceptions import StoreError
from foxdoc.models import CacheDocument

logger = logging.getLogger(__name__)

ENTRIES = "entries"
URL_INDEX = "urlIndex"
NAME_INDEX = "nameIndex"
PATH_INDEX = "pathIndex"

SECTIONS: tuple[str, ...] = (ENTRIES, URL_INDEX, NAME_INDEX, PATH_INDEX)
INDEX_SECTIONS: tuple[str, ...] = (URL_INDEX, NAME_INDEX, PATH_INDEX)


def empty_document() -> dict[str, dict[str, Any]]:
    return {section: {} for section in SECTIONS}


def _check_section(section: str) -> None:
    if section not in SECTIONS:
        raise KeyError(f"Unknown cache document section: {section!r}")


def _validate(data: Any) -> dict[str, dict[str, Any]]:
    """Validate a raw record and return it as plain JSON-compatible dicts.

    Raises:
        ValueError: If *data* does not match the cache document shape.
    """
    if not isinstance(data, dict):
        raise ValueError(f"expected an object, got {type(data).__name__}")
    unknown = set(data) - set(SECTIONS)
    if unknown:
        raise ValueError(f"unknown sections: {sorted(unknown)}")
    doc = CacheDocument.model_validate(data)
    return doc.model_dump(mode="json", by_alias=True)


class DocumentStore(ABC):
    """Section-addressed access to the persisted cache document."""

    @property
    @abstractmethod
    def location(self) -> Path:
        """Filesystem path of the store (file or directory)."""

    @abstractmethod
    def get(self, section: str) -> dict[str, Any]:
        """Return a copy of one top-level map."""

    @abstractmethod
    def update(self, sections: dict[str, dict[str, Any]]) -> None:
        """Replace one or more top-level maps and persist the result.

        Raises:
            StoreError: If the record could not be written.
        """

    def set(self, section: str, value: dict[str, Any]) -> None:
        self.update({section: value})

    def reset(self) -> None:
        """Replace every map with an empty one."""
        self.update(empty_document())

    def close(self) -> None:
        """Release any resources held by the store."""


class JsonDocumentStore(DocumentStore):
    """Cache document kept in memory and mirrored to one JSON file.

    The file is read once when the store is opened. Every :meth:`update`
    serialises the whole record and replaces the file atomically (temp file
    plus rename), so a crash never leaves a half-written document behind.

    Args:
        path: Location of the JSON file. Parent directories are created.

    Raises:
        StoreError: If the directory is not writable or the file cannot be
            read.
    """

    def __init__(self, path: str | Path) -> None:
        self._path = Path(path)
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise StoreError(f"Cannot create cache directory {self._path.parent}: {exc}") from exc
        if not os.access(self._path.parent, os.W_OK):
            raise StoreError(f"Cache directory is not writable: {self._path.parent}")
        self._data = self._load()

    @property
    def location(self) -> Path:
        return self._path

    def get(self, section: str) -> dict[str, Any]:
        _check_section(section)
        return dict(self._data[section])

    def update(self, sections: dict[str, dict[str, Any]]) -> None:
        for section in sections:
            _check_section(section)
        data = {**self._data, **{k: dict(v) for k, v in sections.items()}}
        try:
            atomic_write(self._path, json.dumps(data, ensure_ascii=False) + "\n")
        except (OSError, TypeError, ValueError) as exc:
            raise StoreError(f"Failed to write cache document {self._path}: {exc}") from exc
        self._data = data

    def _load(self) -> dict[str, dict[str, Any]]:
        if not self._path.is_file():
            return empty_document()
        try:
            text = self._path.read_text(encoding="utf-8")
        except OSError as exc:
            raise StoreError(f"Cannot read cache document {self._path}: {exc}") from exc
        try:
            return _validate(json.loads(text))
        except (json.JSONDecodeError, ValueError) as exc:
            self._set_aside(exc)
            return empty_document()

    def _set_aside(self, reason: Exception) -> None:
        corrupt = self._path.with_name(self._path.name + ".corrupt")
        logger.warning(
            "Cache document %s is malformed (%s); starting empty, old file kept at %s",
            self._path,
            reason,
            corrupt,
        )
        try:
            os.replace(self._path, corrupt)
        except OSError as exc:
            logger.warning("Could not move malformed cache document aside: %s", exc)


class DiskcacheDocumentStore(DocumentStore):
    """Cache document stored as four values in a :class:`diskcache.Cache`.

    Each top-level map is one diskcache key. Multi-section updates run in a
    single diskcache transaction.

    Args:
        directory: Directory for the diskcache database.

    Raises:
        StoreError: If the diskcache database cannot be opened.
    """

    def __init__(self, directory: str | Path) -> None:
        self._directory = Path(directory)
        try:
            self._cache = diskcache.Cache(str(self._directory))
        except Exception as exc:
            raise StoreError(f"Cannot open cache store at {self._directory}: {exc}") from exc
        self._check_existing()

    @property
    def location(self) -> Path:
        return self._directory

    def get(self, section: str) -> dict[str, Any]:
        _check_section(section)
        try:
            value = self._cache.get(section, default=None)
        except Exception as exc:
            raise StoreError(f"Cannot read section {section!r}: {exc}") from exc
        return dict(value) if value else {}

    def update(self, sections: dict[str, dict[str, Any]]) -> None:
        for section in sections:
            _check_section(section)
        try:
            with self._cache.transact():
                for section, value in sections.items():
                    self._cache.set(section, dict(value))
        except Exception as exc:
            raise StoreError(f"Failed to write cache store {self._directory}: {exc}") from exc

    def close(self) -> None:
        self._cache.close()

    def _check_existing(self) -> None:
        try:
            raw = {s: self._cache.get(s) for s in SECTIONS if s in self._cache}
        except Exception as exc:
            raise StoreError(f"Cannot read cache store {self._directory}: {exc}") from exc
        try:
            _validate(raw)
        except ValueError as exc:
            logger.warning(
                "Cache store %s is malformed (%s); starting empty", self._directory, exc
            )
            self.reset()


def open_store(backend: str, config_dir: Path) -> DocumentStore:
    """Open the document store selected by ``CacheConfig.store_backend``.

    Args:
        backend: ``"json"`` or ``"diskcache"``.
        config_dir: Per-user configuration directory holding the store.

    Raises:
        StoreError: If the backend is unknown or the store cannot be opened.
    """
    if backend == "json":
        return JsonDocumentStore(config_dir / "cache.json")
    if backend == "diskcache":
        return DiskcacheDocumentStore(config_dir / "cache")
    raise StoreError(f"Unknown cache store backend: {backend!r}")
