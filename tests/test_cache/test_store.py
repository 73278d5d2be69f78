"""Tests for the JSON and diskcache document stores."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from foxdoc.cache.store import (
    ENTRIES,
    NAME_INDEX,
    URL_INDEX,
    DiskcacheDocumentStore,
    JsonDocumentStore,
    open_store,
)
from foxdoc.exceptions import StoreError


POINTER = {"projectId": "1", "apiId": 42}


@pytest.fixture(params=["json", "diskcache"])
def store_factory(request, tmp_path: Path):
    """Open (and re-open) a store of each backend at a fixed location."""
    opened = []

    def _open():
        if request.param == "json":
            store = JsonDocumentStore(tmp_path / "cache.json")
        else:
            store = DiskcacheDocumentStore(tmp_path / "cache")
        opened.append(store)
        return store

    yield _open
    for store in opened:
        store.close()


class TestSections:
    def test_new_store_is_empty(self, store_factory) -> None:
        store = store_factory()
        assert store.get(ENTRIES) == {}
        assert store.get(URL_INDEX) == {}

    def test_set_and_get(self, store_factory) -> None:
        store = store_factory()
        store.set(URL_INDEX, {"url:abc": POINTER})
        assert store.get(URL_INDEX) == {"url:abc": POINTER}

    def test_get_returns_a_copy(self, store_factory) -> None:
        store = store_factory()
        store.set(NAME_INDEX, {"name:1:login": POINTER})
        store.get(NAME_INDEX).clear()
        assert store.get(NAME_INDEX) == {"name:1:login": POINTER}

    def test_unknown_section_rejected(self, store_factory) -> None:
        store = store_factory()
        with pytest.raises(KeyError):
            store.get("bogus")

    def test_update_several_sections(self, store_factory) -> None:
        store = store_factory()
        store.update({URL_INDEX: {"url:a": POINTER}, NAME_INDEX: {"name:1:x": POINTER}})
        assert store.get(URL_INDEX) == {"url:a": POINTER}
        assert store.get(NAME_INDEX) == {"name:1:x": POINTER}

    def test_reset(self, store_factory) -> None:
        store = store_factory()
        store.set(URL_INDEX, {"url:a": POINTER})
        store.reset()
        assert store.get(URL_INDEX) == {}

    def test_survives_reopen(self, store_factory) -> None:
        store = store_factory()
        store.set(URL_INDEX, {"url:a": POINTER})
        store.close()
        assert store_factory().get(URL_INDEX) == {"url:a": POINTER}


class TestJsonStore:
    def test_file_layout(self, tmp_path: Path) -> None:
        path = tmp_path / "cache.json"
        JsonDocumentStore(path).set(URL_INDEX, {"url:a": POINTER})
        data = json.loads(path.read_text())
        assert set(data) == {"entries", "urlIndex", "nameIndex", "pathIndex"}
        assert data["urlIndex"] == {"url:a": POINTER}

    def test_malformed_file_is_set_aside(self, tmp_path: Path) -> None:
        path = tmp_path / "cache.json"
        path.write_text("{not json")
        store = JsonDocumentStore(path)
        assert store.get(ENTRIES) == {}
        assert (tmp_path / "cache.json.corrupt").read_text() == "{not json"

    def test_wrong_shape_is_set_aside(self, tmp_path: Path) -> None:
        path = tmp_path / "cache.json"
        path.write_text(json.dumps({"entries": {"api:1:1": {"document": 5}}}))
        store = JsonDocumentStore(path)
        assert store.get(ENTRIES) == {}
        assert (tmp_path / "cache.json.corrupt").exists()

    def test_unknown_section_in_file_is_set_aside(self, tmp_path: Path) -> None:
        path = tmp_path / "cache.json"
        path.write_text(json.dumps({"extra": {}}))
        JsonDocumentStore(path)
        assert (tmp_path / "cache.json.corrupt").exists()

    def test_unwritable_directory(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr("foxdoc.cache.store.os.access", lambda *a: False)
        with pytest.raises(StoreError):
            JsonDocumentStore(tmp_path / "cache.json")

    def test_write_failure_raises_store_error(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        store = JsonDocumentStore(tmp_path / "cache.json")

        def _fail(*args, **kwargs):
            raise OSError("disk full")

        monkeypatch.setattr("foxdoc.cache.store.atomic_write", _fail)
        with pytest.raises(StoreError):
            store.set(URL_INDEX, {"url:a": POINTER})
        assert store.get(URL_INDEX) == {}


class TestDiskcacheStore:
    def test_malformed_section_resets(self, tmp_path: Path) -> None:
        import diskcache

        with diskcache.Cache(str(tmp_path / "cache")) as raw:
            raw.set("urlIndex", {"url:a": "not a pointer"})
        store = DiskcacheDocumentStore(tmp_path / "cache")
        assert store.get(URL_INDEX) == {}
        store.close()


class TestOpenStore:
    def test_json_backend(self, tmp_path: Path) -> None:
        store = open_store("json", tmp_path)
        assert store.location == tmp_path / "cache.json"

    def test_diskcache_backend(self, tmp_path: Path) -> None:
        store = open_store("diskcache", tmp_path)
        assert store.location == tmp_path / "cache"
        store.close()

    def test_unknown_backend(self, tmp_path: Path) -> None:
        with pytest.raises(StoreError):
            open_store("redis", tmp_path)
