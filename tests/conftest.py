"""Shared test fixtures for foxdoc.

Provides isolated config environments, output state management, a CLI
runner, a controllable clock, and factories for cache entries and cache
instances. Discovered automatically by pytest.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Callable, Optional

import pytest

from foxdoc.cache import HybridCache
from foxdoc.cache.store import JsonDocumentStore
from foxdoc.models import CacheConfig, CacheEntry, CacheMetadata
from foxdoc.output import OutputFormat, OutputManager, reset_output, set_output


# ---------------------------------------------------------------------------
# Auto-reset global output state between tests
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def _reset_output_between_tests() -> None:
    """Reset the global OutputManager after every test.

    The manager keeps references to the streams that were current when it
    was created; CliRunner swaps those out, so a fresh one is needed.
    """
    yield
    reset_output()


@pytest.fixture(autouse=True)
def _reset_logging_between_tests() -> None:
    """Undo :func:`foxdoc.logging.setup_logging` so caplog sees records again."""
    yield
    logger = logging.getLogger("foxdoc")
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
    logger.setLevel(logging.NOTSET)
    logger.propagate = True


# ---------------------------------------------------------------------------
# Config isolation fixture
# ---------------------------------------------------------------------------


@pytest.fixture
def isolated_config(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Point XDG directories at tmp_path and clear FOXDOC_* variables.

    Returns:
        The tmp_path root directory.
    """
    monkeypatch.setattr("foxdoc.config._is_xdg_platform", lambda: True)
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "config"))
    monkeypatch.setenv("XDG_DATA_HOME", str(tmp_path / "data"))

    for var in [
        "FOXDOC_API_KEY",
        "FOXDOC_CACHE_ENABLED",
        "FOXDOC_CACHE_PERSISTENT",
        "FOXDOC_CACHE_TTL",
        "FOXDOC_CACHE_MAX_SIZE",
        "FOXDOC_CACHE_PERSISTENT_MAX_SIZE",
        "FOXDOC_CACHE_SYNC_INTERVAL",
        "APIFOX_API_KEY",
    ]:
        monkeypatch.delenv(var, raising=False)

    monkeypatch.chdir(tmp_path)
    return tmp_path


# ---------------------------------------------------------------------------
# Output fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def quiet_output() -> OutputManager:
    """Install a quiet PLAIN-format output manager."""
    output = OutputManager(format=OutputFormat.PLAIN, quiet=True)
    set_output(output)
    yield output
    reset_output()


@pytest.fixture
def cli_runner():
    """Typer CLI test runner."""
    from typer.testing import CliRunner

    return CliRunner()


# ---------------------------------------------------------------------------
# Cache fixtures
# ---------------------------------------------------------------------------


class FakeClock:
    """Manually advanced replacement for :func:`time.time`."""

    def __init__(self, start: float = 1_700_000_000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def make_entry(clock: FakeClock) -> Callable[..., CacheEntry]:
    """Factory for cache entries stamped with the fake clock's current time."""

    def _make(
        api_id: int = 42,
        project_id: str = "1",
        name: str = "Login",
        path: str = "/login",
        method: str = "POST",
        source_url: Optional[str] = None,
        cached_at: Optional[float] = None,
        document: Optional[dict[str, Any]] = None,
    ) -> CacheEntry:
        return CacheEntry(
            document=document
            or {"openapi": "3.1.0", "paths": {path: {method.lower(): {"summary": name}}}},
            metadata=CacheMetadata(
                api_id=api_id,
                project_id=project_id,
                name=name,
                path=path,
                method=method,
                source_url=source_url,
                cached_at=clock() if cached_at is None else cached_at,
            ),
        )

    return _make


@pytest.fixture
def cache_file(tmp_path: Path) -> Path:
    return tmp_path / "store" / "cache.json"


@pytest.fixture
def make_cache(cache_file: Path, clock: FakeClock):
    """Factory for caches backed by a JSON store at ``cache_file``.

    The periodic flush timer is not started; tests drive persistence with
    ``wait_idle()``. Every cache created is shut down at teardown.
    """
    created: list[HybridCache] = []

    def _make(persistent: bool = True, **overrides: Any) -> HybridCache:
        config = CacheConfig(persistent_enabled=persistent, **overrides)
        store = JsonDocumentStore(cache_file) if persistent else None
        cache = HybridCache(config, store=store, clock=clock, autostart=False)
        created.append(cache)
        return cache

    yield _make
    for cache in created:
        cache.shutdown(timeout=5)
