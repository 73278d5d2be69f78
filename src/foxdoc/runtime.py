"""Per-invocation resources shared by the CLI commands.

A command that needs the cache opens it through :func:`cache_session`,
which registers it as the process's active cache. The signal handlers in
:mod:`foxdoc.app` call :func:`close_cache` so that an interrupted command
still flushes pending writes before the process exits.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any, Optional

from foxdoc.cache import HybridCache
from foxdoc.client import ApifoxClient
from foxdoc.config import (
    get_config_dir,
    load_global_config,
    resolve_cache_config,
    resolve_token,
)
from foxdoc.models import GlobalConfig

logger = logging.getLogger(__name__)

_active_cache: Optional[HybridCache] = None


def _options(obj: Optional[dict[str, Any]]) -> dict[str, Any]:
    return obj or {}


def open_cache(obj: Optional[dict[str, Any]], config: Optional[GlobalConfig] = None) -> HybridCache:
    """Open the cache with CLI flags and environment applied, and register it."""
    global _active_cache
    options = _options(obj)
    config = config or load_global_config()
    cache_config = resolve_cache_config(
        config.cache,
        no_cache=options.get("no_cache", False),
        memory_only=options.get("memory_only", False),
    )
    _active_cache = HybridCache.open(cache_config, get_config_dir())
    return _active_cache


def close_cache() -> None:
    """Shut the active cache down, if any. Safe to call repeatedly."""
    global _active_cache
    cache, _active_cache = _active_cache, None
    if cache is not None and not cache.shutdown():
        logger.warning("Some cache writes were not persisted before exit")


def active_cache() -> Optional[HybridCache]:
    return _active_cache


@contextmanager
def cache_session(
    obj: Optional[dict[str, Any]], config: Optional[GlobalConfig] = None
) -> Iterator[HybridCache]:
    cache = open_cache(obj, config)
    try:
        yield cache
    finally:
        close_cache()


def open_client(obj: Optional[dict[str, Any]], config: GlobalConfig) -> ApifoxClient:
    """Build an (unentered) API client using the resolved token."""
    token = resolve_token(config.api, _options(obj).get("token"))
    return ApifoxClient(config.api, token)
