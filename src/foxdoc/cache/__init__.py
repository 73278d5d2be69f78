"""Hybrid memory-plus-disk cache for exported API documents.

:class:`HybridCache` is the only entry point most callers need. It is
consumed by :class:`~foxdoc.service.DocumentService` and configured by the
``cache`` section of the global configuration
(:class:`~foxdoc.models.CacheConfig`).
"""

from foxdoc.cache.hybrid import HybridCache

__all__ = ["HybridCache"]
