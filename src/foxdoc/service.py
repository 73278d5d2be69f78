"""Cache-through access to exported API documents.

:class:`DocumentService` is what the CLI talks to. It sits between the
:class:`~foxdoc.client.ApifoxClient` and the
:class:`~foxdoc.cache.HybridCache`: single-endpoint exports are answered
from the cache when possible and stored in it after a fetch. Exports of a
wider scope (whole project, folders, tags, several endpoints) always go to
the API and are never cached.
"""

from __future__ import annotations

import logging
import time
from typing import Callable, Optional

from foxdoc.cache import HybridCache
from foxdoc.client import ApifoxClient
from foxdoc.exceptions import InvalidUsageError
from foxdoc.links import parse_api_link
from foxdoc.metadata import extract_metadata
from foxdoc.models import CacheEntry, ExportOptions, ExportResult

logger = logging.getLogger(__name__)


class DocumentService:
    """Fetch documents through the cache.

    Args:
        client: An entered :class:`~foxdoc.client.ApifoxClient`.
        cache: The cache to read from and write to.
        clock: Source of ``cached_at`` for new entries.
    """

    def __init__(
        self,
        client: ApifoxClient,
        cache: HybridCache,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._client = client
        self._cache = cache
        self._clock = clock

    @property
    def cache(self) -> HybridCache:
        return self._cache

    def export_openapi(
        self,
        project_id: str,
        options: ExportOptions,
        url: Optional[str] = None,
    ) -> ExportResult:
        """Export a document, consulting the cache for single endpoints.

        For a single-endpoint scope the cache is looked up by endpoint id
        only, so one export counts one hit or one miss. *url* is recorded on
        the new entry for later URL lookups. On a miss the document is fetched, its metadata
        extracted and the entry cached. A document with no operations is
        returned but not cached.

        Raises:
            FoxdocError: Whatever the client raises on a failed fetch.
        """
        api_id = options.scope.single_endpoint
        if api_id is not None:
            hit = self._cache.get_by_primary(project_id, api_id)
            if hit is not None:
                return ExportResult(document=hit.entry.document, from_cache=True, tier=hit.tier)

        document = self._client.export_openapi(project_id, options)

        if api_id is not None:
            metadata = extract_metadata(document, project_id, api_id, url, clock=self._clock)
            if metadata is None:
                logger.debug("Export of %s:%s has no operations, not caching", project_id, api_id)
            else:
                self._cache.put(CacheEntry(document=document, metadata=metadata))
        return ExportResult(document=document)

    def fetch_link(self, url: str) -> ExportResult:
        """Export the endpoint a share link points to.

        Raises:
            InvalidUsageError: If *url* is not an endpoint share link.
        """
        link = parse_api_link(url)
        if link is None:
            raise InvalidUsageError(f"Not an Apifox endpoint link: {url}")
        return self.export_openapi(
            link.project_id, ExportOptions.for_endpoint(link.api_id), url=url
        )

    def refresh(self, url: str) -> tuple[bool, ExportResult]:
        """Drop the cached copy behind *url* and fetch it again.

        Returns:
            ``(cleared, result)`` where *cleared* says whether anything was
            cached before.
        """
        link = parse_api_link(url)
        if link is None:
            raise InvalidUsageError(f"Not an Apifox endpoint link: {url}")
        cleared = self._cache.clear_by_url(url)
        if not cleared:
            cleared = self._cache.clear_one(link.project_id, link.api_id)
        return cleared, self.fetch_link(url)
