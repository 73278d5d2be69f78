"""Derive cache metadata from an exported single-endpoint document.

An export scoped to one endpoint yields an OpenAPI document whose
``paths`` map holds that endpoint. :func:`extract_metadata` walks the
document to find it and builds the :class:`~foxdoc.models.CacheMetadata`
the cache indexes by name and path.
"""

from __future__ import annotations

import time
from collections.abc import Mapping
from typing import Any, Callable, Optional

from foxdoc.models import CacheMetadata

HTTP_METHODS = frozenset(
    {"get", "put", "post", "delete", "options", "head", "patch", "trace"}
)


def first_operation(document: Mapping[str, Any]) -> Optional[tuple[str, str, Mapping[str, Any]]]:
    """Return ``(path, method, operation)`` for the first operation in *document*.

    Path items are visited in document order. Keys that are not HTTP
    methods (``parameters``, ``summary``, ``$ref``, vendor extensions) and
    nodes that are not mappings are skipped.
    """
    paths = document.get("paths")
    if not isinstance(paths, Mapping):
        return None
    for path, item in paths.items():
        if not isinstance(item, Mapping):
            continue
        for method, operation in item.items():
            if str(method).lower() in HTTP_METHODS and isinstance(operation, Mapping):
                return str(path), str(method), operation
    return None


def extract_metadata(
    document: Mapping[str, Any],
    project_id: str,
    api_id: int,
    url: Optional[str] = None,
    clock: Callable[[], float] = time.time,
) -> Optional[CacheMetadata]:
    """Build cache metadata for an exported endpoint.

    The name is the operation's ``summary``, else its ``operationId``, else
    the path.

    Args:
        document: The exported OpenAPI document.
        project_id: Project the endpoint belongs to.
        api_id: Endpoint id the export was scoped to.
        url: Share link the export was requested through, if any.
        clock: Source of ``cached_at``.

    Returns:
        The metadata, or ``None`` when the document has no operations.
    """
    found = first_operation(document)
    if found is None:
        return None
    path, method, operation = found

    name = operation.get("summary") or operation.get("operationId") or path
    return CacheMetadata(
        api_id=api_id,
        project_id=project_id,
        name=str(name),
        path=path,
        method=method.upper(),
        source_url=url,
        cached_at=clock(),
    )
