"""Parse Apifox share links into project and endpoint ids."""

from __future__ import annotations

import re
from typing import Optional

from foxdoc.models import ApiLink

_LINK_RE = re.compile(
    r"(?:https?://)?app\.apifox\.com/link/project/(\d+)/apis/api-(\d+)",
    re.IGNORECASE,
)


def parse_api_link(url: str) -> Optional[ApiLink]:
    """Extract ``(project_id, api_id)`` from a share link.

    The scheme is optional and matching is case-insensitive; anything after
    the endpoint id (query string, fragment) is ignored.

    Returns:
        The parsed link, or ``None`` if *url* is not an endpoint share link.

    Example::

        >>> parse_api_link("https://app.apifox.com/link/project/3189010/apis/api-362821568")
        ApiLink(project_id='3189010', api_id=362821568)
    """
    match = _LINK_RE.search(url)
    if match is None:
        return None
    return ApiLink(project_id=match.group(1), api_id=int(match.group(2)))
