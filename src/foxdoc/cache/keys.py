"""Deterministic cache keys for the four lookup dimensions.

Every key carries a namespace prefix so primary keys and index keys can
share one key space without clashing::

    api:<project>:<api_id>          primary key (entry storage)
    url:<16 hex chars>              MD5 fingerprint of the raw share URL
    name:<project>:<name>           trimmed, lower-cased endpoint name
    path:<project>:<METHOD>:<path>  upper-cased method, verbatim path

URL fingerprints are truncated to 64 bits and have no collision chain; two
URLs with the same fingerprint resolve to the same entry.
"""

from __future__ import annotations

import hashlib

PRIMARY_PREFIX = "api"
URL_PREFIX = "url"
NAME_PREFIX = "name"
PATH_PREFIX = "path"

_URL_HASH_WIDTH = 16


def primary_key(project_id: str, api_id: int) -> str:
    """Storage key of one endpoint entry, e.g. ``api:3189010:42``."""
    return f"{PRIMARY_PREFIX}:{project_id}:{api_id}"


def project_prefix(project_id: str) -> str:
    """Prefix shared by the primary keys of every entry in *project_id*."""
    return f"{PRIMARY_PREFIX}:{project_id}:"


def url_key(url: str) -> str:
    """Fingerprint key of a share URL.

    The URL is hashed verbatim (no normalisation), so two spellings of the
    same link are two keys.
    """
    digest = hashlib.md5(url.encode("utf-8")).hexdigest()[:_URL_HASH_WIDTH]
    return f"{URL_PREFIX}:{digest}"


def name_key(project_id: str, name: str) -> str:
    """Name index key; the name is trimmed and lower-cased."""
    normalized = name.strip().lower()
    return f"{NAME_PREFIX}:{project_id}:{normalized}"


def path_key(project_id: str, method: str, path: str) -> str:
    """Path index key. The method is upper-cased; *path* is used verbatim."""
    # Paths are not normalised: "/users" and "/users/" are different keys.
    return f"{PATH_PREFIX}:{project_id}:{method.upper()}:{path}"
