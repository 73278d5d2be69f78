"""Canonical Pydantic models shared across all foxdoc modules.

This is the single source of truth for data shapes in the project. Every other
module imports from here rather than defining its own models. The models fall
into three groups:

**Configuration models** -- serialised as JSON in the user's config directory:
    :class:`CacheConfig`, :class:`ApiConfig`, and :class:`GlobalConfig`.

**Cache models** -- what the hybrid cache stores, persists, and reports:
    :class:`CacheMetadata`, :class:`CacheEntry`, :class:`IndexEntry`,
    :class:`CacheDocument`, :class:`CacheTier`, :class:`CacheHit`, and the
    :class:`CacheStats` snapshot.

**Export models** -- request and response shapes of the schema-export API:
    :class:`ScopeType`, :class:`ExportScope`, :class:`ExportOptions`,
    :class:`ApiLink`, and :class:`ExportResult`.

Cache and export models serialise with camelCase aliases (``projectId``,
``cachedAt``, ``urlIndex``) because that is the layout of the persisted
cache document and of the export API's request body. Both accept snake_case
field names on construction.
"""

from __future__ import annotations

import enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, computed_field
from pydantic.alias_generators import to_camel


# --- Configuration ---


class CacheConfig(BaseModel):
    """Hybrid cache settings stored in :class:`GlobalConfig`.

    Every field can be overridden through a ``FOXDOC_CACHE_*`` environment
    variable or a CLI flag; see :func:`~foxdoc.config.resolve_cache_config`.
    """

    enabled: bool = Field(default=True, description="Enable document caching")
    persistent_enabled: bool = Field(
        default=True, description="Persist cached documents to disk"
    )
    ttl_seconds: float = Field(
        default=3600, gt=0, description="Entry lifetime measured from cached_at"
    )
    memory_max_entries: int = Field(
        default=200, ge=1, description="Memory tier capacity (entries)"
    )
    disk_max_entries: int = Field(
        default=500, ge=1, description="Disk tier capacity enforced by cleanup"
    )
    sync_interval_seconds: float = Field(
        default=30, gt=0, description="Interval between dirty-key flushes"
    )
    index_capacity_factor: int = Field(
        default=2,
        ge=1,
        description="Index capacity as a multiple of memory_max_entries",
    )
    expired_cleanup_ratio: float = Field(
        default=0.0,
        ge=0.0,
        le=1.0,
        description="Rewrite the disk document at load when the expired fraction exceeds this",
    )
    shutdown_timeout_seconds: float = Field(
        default=5, ge=0, description="Upper bound on the final flush at shutdown"
    )
    store_backend: str = Field(
        default="json", description="Disk document store: json or diskcache"
    )


class ApiConfig(BaseModel):
    """Connection settings for the schema-export API."""

    base_url: str = Field(default="https://api.apifox.com")
    token_source: str = Field(
        default="env:APIFOX_API_KEY",
        description="Credential source: env:VAR, file:/path, or prompt",
    )
    api_version: str = Field(
        default="2024-03-28", description="Value of the X-Apifox-Api-Version header"
    )
    timeout: int = Field(default=30, description="Request timeout in seconds")
    verify_ssl: bool = Field(default=True, description="Verify SSL certificates")
    default_project_id: Optional[str] = None


class GlobalConfig(BaseModel):
    """User-wide configuration persisted at ``~/.config/foxdoc/config.json``.

    Loaded and saved by :func:`~foxdoc.config.load_global_config` and
    :func:`~foxdoc.config.save_global_config`. Fields here have the
    lowest precedence and can be overridden by environment variables or CLI
    flags.
    """

    api: ApiConfig = Field(default_factory=ApiConfig)
    cache: CacheConfig = Field(default_factory=CacheConfig)


# --- Cache ---


class _CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, frozen=True
    )


class CacheMetadata(_CamelModel):
    """Lookup attributes of a cached document.

    ``cached_at`` is a Unix timestamp in seconds. Expiry is always computed
    from it, so the same entry expires at the same moment in every tier.
    """

    api_id: int
    project_id: str
    name: str
    path: str
    method: str
    source_url: Optional[str] = None
    cached_at: float


class CacheEntry(_CamelModel):
    """A cached API document plus its metadata.

    Entries are immutable; a refresh replaces the whole entry.
    """

    document: dict[str, Any]
    metadata: CacheMetadata


class IndexEntry(_CamelModel):
    """Pointer from a secondary key (URL, name, path) to a primary key."""

    project_id: str
    api_id: int


class CacheDocument(_CamelModel):
    """The persisted cache record: entries plus the three secondary indexes.

    Used to validate the document a store loads from disk. A document that
    fails validation is treated as corrupt.
    """

    entries: dict[str, CacheEntry] = Field(default_factory=dict)
    url_index: dict[str, IndexEntry] = Field(default_factory=dict)
    name_index: dict[str, IndexEntry] = Field(default_factory=dict)
    path_index: dict[str, IndexEntry] = Field(default_factory=dict)


class CacheTier(str, enum.Enum):
    """The storage tier that satisfied a lookup."""

    MEMORY = "memory"
    DISK = "disk"


class CacheHit(BaseModel):
    """Successful cache resolution: the entry and the tier it came from."""

    model_config = ConfigDict(frozen=True)

    entry: CacheEntry
    tier: CacheTier


class MemoryStats(BaseModel):
    size: int
    max: int
    hits: int
    misses: int

    @computed_field  # type: ignore[prop-decorator]
    @property
    def hit_rate(self) -> float:
        """Percentage of lookups answered by the cache, rounded to one decimal."""
        total = self.hits + self.misses
        if total == 0:
            return 0.0
        return round(self.hits / total * 100, 1)


class DiskStats(BaseModel):
    size: int
    max: int
    hits: int


class IndexStats(BaseModel):
    url: int
    name: int
    path: int


class CacheStats(BaseModel):
    """Point-in-time snapshot produced by :class:`~foxdoc.cache.stats.StatsCollector`.

    ``disk`` is ``None`` when persistence is disabled or failed to start.
    """

    memory: MemoryStats
    disk: Optional[DiskStats] = None
    indexes: IndexStats


# --- Export API ---


class ScopeType(str, enum.Enum):
    """Which part of a project the export API should include."""

    ALL = "ALL"
    SELECTED_ENDPOINTS = "SELECTED_ENDPOINTS"
    SELECTED_TAGS = "SELECTED_TAGS"
    SELECTED_FOLDERS = "SELECTED_FOLDERS"


class ExportScope(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    type: ScopeType
    selected_endpoint_ids: Optional[list[int]] = None
    selected_tags: Optional[list[str]] = None
    selected_folder_ids: Optional[list[int]] = None
    excluded_by_tags: Optional[list[str]] = None

    @property
    def single_endpoint(self) -> Optional[int]:
        """The endpoint id when exactly one endpoint is selected, else ``None``.

        Only single-endpoint exports are cacheable.
        """
        if self.type != ScopeType.SELECTED_ENDPOINTS:
            return None
        ids = self.selected_endpoint_ids or []
        return ids[0] if len(ids) == 1 else None


class ExportOptions(BaseModel):
    """Request body of the ``export-openapi`` endpoint.

    Serialise with :meth:`to_request` to get the camelCase JSON body the API
    expects.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    scope: ExportScope
    options: dict[str, Any] = Field(
        default_factory=lambda: {
            "includeApifoxExtensionProperties": False,
            "addFoldersToTags": True,
        }
    )
    oas_version: str = Field(default="3.1", description="2.0, 3.0, or 3.1")
    export_format: str = Field(default="JSON", description="JSON or YAML")

    @classmethod
    def for_endpoint(cls, api_id: int) -> ExportOptions:
        return cls(
            scope=ExportScope(
                type=ScopeType.SELECTED_ENDPOINTS, selected_endpoint_ids=[api_id]
            )
        )

    def to_request(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class ApiLink(BaseModel):
    """Project and endpoint ids parsed from a share link."""

    project_id: str
    api_id: int


class ExportResult(BaseModel):
    """Outcome of :meth:`~foxdoc.service.DocumentService.export_openapi`."""

    document: dict[str, Any]
    from_cache: bool = False
    tier: Optional[CacheTier] = None
