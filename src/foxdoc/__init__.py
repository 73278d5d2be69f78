"""foxdoc -- Fetch and cache API documentation from schema-export services.

This package talks to a remote schema-export API (Apifox's
``export-openapi`` endpoint), and keeps every exported single-endpoint
document in a hybrid two-tier cache: a bounded in-memory LRU tier in front
of a durable on-disk tier that is synchronised in the background.

Typical workflow::

    foxdoc fetch https://app.apifox.com/link/project/1/apis/api-42
    foxdoc cache stats
    foxdoc cache clear --project 1

Modules:
    app: Typer application factory and CLI entry point.
    models: Pydantic models shared across the entire package.
    config: XDG-aware configuration and precedence resolution.
    cache: The hybrid memory/disk document cache.
    client: HTTP client for the schema-export API.
    service: Cache-through document export.
    exceptions: Exception hierarchy with exit-code mapping.
    output: stdout/stderr formatting system with Rich support.
"""

__version__ = "0.1.0"
