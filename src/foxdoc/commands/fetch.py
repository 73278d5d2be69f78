"""Fetch commands -- print an endpoint's document from a share link.

``foxdoc fetch URL`` answers from the cache when it can and reports on
stderr where the document came from. ``foxdoc refresh URL`` drops the
cached copy first, so the document is always fetched again.
"""

from __future__ import annotations

import typer

from foxdoc.models import ExportResult
from foxdoc.output import info, print_document, success


def _report_source(result: ExportResult) -> None:
    if result.from_cache and result.tier is not None:
        info(f"Served from cache ({result.tier.value})")
    else:
        info("Fetched from Apifox")


def fetch_command(
    ctx: typer.Context,
    url: str = typer.Argument(
        help="Apifox endpoint link, e.g. https://app.apifox.com/link/project/1/apis/api-42."
    ),
    yaml_output: bool = typer.Option(False, "--yaml", help="Print the document as YAML."),
) -> None:
    """Fetch the OpenAPI document of one endpoint.

    Example::

        foxdoc fetch https://app.apifox.com/link/project/3189010/apis/api-362821568
        foxdoc --memory-only fetch <url> --yaml
    """
    from foxdoc.config import load_global_config
    from foxdoc.runtime import cache_session, open_client
    from foxdoc.service import DocumentService

    config = load_global_config()
    with cache_session(ctx.obj, config) as cache, open_client(ctx.obj, config) as client:
        result = DocumentService(client, cache).fetch_link(url)

    _report_source(result)
    print_document(result.document, as_yaml=yaml_output)


def refresh_command(
    ctx: typer.Context,
    url: str = typer.Argument(help="Apifox endpoint link to re-fetch."),
    yaml_output: bool = typer.Option(False, "--yaml", help="Print the document as YAML."),
) -> None:
    """Discard the cached document for a link and fetch it again.

    Example::

        foxdoc refresh https://app.apifox.com/link/project/3189010/apis/api-362821568
    """
    from foxdoc.config import load_global_config
    from foxdoc.runtime import cache_session, open_client
    from foxdoc.service import DocumentService

    config = load_global_config()
    with cache_session(ctx.obj, config) as cache, open_client(ctx.obj, config) as client:
        cleared, result = DocumentService(client, cache).refresh(url)

    if cleared:
        success("Cleared cached copy")
    _report_source(result)
    print_document(result.document, as_yaml=yaml_output)
