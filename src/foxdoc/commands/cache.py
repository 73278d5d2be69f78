"""Cache commands -- statistics, lookup and clearing.

Provides the ``foxdoc cache`` sub-command group. Every command opens the
cache with the same flags and environment as ``fetch`` (so
``--memory-only`` shows an empty, disk-less cache) and shuts it down,
flushing pending writes, before returning.
"""

from __future__ import annotations

from typing import Optional

import typer

from foxdoc.output import error, format_response, info, success


cache_app = typer.Typer(no_args_is_help=True)


@cache_app.command("stats")
def cache_stats(ctx: typer.Context) -> None:
    """Show cache occupancy and hit rates.

    Counters start at zero for each invocation; sizes reflect what was
    loaded from disk.

    Example::

        foxdoc cache stats
        foxdoc --json cache stats
    """
    from foxdoc.output import OutputFormat, get_output, print_table
    from foxdoc.runtime import cache_session

    with cache_session(ctx.obj) as cache:
        if not cache.enabled:
            info("Caching is disabled.")
        stats = cache.stats()

    if get_output().format == OutputFormat.JSON:
        format_response(stats.model_dump(mode="json"))
        return

    memory = stats.memory
    rows = [["memory", str(memory.size), str(memory.max), str(memory.hits), f"{memory.hit_rate}%"]]
    if stats.disk is not None:
        disk = stats.disk
        rows.append(["disk", str(disk.size), str(disk.max), str(disk.hits), ""])
    print_table(["tier", "size", "max", "hits", "hit rate"], rows, title="Document cache")
    info(
        f"Misses: {memory.misses}. Indexes: url {stats.indexes.url}, "
        f"name {stats.indexes.name}, path {stats.indexes.path}"
    )


@cache_app.command("clear")
def cache_clear(
    ctx: typer.Context,
    project: Optional[str] = typer.Option(
        None, "--project", "-p", help="Only clear entries of this project id."
    ),
) -> None:
    """Clear cached documents, for one project or entirely.

    Clearing everything asks for confirmation unless ``--force`` is given.

    Example::

        foxdoc cache clear --project 3189010
        foxdoc --force cache clear
    """
    from foxdoc.runtime import cache_session

    force = ctx.obj.get("force", False) if ctx.obj else False
    if project is None and not force:
        if not typer.confirm("Clear the entire document cache?"):
            info("Cancelled.")
            raise typer.Exit()

    with cache_session(ctx.obj) as cache:
        if project is not None:
            count = cache.clear_project(project)
            success(f"Cleared {count} cached documents for project {project}")
        else:
            cache.clear_all()
            success("Cleared the document cache")


@cache_app.command("find")
def cache_find(
    ctx: typer.Context,
    name: Optional[str] = typer.Option(
        None, "--name", help="Endpoint name (exact, then substring match)."
    ),
    path: Optional[str] = typer.Option(None, "--path", help="Endpoint path, e.g. /users."),
    method: str = typer.Option("GET", "--method", "-m", help="HTTP method for --path."),
    project: Optional[str] = typer.Option(
        None, "--project", "-p", help="Project id (defaults to api.default_project_id)."
    ),
) -> None:
    """Look a cached document up by endpoint name or path.

    Never contacts the API. Exits with code 4 when nothing matches.

    Example::

        foxdoc cache find --name "get user" --project 3189010
        foxdoc cache find --path /login --method POST -p 3189010
    """
    from foxdoc.config import load_global_config
    from foxdoc.exit_codes import EXIT_INVALID_USAGE, EXIT_NOT_FOUND
    from foxdoc.output import print_document
    from foxdoc.runtime import cache_session

    if (name is None) == (path is None):
        error("Give exactly one of --name or --path")
        raise typer.Exit(code=EXIT_INVALID_USAGE)

    config = load_global_config()
    project_id = project or config.api.default_project_id
    if not project_id:
        error("No project id. Pass --project or set api.default_project_id")
        raise typer.Exit(code=EXIT_INVALID_USAGE)

    with cache_session(ctx.obj, config) as cache:
        if name is not None:
            hit = cache.get_by_name(project_id, name)
        else:
            assert path is not None
            hit = cache.get_by_path(project_id, method, path)

    if hit is None:
        error("No cached document matches")
        raise typer.Exit(code=EXIT_NOT_FOUND)

    meta = hit.entry.metadata
    info(f"{meta.method} {meta.path} ({meta.name}) from {hit.tier.value}")
    print_document(hit.entry.document)
