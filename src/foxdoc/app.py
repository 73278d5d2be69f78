"""Typer application and CLI entry point for foxdoc.

This module builds the root Typer application, registers the built-in
commands (``fetch``, ``refresh``, ``cache``, ``config``) and defines
:func:`main`, the console-script entry point declared in
``pyproject.toml``.

:func:`main` installs SIGINT/SIGTERM handlers that shut the active cache
down (flushing pending disk writes within the configured budget) before
exiting. :class:`~foxdoc.exceptions.FoxdocError` exits with its own code;
anything else writes a crash log under the data directory.

See Also:
    :mod:`foxdoc.runtime`: The active cache the signal handlers close.
    :mod:`foxdoc.output`: Output formatting initialised in :func:`main_callback`.
"""

from __future__ import annotations

import signal
import sys
import traceback
from datetime import datetime
from typing import Any, Optional

import typer

from foxdoc import __version__
from foxdoc.commands.cache import cache_app
from foxdoc.commands.config import config_app
from foxdoc.commands.fetch import fetch_command, refresh_command
from foxdoc.exit_codes import EXIT_GENERIC_FAILURE


app = typer.Typer(
    name="foxdoc",
    help="Fetch and cache Apifox API documentation.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)

app.command("fetch")(fetch_command)
app.command("refresh")(refresh_command)
app.add_typer(cache_app, name="cache", help="Inspect and manage the document cache.")
app.add_typer(config_app, name="config", help="Configuration management.")


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(f"foxdoc {__version__}")
        raise typer.Exit()


@app.callback()
def main_callback(
    ctx: typer.Context,
    version: bool = typer.Option(
        False,
        "--version",
        callback=_version_callback,
        is_eager=True,
        help="Show version and exit.",
    ),
    json_output: bool = typer.Option(False, "--json", help="JSON output format."),
    plain_output: bool = typer.Option(False, "--plain", help="Plain text output."),
    no_color: bool = typer.Option(False, "--no-color", help="Disable color output."),
    quiet: bool = typer.Option(
        False, "--quiet", "-q", help="Suppress non-essential output."
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug output."),
    force: bool = typer.Option(False, "--force", "-f", help="Skip confirmations."),
    token: Optional[str] = typer.Option(
        None, "--token", help="Apifox access token (overrides FOXDOC_API_KEY)."
    ),
    no_cache: bool = typer.Option(False, "--no-cache", help="Bypass the document cache."),
    memory_only: bool = typer.Option(
        False, "--memory-only", help="Cache in memory only; do not read or write disk."
    ),
) -> None:
    """Root callback executed before every sub-command.

    Installs the global :class:`~foxdoc.output.OutputManager` and logging
    handler from the CLI flags, and stores shared options in ``ctx.obj``
    for sub-commands.
    """
    from foxdoc.logging import setup_logging
    from foxdoc.output import OutputFormat, OutputManager, set_output

    fmt = OutputFormat.AUTO
    if json_output:
        fmt = OutputFormat.JSON
    elif plain_output:
        fmt = OutputFormat.PLAIN

    output = OutputManager(format=fmt, no_color=no_color, quiet=quiet, verbose=verbose)
    set_output(output)
    setup_logging(verbose=verbose, quiet=quiet, no_color=output.no_color)

    ctx.ensure_object(dict)
    ctx.obj["force"] = force
    ctx.obj["verbose"] = verbose
    ctx.obj["token"] = token
    ctx.obj["no_cache"] = no_cache
    ctx.obj["memory_only"] = memory_only


def _setup_signal_handlers() -> None:
    """Flush the cache and exit cleanly on Ctrl-C or SIGTERM."""

    def _handler(signum: int, frame: Any) -> None:  # noqa: ANN401
        from foxdoc.runtime import close_cache

        sys.stderr.write("\nCancelled.\n")
        close_cache()
        sys.exit(128 + signum)

    signal.signal(signal.SIGINT, _handler)
    signal.signal(signal.SIGTERM, _handler)


def _write_crash_log(exc: Exception) -> str:
    """Write the current traceback to the data directory and return its path."""
    from foxdoc.config import get_data_dir

    logs_dir = get_data_dir() / "logs"
    logs_dir.mkdir(parents=True, exist_ok=True)
    timestamp = datetime.now().strftime("%Y%m%d-%H%M%S")
    log_path = logs_dir / f"crash-{timestamp}.log"
    log_path.write_text(traceback.format_exc())
    return str(log_path)


def main() -> None:
    """CLI entry point invoked by the ``foxdoc`` console script.

    Raises:
        SystemExit: Always raised (either by Typer or explicitly).
    """
    _setup_signal_handlers()
    try:
        app()
    except SystemExit:
        raise
    except KeyboardInterrupt:
        from foxdoc.runtime import close_cache

        sys.stderr.write("\nCancelled.\n")
        close_cache()
        sys.exit(130)
    except Exception as exc:
        from foxdoc.exceptions import AuthError, ConfigError, FoxdocError
        from foxdoc.output import error, suggest

        if isinstance(exc, FoxdocError):
            error(str(exc))
            if isinstance(exc, AuthError):
                suggest("Check the token: pass --token or set FOXDOC_API_KEY")
            elif isinstance(exc, ConfigError):
                suggest("Inspect settings with: foxdoc config show")
            sys.exit(exc.exit_code)
        log_path = _write_crash_log(exc)
        error(f"Unexpected error. Debug log: {log_path}")
        sys.exit(EXIT_GENERIC_FAILURE)
