"""Output formatting with strict stdout/stderr discipline.

* **stdout** -- data only (documents, stats, tables). This is what other
  tools pipe and parse.
* **stderr** -- diagnostics (status, warnings, errors, suggestions).
* **TTY detection** -- Rich formatting when stdout is a terminal, plain
  text when piped.
* **Colour control** -- honours ``NO_COLOR``, ``TERM=dumb`` and
  ``--no-color``.

:class:`OutputManager` holds the preferences and consoles. It is created
once in :func:`~foxdoc.app.main_callback` and installed with
:func:`set_output`; the module-level helpers (:func:`info`,
:func:`error`, ...) delegate to it.

Log records from library modules are rendered separately, by the handler
installed in :mod:`foxdoc.logging`.
"""

from __future__ import annotations

import json
import os
import sys
from enum import Enum
from typing import Any, Optional

import yaml
from rich.console import Console
from rich.syntax import Syntax
from rich.table import Table


class OutputFormat(str, Enum):
    """Supported output formats. ``AUTO`` resolves to ``RICH`` or ``PLAIN``."""

    AUTO = "auto"
    JSON = "json"
    PLAIN = "plain"
    RICH = "rich"


class OutputManager:
    """Routes every piece of CLI output to the right stream and format.

    Args:
        format: Desired output format. ``AUTO`` picks ``RICH`` for an
            interactive, colourful stdout and ``PLAIN`` otherwise.
        no_color: Disable colour and Rich markup.
        quiet: Suppress informational messages on stderr.
        verbose: Whether `--verbose` was given (log level is set separately).
    """

    def __init__(
        self,
        format: OutputFormat = OutputFormat.AUTO,
        no_color: bool = False,
        quiet: bool = False,
        verbose: bool = False,
    ) -> None:
        self._no_color = no_color or _should_disable_color()
        self._quiet = quiet
        self._verbose = verbose

        if format == OutputFormat.AUTO:
            self._format = (
                OutputFormat.RICH if _is_tty() and not self._no_color else OutputFormat.PLAIN
            )
        else:
            self._format = format

        self._stdout = Console(
            file=sys.stdout,
            no_color=self._no_color,
            force_terminal=(self._format == OutputFormat.RICH),
        )
        self._stderr = Console(file=sys.stderr, no_color=self._no_color, stderr=True)

    @property
    def format(self) -> OutputFormat:
        return self._format

    @property
    def no_color(self) -> bool:
        return self._no_color

    @property
    def is_quiet(self) -> bool:
        return self._quiet

    @property
    def is_verbose(self) -> bool:
        return self._verbose

    # ------------------------------------------------------------------ #
    # Data output (stdout)
    # ------------------------------------------------------------------ #

    def format_response(self, data: Any) -> None:
        """Print a JSON-like value to stdout in the active format."""
        if self._format == OutputFormat.JSON:
            self.print_data(json.dumps(data, indent=2, ensure_ascii=False, default=str))
        elif self._format == OutputFormat.PLAIN:
            self._print_plain(data)
        else:
            self._print_rich(data)

    def print_document(self, document: dict[str, Any], as_yaml: bool = False) -> None:
        """Print an exported API document.

        Documents are always emitted whole (JSON, or YAML with *as_yaml*),
        never flattened, so the output can be saved and re-parsed.
        """
        if as_yaml:
            text = yaml.safe_dump(document, sort_keys=False, allow_unicode=True)
            lexer = "yaml"
        else:
            text = json.dumps(document, indent=2, ensure_ascii=False, default=str)
            lexer = "json"
        if self._format == OutputFormat.RICH:
            self._stdout.print(Syntax(text, lexer, theme="monokai", word_wrap=True))
        else:
            self.print_data(text.rstrip("\n"))

    def print_data(self, text: str) -> None:
        """Write *text* to stdout as-is, followed by a newline."""
        print(text, file=sys.stdout, flush=True)

    def print_table(
        self,
        headers: list[str],
        rows: list[list[str]],
        title: Optional[str] = None,
    ) -> None:
        """Print tabular data: a Rich table, JSON records, or TSV."""
        if self._format == OutputFormat.JSON:
            records = [dict(zip(headers, row)) for row in rows]
            self.print_data(json.dumps(records, indent=2, ensure_ascii=False))
        elif self._format == OutputFormat.PLAIN:
            self.print_data("\t".join(headers))
            for row in rows:
                self.print_data("\t".join(row))
        else:
            table = Table(title=title, show_header=True, header_style="bold cyan")
            for h in headers:
                table.add_column(h)
            for row in rows:
                table.add_row(*row)
            self._stdout.print(table)

    # ------------------------------------------------------------------ #
    # Diagnostics (stderr)
    # ------------------------------------------------------------------ #

    def info(self, message: str) -> None:
        """Status message on stderr. Suppressed by ``--quiet``."""
        if not self._quiet:
            self._emit(message)

    def success(self, message: str) -> None:
        """Green confirmation on stderr. Suppressed by ``--quiet``."""
        if not self._quiet:
            self._emit(message, markup=f"[green]{message}[/green]")

    def warning(self, message: str) -> None:
        """Not suppressed by ``--quiet``."""
        self._emit(
            f"Warning: {message}", markup=f"[yellow]Warning:[/yellow] {message}"
        )

    def error(self, message: str) -> None:
        """Never suppressed."""
        self._emit(f"Error: {message}", markup=f"[bold red]Error:[/bold red] {message}")

    def suggest(self, message: str) -> None:
        """Dim follow-up hint on stderr. Suppressed by ``--quiet``."""
        if not self._quiet:
            formatted = f"→ {message}"
            self._emit(formatted, markup=f"[dim]{formatted}[/dim]")

    # ------------------------------------------------------------------ #
    # Private helpers
    # ------------------------------------------------------------------ #

    def _emit(self, plain: str, markup: Optional[str] = None) -> None:
        if self._no_color or markup is None:
            print(plain, file=sys.stderr, flush=True)
        else:
            self._stderr.print(markup)

    def _print_plain(self, data: Any) -> None:
        if isinstance(data, dict):
            for key, value in data.items():
                if isinstance(value, dict):
                    for sub_key, sub_value in value.items():
                        self.print_data(f"{key}.{sub_key}\t{sub_value}")
                else:
                    self.print_data(f"{key}\t{value}")
        elif isinstance(data, list):
            for item in data:
                self.print_data(str(item))
        else:
            self.print_data(str(data))

    def _print_rich(self, data: Any) -> None:
        if isinstance(data, (dict, list)):
            json_str = json.dumps(data, indent=2, ensure_ascii=False, default=str)
            self._stdout.print(Syntax(json_str, "json", theme="monokai", word_wrap=True))
        else:
            self._stdout.print(str(data))


def _is_tty() -> bool:
    return hasattr(sys.stdout, "isatty") and sys.stdout.isatty()


def _should_disable_color() -> bool:
    """``True`` when ``NO_COLOR`` is set (any value) or ``TERM=dumb``."""
    if os.environ.get("NO_COLOR") is not None:
        return True
    return os.environ.get("TERM") == "dumb"


# ------------------------------------------------------------------ #
# Global output instance (set during app startup)
# ------------------------------------------------------------------ #

_output: Optional[OutputManager] = None


def get_output() -> OutputManager:
    """Return the global manager, creating a default one lazily."""
    global _output
    if _output is None:
        _output = OutputManager()
    return _output


def set_output(output: OutputManager) -> None:
    """Install *output* as the manager used by the module-level helpers."""
    global _output
    _output = output


def reset_output() -> None:
    """Forget the global manager. Used by the test suite."""
    global _output
    _output = None


def format_response(data: Any) -> None:
    get_output().format_response(data)


def print_document(document: dict[str, Any], as_yaml: bool = False) -> None:
    get_output().print_document(document, as_yaml)


def print_data(text: str) -> None:
    """Write raw text to stdout. See :meth:`OutputManager.print_data`."""
    get_output().print_data(text)


def print_table(
    headers: list[str],
    rows: list[list[str]],
    title: Optional[str] = None,
) -> None:
    get_output().print_table(headers, rows, title)


def info(message: str) -> None:
    """See :meth:`OutputManager.info`."""
    get_output().info(message)


def error(message: str) -> None:
    get_output().error(message)


def success(message: str) -> None:
    """See :meth:`OutputManager.success`."""
    get_output().success(message)


def warning(message: str) -> None:
    get_output().warning(message)


def suggest(message: str) -> None:
    get_output().suggest(message)
