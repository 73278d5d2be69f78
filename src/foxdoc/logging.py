"""Route library log records to stderr through Rich.

Library modules only ever call ``logging.getLogger(__name__)``. The CLI
calls :func:`setup_logging` once per invocation to attach a
:class:`rich.logging.RichHandler` to the ``foxdoc`` logger:

* default: ``WARNING`` (degraded cache, failed writes)
* ``--verbose``: ``DEBUG`` (hits, misses, sync activity)
* ``--quiet``: ``ERROR``
"""

from __future__ import annotations

import logging
from typing import Optional

from rich.console import Console
from rich.logging import RichHandler

_ROOT = "foxdoc"


def setup_logging(
    verbose: bool = False,
    quiet: bool = False,
    no_color: bool = False,
    console: Optional[Console] = None,
) -> logging.Logger:
    """Configure the ``foxdoc`` logger and return it.

    Calling it again replaces the previously installed handler, so each
    CLI invocation (and each test) starts from a known state.
    """
    level = logging.WARNING
    if verbose:
        level = logging.DEBUG
    elif quiet:
        level = logging.ERROR

    logger = logging.getLogger(_ROOT)
    for handler in list(logger.handlers):
        if isinstance(handler, RichHandler):
            logger.removeHandler(handler)

    handler = RichHandler(
        console=console or Console(stderr=True, no_color=no_color),
        show_time=verbose,
        show_path=False,
        markup=False,
        rich_tracebacks=verbose,
    )
    handler.setFormatter(logging.Formatter("%(message)s"))
    logger.addHandler(handler)
    logger.setLevel(level)
    logger.propagate = False
    return logger
