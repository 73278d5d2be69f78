"""Built-in CLI sub-commands for foxdoc.

* :mod:`~foxdoc.commands.fetch` -- ``fetch`` and ``refresh`` a document
  by share link.
* :mod:`~foxdoc.commands.cache` -- inspect, search and clear the cache.
* :mod:`~foxdoc.commands.config` -- view and modify global settings.

Multi-command groups export a :class:`typer.Typer` sub-application; single
commands export a plain callback registered on the root app.
"""
