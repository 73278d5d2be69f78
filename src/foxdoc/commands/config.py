"""Config commands -- view and modify global configuration.

Provides the ``foxdoc config`` sub-command group for reading, updating,
and resetting the user's global configuration file
(:class:`~foxdoc.models.GlobalConfig`), which holds API connection
defaults and cache settings.
"""

from __future__ import annotations

import typer

from foxdoc.output import error, format_response, info, success


config_app = typer.Typer(no_args_is_help=True)


@config_app.command("show")
def config_show() -> None:
    """Show the current configuration.

    Example::

        foxdoc config show
        foxdoc --json config show
    """
    from foxdoc.config import get_config_dir, load_global_config

    config = load_global_config()
    info(f"Config directory: {get_config_dir()}")
    format_response(config.model_dump(mode="json"))


@config_app.command("set")
def config_set(
    key: str = typer.Argument(help="Config key (dot notation, e.g. 'cache.ttl_seconds')."),
    value: str = typer.Argument(help="Value to set."),
) -> None:
    """Set a configuration value.

    The value is coerced to the type of the existing field and the
    result is validated before saving.

    Example::

        foxdoc config set cache.ttl_seconds 600
        foxdoc config set cache.persistent_enabled false
        foxdoc config set api.default_project_id 3189010
    """
    from foxdoc.config import load_global_config, save_global_config, set_config_value
    from foxdoc.exceptions import ConfigError
    from foxdoc.exit_codes import EXIT_INVALID_USAGE

    try:
        new_config, coerced = set_config_value(load_global_config(), key, value)
    except ConfigError as exc:
        error(str(exc))
        raise typer.Exit(code=EXIT_INVALID_USAGE) from None

    save_global_config(new_config)
    success(f"Set {key} = {coerced}")


@config_app.command("reset")
def config_reset(ctx: typer.Context) -> None:
    """Reset configuration to defaults.

    Asks for confirmation unless ``--force`` is active.

    Example::

        foxdoc --force config reset
    """
    from foxdoc.config import save_global_config
    from foxdoc.models import GlobalConfig

    force = ctx.obj.get("force", False) if ctx.obj else False
    if not force and not typer.confirm("Reset all config to defaults?"):
        info("Cancelled.")
        raise typer.Exit()

    save_global_config(GlobalConfig())
    success("Configuration reset to defaults.")
