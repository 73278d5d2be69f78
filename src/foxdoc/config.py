"""Configuration management: XDG paths, atomic writes, and precedence.

This module handles everything foxdoc persists or reads from the
environment:

* **Directory layout** -- XDG Base Directory compliant on Linux/BSD,
  ``~/.foxdoc/`` on macOS and Windows. See :func:`get_config_dir` and
  :func:`get_data_dir`. The cache document lives in the config directory
  next to ``config.json``.
* **Global config** -- a single :class:`~foxdoc.models.GlobalConfig` JSON
  file, read by :func:`load_global_config` and written by
  :func:`save_global_config`.
* **Cache settings** -- :func:`resolve_cache_config` layers CLI flags and
  ``FOXDOC_CACHE_*`` environment variables over the config file.
* **Credentials** -- :func:`resolve_credential` reads a secret from an env
  var, a file, or an interactive prompt; :func:`resolve_token` picks the
  source by precedence.

All file writes go through :func:`atomic_write` (temp file then rename), so
a crash never leaves a truncated file behind.
"""

from __future__ import annotations

import getpass
import json
import os
import platform
import sys
import tempfile
from pathlib import Path
from typing import Any, Callable, Optional

from pydantic import ValidationError

from foxdoc.exceptions import ConfigError
from foxdoc.models import ApiConfig, CacheConfig, GlobalConfig

_APP_NAME = "foxdoc"
_CONFIG_FILENAME = "config.json"

TOKEN_ENV_VAR = "FOXDOC_API_KEY"


# --- XDG path resolution ---


def _is_xdg_platform() -> bool:
    return platform.system() == "Linux" or platform.system().endswith("BSD")


def _fallback_base_dir() -> Path:
    return Path.home() / f".{_APP_NAME}"


def _xdg_base(env_var: str, default_segments: tuple[str, ...]) -> Path:
    env_value = os.environ.get(env_var, "")
    if env_value:
        return Path(env_value)
    return Path.home().joinpath(*default_segments)


def get_config_dir() -> Path:
    """Return the configuration directory, creating it if necessary.

    On Linux/BSD: ``$XDG_CONFIG_HOME/foxdoc/`` (default ``~/.config/foxdoc/``).
    On macOS/Windows: ``~/.foxdoc/``.
    """
    if _is_xdg_platform():
        path = _xdg_base("XDG_CONFIG_HOME", (".config",)) / _APP_NAME
    else:
        path = _fallback_base_dir()
    path.mkdir(parents=True, exist_ok=True)
    return path


def get_data_dir() -> Path:
    """Return the data directory (crash logs), creating it if necessary.

    On Linux/BSD: ``$XDG_DATA_HOME/foxdoc/`` (default ``~/.local/share/foxdoc/``).
    On macOS/Windows: ``~/.foxdoc/logs/``.
    """
    if _is_xdg_platform():
        path = _xdg_base("XDG_DATA_HOME", (".local", "share")) / _APP_NAME
    else:
        path = _fallback_base_dir() / "logs"
    path.mkdir(parents=True, exist_ok=True)
    return path


# --- Atomic file writes ---


def atomic_write(path: Path, data: str) -> None:
    """Write *data* to *path* atomically using a temp file plus rename.

    The temp file is created in the same directory as *path* so that
    ``os.replace`` is an atomic rename on POSIX. On any failure the temp
    file is removed and the exception propagates.
    """
    path.parent.mkdir(parents=True, exist_ok=True)

    fd = None
    tmp_path: Optional[str] = None
    try:
        fd = tempfile.NamedTemporaryFile(
            mode="w",
            dir=path.parent,
            prefix=f".{path.name}.",
            suffix=".tmp",
            delete=False,
            encoding="utf-8",
        )
        tmp_path = fd.name
        fd.write(data)
        fd.flush()
        os.fsync(fd.fileno())
        fd.close()
        fd = None
        os.replace(tmp_path, path)
    except BaseException:
        if fd is not None:
            fd.close()
        if tmp_path is not None:
            try:
                os.unlink(tmp_path)
            except OSError:
                pass
        raise


# --- Global config ---


def _global_config_path() -> Path:
    return get_config_dir() / _CONFIG_FILENAME


def load_global_config() -> GlobalConfig:
    """Load the global configuration, or defaults if no file exists.

    Raises:
        ConfigError: If the file exists but is not valid JSON or fails
            validation.
    """
    path = _global_config_path()
    if not path.is_file():
        return GlobalConfig()
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
        return GlobalConfig.model_validate(data)
    except (json.JSONDecodeError, ValueError) as exc:
        raise ConfigError(f"Invalid global config at {path}: {exc}") from exc


def save_global_config(config: GlobalConfig) -> None:
    data = config.model_dump(mode="json")
    atomic_write(_global_config_path(), json.dumps(data, indent=2) + "\n")


def set_config_value(config: GlobalConfig, key: str, value: str) -> tuple[GlobalConfig, Any]:
    """Return a copy of *config* with the dot-notation *key* set to *value*.

    The string is coerced to the type of the field's current value (bool,
    int, float, or str) and the result is re-validated.

    Returns:
        ``(new_config, coerced_value)``.

    Raises:
        ConfigError: If the key does not exist or the value does not fit.
    """
    data = config.model_dump(mode="json")
    parts = key.split(".")
    target = data
    for part in parts[:-1]:
        if part not in target or not isinstance(target[part], dict):
            raise ConfigError(f"Invalid config key: {key}")
        target = target[part]

    final = parts[-1]
    if final not in target or isinstance(target[final], dict):
        raise ConfigError(f"Unknown config key: {key}")

    coerced = _coerce(value, target[final], key)
    target[final] = coerced
    try:
        return GlobalConfig.model_validate(data), coerced
    except ValidationError as exc:
        raise ConfigError(f"Invalid value for {key}: {exc}") from exc


def _coerce(value: str, current: Any, key: str) -> Any:
    if isinstance(current, bool):
        return _parse_bool(value, key)
    if isinstance(current, (int, float)):
        # Float fields may hold an integral default; let validation decide.
        try:
            return int(value)
        except ValueError:
            return _parse_number(value, key, float)
    return value


# --- Cache settings ---

# Environment variable -> (CacheConfig field, parser)
_CACHE_ENV: dict[str, tuple[str, Callable[[str, str], Any]]] = {
    "FOXDOC_CACHE_ENABLED": ("enabled", lambda v, k: _parse_bool(v, k)),
    "FOXDOC_CACHE_PERSISTENT": ("persistent_enabled", lambda v, k: _parse_bool(v, k)),
    "FOXDOC_CACHE_TTL": ("ttl_seconds", lambda v, k: _parse_number(v, k, float)),
    "FOXDOC_CACHE_MAX_SIZE": ("memory_max_entries", lambda v, k: _parse_number(v, k, int)),
    "FOXDOC_CACHE_PERSISTENT_MAX_SIZE": (
        "disk_max_entries",
        lambda v, k: _parse_number(v, k, int),
    ),
    "FOXDOC_CACHE_SYNC_INTERVAL": (
        "sync_interval_seconds",
        lambda v, k: _parse_number(v, k, float),
    ),
}


def resolve_cache_config(
    base: Optional[CacheConfig] = None,
    no_cache: bool = False,
    memory_only: bool = False,
) -> CacheConfig:
    """Resolve the effective cache settings.

    Precedence (high to low):
        1. CLI flags (``--no-cache``, ``--memory-only``)
        2. ``FOXDOC_CACHE_*`` environment variables
        3. The ``cache`` section of the global config
        4. Defaults

    Args:
        base: Settings from the config file. Loaded when omitted.
        no_cache: Disable caching entirely.
        memory_only: Keep caching but skip the disk tier.

    Raises:
        ConfigError: If an environment variable holds an invalid value.
    """
    if base is None:
        base = load_global_config().cache
    data = base.model_dump()

    for env_var, (field, parse) in _CACHE_ENV.items():
        raw = os.environ.get(env_var)
        if raw is not None and raw.strip():
            data[field] = parse(raw.strip(), env_var)

    if no_cache:
        data["enabled"] = False
    if memory_only:
        data["persistent_enabled"] = False

    try:
        return CacheConfig.model_validate(data)
    except ValidationError as exc:
        raise ConfigError(f"Invalid cache settings: {exc}") from exc


def _parse_bool(value: str, key: str) -> bool:
    lowered = value.strip().lower()
    if lowered in ("true", "1", "yes", "on"):
        return True
    if lowered in ("false", "0", "no", "off"):
        return False
    raise ConfigError(f"Expected a boolean for {key}, got: {value}")


def _parse_number(value: str, key: str, kind: type) -> Any:
    try:
        return kind(value)
    except ValueError:
        raise ConfigError(f"Expected {kind.__name__} for {key}, got: {value}") from None


# --- Credential source resolution ---


def resolve_credential(source: str) -> str:
    """Resolve a credential from its source descriptor.

    Supported formats:
        - ``"env:VAR_NAME"`` -- reads ``os.environ["VAR_NAME"]``
        - ``"file:/path/to/file"`` -- reads the file, stripped of whitespace
        - ``"prompt"`` -- prompts interactively (requires a TTY)

    Raises:
        ConfigError: If the source cannot be resolved.
    """
    if source.startswith("env:"):
        var_name = source[4:]
        value = os.environ.get(var_name)
        if not value:
            raise ConfigError(
                f"Environment variable '{var_name}' is not set (source: {source})"
            )
        return value

    if source.startswith("file:"):
        path = Path(source[5:]).expanduser()
        if not path.is_file():
            raise ConfigError(f"Credential file not found: {path} (source: {source})")
        try:
            return path.read_text(encoding="utf-8").strip()
        except OSError as exc:
            raise ConfigError(f"Cannot read credential file {path}: {exc}") from exc

    if source == "prompt":
        if not sys.stdin.isatty():
            raise ConfigError(
                "Cannot prompt for credentials: stdin is not a TTY (source: prompt)"
            )
        return getpass.getpass("Apifox access token: ")

    raise ConfigError(f"Unknown credential source format: {source}")


def resolve_token(api: ApiConfig, cli_token: Optional[str] = None) -> str:
    """Pick the API token: ``--token``, then ``FOXDOC_API_KEY``, then ``api.token_source``."""
    if cli_token:
        return cli_token
    env_token = os.environ.get(TOKEN_ENV_VAR)
    if env_token:
        return env_token
    return resolve_credential(api.token_source)
