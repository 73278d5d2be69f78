"""Tests for foxdoc.config -- XDG paths, atomic writes, cache precedence, credentials."""

from __future__ import annotations

from pathlib import Path
from unittest.mock import patch

import pytest

from foxdoc.config import (
    atomic_write,
    get_config_dir,
    get_data_dir,
    load_global_config,
    resolve_cache_config,
    resolve_credential,
    resolve_token,
    save_global_config,
    set_config_value,
)
from foxdoc.exceptions import ConfigError
from foxdoc.models import ApiConfig, CacheConfig, GlobalConfig


# ---------------------------------------------------------------------------
# XDG path resolution
# ---------------------------------------------------------------------------


class TestPaths:
    def test_config_dir_xdg_custom(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr("foxdoc.config._is_xdg_platform", lambda: True)
        monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "cfg"))
        result = get_config_dir()
        assert result == tmp_path / "cfg" / "foxdoc"
        assert result.is_dir()

    def test_config_dir_xdg_default(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr("foxdoc.config._is_xdg_platform", lambda: True)
        monkeypatch.delenv("XDG_CONFIG_HOME", raising=False)
        monkeypatch.setattr(Path, "home", classmethod(lambda cls: tmp_path))
        assert get_config_dir() == tmp_path / ".config" / "foxdoc"

    def test_fallback_on_non_xdg(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr("foxdoc.config._is_xdg_platform", lambda: False)
        monkeypatch.setattr(Path, "home", classmethod(lambda cls: tmp_path))
        assert get_config_dir() == tmp_path / ".foxdoc"
        assert get_data_dir() == tmp_path / ".foxdoc" / "logs"


# ---------------------------------------------------------------------------
# Atomic writes
# ---------------------------------------------------------------------------


class TestAtomicWrite:
    def test_writes_content(self, tmp_path: Path) -> None:
        target = tmp_path / "sub" / "file.json"
        atomic_write(target, '{"a": 1}')
        assert target.read_text() == '{"a": 1}'

    def test_failure_leaves_original_and_no_temp(self, tmp_path: Path) -> None:
        target = tmp_path / "file.json"
        target.write_text("original")
        with patch("foxdoc.config.os.replace", side_effect=OSError("nope")):
            with pytest.raises(OSError):
                atomic_write(target, "new")
        assert target.read_text() == "original"
        assert [p.name for p in tmp_path.iterdir()] == ["file.json"]


# ---------------------------------------------------------------------------
# Global config
# ---------------------------------------------------------------------------


class TestGlobalConfig:
    def test_defaults_when_missing(self, isolated_config: Path) -> None:
        config = load_global_config()
        assert config.cache.ttl_seconds == 3600
        assert config.cache.memory_max_entries == 200

    def test_round_trip(self, isolated_config: Path) -> None:
        config = GlobalConfig(cache=CacheConfig(ttl_seconds=60))
        save_global_config(config)
        assert load_global_config().cache.ttl_seconds == 60

    def test_invalid_file(self, isolated_config: Path) -> None:
        (get_config_dir() / "config.json").write_text("{broken")
        with pytest.raises(ConfigError):
            load_global_config()

    def test_set_value_coerces(self) -> None:
        config, value = set_config_value(GlobalConfig(), "cache.memory_max_entries", "50")
        assert value == 50
        assert config.cache.memory_max_entries == 50

    def test_set_bool(self) -> None:
        config, _ = set_config_value(GlobalConfig(), "cache.persistent_enabled", "false")
        assert config.cache.persistent_enabled is False

    def test_set_optional_string(self) -> None:
        config, _ = set_config_value(GlobalConfig(), "api.default_project_id", "3189010")
        assert config.api.default_project_id == "3189010"

    def test_set_unknown_key(self) -> None:
        with pytest.raises(ConfigError):
            set_config_value(GlobalConfig(), "cache.nope", "1")

    def test_output_settings_not_configurable(self, isolated_config: Path) -> None:
        with pytest.raises(ConfigError):
            set_config_value(GlobalConfig(), "output.format", "json")
        (get_config_dir() / "config.json").write_text('{"output": {"format": "json"}}')
        assert "output" not in load_global_config().model_dump()

    def test_set_section_is_rejected(self) -> None:
        with pytest.raises(ConfigError):
            set_config_value(GlobalConfig(), "cache", "1")

    def test_set_out_of_range(self) -> None:
        with pytest.raises(ConfigError):
            set_config_value(GlobalConfig(), "cache.memory_max_entries", "0")


# ---------------------------------------------------------------------------
# Cache settings precedence
# ---------------------------------------------------------------------------


class TestResolveCacheConfig:
    def test_file_values_used(self, isolated_config: Path) -> None:
        save_global_config(GlobalConfig(cache=CacheConfig(disk_max_entries=10)))
        assert resolve_cache_config().disk_max_entries == 10

    def test_env_overrides_file(self, isolated_config: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("FOXDOC_CACHE_TTL", "120")
        monkeypatch.setenv("FOXDOC_CACHE_MAX_SIZE", "7")
        monkeypatch.setenv("FOXDOC_CACHE_PERSISTENT_MAX_SIZE", "9")
        monkeypatch.setenv("FOXDOC_CACHE_SYNC_INTERVAL", "2.5")
        monkeypatch.setenv("FOXDOC_CACHE_PERSISTENT", "false")
        config = resolve_cache_config(CacheConfig(ttl_seconds=60))
        assert config.ttl_seconds == 120
        assert config.memory_max_entries == 7
        assert config.disk_max_entries == 9
        assert config.sync_interval_seconds == 2.5
        assert config.persistent_enabled is False

    def test_cli_overrides_env(self, isolated_config: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("FOXDOC_CACHE_ENABLED", "true")
        config = resolve_cache_config(CacheConfig(), no_cache=True, memory_only=True)
        assert config.enabled is False
        assert config.persistent_enabled is False

    @pytest.mark.parametrize(
        "var,value",
        [
            ("FOXDOC_CACHE_ENABLED", "maybe"),
            ("FOXDOC_CACHE_TTL", "soon"),
            ("FOXDOC_CACHE_MAX_SIZE", "1.5"),
            ("FOXDOC_CACHE_MAX_SIZE", "0"),
        ],
    )
    def test_invalid_env(self, isolated_config: Path, monkeypatch: pytest.MonkeyPatch, var: str, value: str) -> None:
        monkeypatch.setenv(var, value)
        with pytest.raises(ConfigError):
            resolve_cache_config(CacheConfig())

    def test_blank_env_ignored(self, isolated_config: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("FOXDOC_CACHE_TTL", "  ")
        assert resolve_cache_config(CacheConfig()).ttl_seconds == 3600


# ---------------------------------------------------------------------------
# Credentials
# ---------------------------------------------------------------------------


class TestCredentials:
    def test_env_source(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("MY_TOKEN", "APS-abc")
        assert resolve_credential("env:MY_TOKEN") == "APS-abc"

    def test_env_source_missing(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.delenv("MY_TOKEN", raising=False)
        with pytest.raises(ConfigError, match="MY_TOKEN"):
            resolve_credential("env:MY_TOKEN")

    def test_file_source(self, tmp_path: Path) -> None:
        token_file = tmp_path / "token"
        token_file.write_text("APS-file\n")
        assert resolve_credential(f"file:{token_file}") == "APS-file"

    def test_file_source_missing(self, tmp_path: Path) -> None:
        with pytest.raises(ConfigError):
            resolve_credential(f"file:{tmp_path / 'nope'}")

    def test_prompt_requires_tty(self) -> None:
        with patch("foxdoc.config.sys.stdin") as stdin:
            stdin.isatty.return_value = False
            with pytest.raises(ConfigError, match="TTY"):
                resolve_credential("prompt")

    def test_unknown_source(self) -> None:
        with pytest.raises(ConfigError):
            resolve_credential("keyring:x")

    def test_token_precedence(self, isolated_config: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        api = ApiConfig(token_source="env:APIFOX_API_KEY")
        monkeypatch.setenv("APIFOX_API_KEY", "from-source")
        assert resolve_token(api) == "from-source"
        monkeypatch.setenv("FOXDOC_API_KEY", "from-env")
        assert resolve_token(api) == "from-env"
        assert resolve_token(api, cli_token="from-cli") == "from-cli"
