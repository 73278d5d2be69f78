"""CLI tests for the ``foxdoc config`` command group."""

from __future__ import annotations

import json
from pathlib import Path

from foxdoc.app import app
from foxdoc.config import load_global_config


class TestConfigCommands:
    def test_show(self, cli_runner, isolated_config: Path) -> None:
        result = cli_runner.invoke(app, ["--json", "--quiet", "config", "show"])
        assert result.exit_code == 0, result.output
        data = json.loads(result.stdout)
        assert data["cache"]["memory_max_entries"] == 200
        assert data["api"]["base_url"] == "https://api.apifox.com"

    def test_set_and_reset(self, cli_runner, isolated_config: Path) -> None:
        result = cli_runner.invoke(app, ["config", "set", "cache.ttl_seconds", "600"])
        assert result.exit_code == 0, result.output
        assert "Set cache.ttl_seconds = 600" in result.output
        assert load_global_config().cache.ttl_seconds == 600

        result = cli_runner.invoke(app, ["--force", "config", "reset"])
        assert result.exit_code == 0, result.output
        assert load_global_config().cache.ttl_seconds == 3600

    def test_set_fractional_float(self, cli_runner, isolated_config: Path) -> None:
        result = cli_runner.invoke(app, ["config", "set", "cache.sync_interval_seconds", "0.5"])
        assert result.exit_code == 0, result.output
        assert load_global_config().cache.sync_interval_seconds == 0.5

    def test_set_invalid(self, cli_runner, isolated_config: Path) -> None:
        result = cli_runner.invoke(app, ["config", "set", "cache.memory_max_entries", "many"])
        assert result.exit_code == 2
        assert "Error" in result.output

    def test_reset_declined(self, cli_runner, isolated_config: Path) -> None:
        cli_runner.invoke(app, ["config", "set", "cache.ttl_seconds", "600"])
        result = cli_runner.invoke(app, ["config", "reset"], input="n\n")
        assert "Cancelled." in result.output
        assert load_global_config().cache.ttl_seconds == 600


class TestVersion:
    def test_version(self, cli_runner) -> None:
        result = cli_runner.invoke(app, ["--version"])
        assert result.exit_code == 0
        assert result.output.startswith("foxdoc ")
