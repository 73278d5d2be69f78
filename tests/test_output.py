"""Tests for the output formatting system.

Covers:
- OutputFormat resolution (auto -> rich/plain based on TTY)
- NO_COLOR / TERM=dumb color disabling
- stdout vs stderr discipline and quiet/verbose rules
- Document printing as JSON and YAML
- format_response and print_table in plain and JSON modes
- Global instance management
"""

from __future__ import annotations

import json

import pytest
import yaml

from foxdoc import output as output_module
from foxdoc.output import (
    OutputFormat,
    OutputManager,
    _should_disable_color,
    get_output,
    reset_output,
    set_output,
)


DOCUMENT = {"openapi": "3.1.0", "paths": {"/login": {"post": {"summary": "Login"}}}}


@pytest.fixture()
def non_tty(monkeypatch):
    monkeypatch.setattr("foxdoc.output._is_tty", lambda: False)


@pytest.fixture()
def tty(monkeypatch):
    monkeypatch.setattr("foxdoc.output._is_tty", lambda: True)


# ------------------------------------------------------------------ #
# Format resolution and colour
# ------------------------------------------------------------------ #


class TestFormatResolution:
    def test_auto_is_plain_when_piped(self, non_tty):
        assert OutputManager(format=OutputFormat.AUTO).format == OutputFormat.PLAIN

    def test_auto_is_rich_on_tty(self, tty, monkeypatch):
        monkeypatch.delenv("NO_COLOR", raising=False)
        monkeypatch.delenv("TERM", raising=False)
        assert OutputManager(format=OutputFormat.AUTO).format == OutputFormat.RICH

    def test_auto_is_plain_without_color(self, tty):
        assert OutputManager(format=OutputFormat.AUTO, no_color=True).format == OutputFormat.PLAIN

    def test_explicit_format_kept(self, tty):
        assert OutputManager(format=OutputFormat.JSON).format == OutputFormat.JSON


class TestColor:
    def test_no_color_env(self, monkeypatch):
        monkeypatch.setenv("NO_COLOR", "")
        assert _should_disable_color() is True

    def test_term_dumb(self, monkeypatch):
        monkeypatch.delenv("NO_COLOR", raising=False)
        monkeypatch.setenv("TERM", "dumb")
        assert _should_disable_color() is True

    def test_default(self, monkeypatch):
        monkeypatch.delenv("NO_COLOR", raising=False)
        monkeypatch.setenv("TERM", "xterm-256color")
        assert _should_disable_color() is False


# ------------------------------------------------------------------ #
# Stream discipline
# ------------------------------------------------------------------ #


class TestStreams:
    def test_diagnostics_go_to_stderr(self, capsys, non_tty):
        mgr = OutputManager(no_color=True)
        mgr.info("hello")
        mgr.warning("careful")
        mgr.error("broken")
        captured = capsys.readouterr()
        assert captured.out == ""
        assert "hello" in captured.err
        assert "Warning: careful" in captured.err
        assert "Error: broken" in captured.err

    def test_quiet_keeps_warnings_and_errors(self, capsys, non_tty):
        mgr = OutputManager(no_color=True, quiet=True)
        mgr.info("hidden")
        mgr.success("hidden too")
        mgr.suggest("also hidden")
        mgr.warning("shown")
        mgr.error("shown")
        err = capsys.readouterr().err
        assert "hidden" not in err
        assert err.count("shown") == 2

    def test_suggest(self, capsys, non_tty):
        OutputManager(no_color=True).suggest("try this")
        assert "try this" in capsys.readouterr().err


# ------------------------------------------------------------------ #
# Data output
# ------------------------------------------------------------------ #


class TestDocuments:
    def test_json_document(self, capsys, non_tty):
        OutputManager(format=OutputFormat.PLAIN).print_document(DOCUMENT)
        assert json.loads(capsys.readouterr().out) == DOCUMENT

    def test_yaml_document(self, capsys, non_tty):
        OutputManager(format=OutputFormat.PLAIN).print_document(DOCUMENT, as_yaml=True)
        out = capsys.readouterr().out
        assert yaml.safe_load(out) == DOCUMENT
        assert out.startswith("openapi:")

    def test_document_not_flattened_in_plain_mode(self, capsys, non_tty):
        OutputManager(format=OutputFormat.PLAIN).print_document(DOCUMENT)
        assert "paths.\t" not in capsys.readouterr().out


class TestFormatResponse:
    def test_json(self, capsys):
        OutputManager(format=OutputFormat.JSON).format_response({"a": 1})
        assert json.loads(capsys.readouterr().out) == {"a": 1}

    def test_plain_flattens_one_level(self, capsys):
        OutputManager(format=OutputFormat.PLAIN).format_response(
            {"memory": {"size": 3}, "disk": None}
        )
        lines = capsys.readouterr().out.splitlines()
        assert lines == ["memory.size\t3", "disk\tNone"]

    def test_plain_list(self, capsys):
        OutputManager(format=OutputFormat.PLAIN).format_response(["a", "b"])
        assert capsys.readouterr().out.splitlines() == ["a", "b"]


class TestTables:
    def test_plain_table(self, capsys):
        OutputManager(format=OutputFormat.PLAIN).print_table(["k", "v"], [["a", "1"]])
        assert capsys.readouterr().out.splitlines() == ["k\tv", "a\t1"]

    def test_json_table(self, capsys):
        OutputManager(format=OutputFormat.JSON).print_table(["k", "v"], [["a", "1"]])
        assert json.loads(capsys.readouterr().out) == [{"k": "a", "v": "1"}]


# ------------------------------------------------------------------ #
# Global instance
# ------------------------------------------------------------------ #


class TestGlobalInstance:
    def test_lazy_default(self):
        reset_output()
        assert get_output() is get_output()

    def test_set_and_delegate(self, capsys):
        set_output(OutputManager(format=OutputFormat.PLAIN, no_color=True))
        output_module.info("via module")
        output_module.print_data("data")
        captured = capsys.readouterr()
        assert "via module" in captured.err
        assert captured.out == "data\n"
