"""Tests for the umbrella gradeconf CLI."""

import json
from pathlib import Path

from typer.testing import CliRunner

from gradeconf.main import app

runner = CliRunner()


def test_help_lists_subcommands() -> None:
    result = runner.invoke(app, ["--help"])
    assert result.exit_code == 0
    for name in ("resolve", "check", "rules", "init", "cfg"):
        assert name in result.output


def test_resolve_subcommand(tmp_path: Path, monkeypatch) -> None:
    monkeypatch.chdir(tmp_path)
    result = runner.invoke(app, ["resolve", "-D", "EXEC_TRACE", "--json"])
    assert result.exit_code == 0, result.output
    assert json.loads(result.stdout)["flags"]["STACK_TRACE"] is True


def test_rules_subcommand() -> None:
    result = runner.invoke(app, ["rules", "--validate", "--json"])
    assert result.exit_code == 0
    assert json.loads(result.stdout)["valid"] is True


def test_init_then_check(tmp_path: Path, monkeypatch) -> None:
    monkeypatch.chdir(tmp_path)
    assert runner.invoke(app, ["init"]).exit_code == 0
    assert runner.invoke(app, ["cfg", "add-target", "hlc_gc", "-D", "HIGHLEVEL_CODE", "-D", "BOEHM_GC"]).exit_code == 0
    result = runner.invoke(app, ["check", "--json"])
    assert result.exit_code == 0, result.output
    names = [t["target"] for t in json.loads(result.stdout)["targets"]]
    assert names == ["main", "hlc_gc"]
