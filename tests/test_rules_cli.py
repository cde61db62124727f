"""Tests for the rules command."""

import json

import pytest
from typer.testing import CliRunner

from gradeconf.resolver import DEFAULT_RULES
from gradeconf.rules_cli import app as rules_app
from gradeconf.rules_cli import rule_to_dict, select_rules

runner = CliRunner()


def _json(args: list[str]):
    result = runner.invoke(rules_app, [*args, "--json"])
    return result, json.loads(result.stdout)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


class TestSelectRules:
    def test_everything(self) -> None:
        assert len(select_rules()) == len(DEFAULT_RULES)

    def test_by_kind(self) -> None:
        selected = select_rules(kind="reservation")
        assert {r.flag for _, r in selected} == set(DEFAULT_RULES.reserved)

    def test_by_flag(self) -> None:
        indices = [i for i, _ in select_rules(flag="PIC_REG")]
        assert len(indices) == 2
        assert indices == sorted(indices)

    def test_by_kind_and_flag(self) -> None:
        selected = select_rules(kind="retraction", flag="PIC_REG")
        assert [r.kind for _, r in selected] == ["retraction"]


def test_rule_to_dict() -> None:
    data = rule_to_dict(1, DEFAULT_RULES[1])
    assert data == {
        "index": 1,
        "kind": "implication",
        "rule": "EXEC_TRACE | DEEP_PROFILING -> STACK_TRACE",
        "reads": ["EXEC_TRACE", "DEEP_PROFILING"],
        "facts": [],
        "writes": ["STACK_TRACE"],
        "note": "both tracing and deep profiling walk the stack",
    }


# ---------------------------------------------------------------------------
# CLI
# ---------------------------------------------------------------------------


class TestRulesCli:
    def test_list_json(self) -> None:
        result, data = _json([])
        assert result.exit_code == 0
        assert [d["index"] for d in data] == list(range(len(DEFAULT_RULES)))

    def test_kind_filter(self) -> None:
        _, data = _json(["-k", "default"])
        assert [d["writes"] for d in data] == [["CHECK_DU_EQ"]]

    def test_flag_filter_accepts_prefix(self) -> None:
        _, data = _json(["-f", "mr_stack_trace"])
        kinds = [d["kind"] for d in data]
        assert kinds[:2] == ["reservation", "implication"]

    def test_fact_rules(self) -> None:
        _, data = _json(["-f", "MAC_OSX"])
        assert data[0]["facts"] == ["APPLE", "MACH"]

    def test_unknown_kind(self) -> None:
        result, data = _json(["-k", "bogus"])
        assert result.exit_code == 1
        assert "Unknown rule kind" in data["error"]

    def test_unknown_flag(self) -> None:
        result, data = _json(["-f", "NOT_A_FLAG"])
        assert result.exit_code == 1
        assert data["error"] == "No rule mentions NOT_A_FLAG"

    def test_empty_flag_name(self) -> None:
        result, data = _json(["-f", "MR_"])
        assert result.exit_code == 1
        assert "invalid flag name" in data["error"]

    def test_validate(self) -> None:
        result, data = _json(["--validate"])
        assert result.exit_code == 0
        assert data == {"valid": True, "violations": []}

    def test_validate_text(self) -> None:
        result = runner.invoke(rules_app, ["--validate"])
        assert result.exit_code == 0
        assert f"{len(DEFAULT_RULES)} rules, ordering OK" in result.output

    @pytest.mark.parametrize("args", [[], ["-k", "conflict"]])
    def test_table(self, args: list[str]) -> None:
        result = runner.invoke(rules_app, args)
        assert result.exit_code == 0, result.output
        assert "conflict" in result.output
