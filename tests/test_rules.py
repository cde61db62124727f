"""Tests for the rule kinds and RuleSet, using small hand-built rule lists."""

import pytest

from gradeconf.resolver import (
    IncompatibleCombination,
    MissingPrerequisite,
    ReservedFlagSetExternally,
    RuleSet,
    resolve,
)
from gradeconf.resolver.guards import Defined, Fact, Undefined
from gradeconf.resolver.rules import (
    Conflict,
    Default,
    Implication,
    Requirement,
    Reservation,
    Retraction,
    implies,
    retracts,
)

# ---------------------------------------------------------------------------
# Individual rule kinds
# ---------------------------------------------------------------------------


class TestReservation:
    RULES = RuleSet((Reservation("DERIVED"), Implication(Defined("A"), "DERIVED")))

    def test_supplied_flag_is_rejected(self) -> None:
        with pytest.raises(ReservedFlagSetExternally) as exc_info:
            resolve({"DERIVED": True}, rules=self.RULES)
        assert exc_info.value.names == ("DERIVED",)
        assert exc_info.value.rule_index == 0

    def test_supplied_false_is_still_rejected(self) -> None:
        with pytest.raises(ReservedFlagSetExternally):
            resolve({"DERIVED": False}, rules=self.RULES)

    def test_prefixed_spelling_is_rejected(self) -> None:
        with pytest.raises(ReservedFlagSetExternally):
            resolve({"mr_derived": True}, rules=self.RULES)

    def test_derivation_is_allowed(self) -> None:
        assert resolve({"A": True}, rules=self.RULES)["DERIVED"] is True


class TestImplication:
    def test_sets_target(self) -> None:
        rules = RuleSet((Implication(Defined("A"), "B"),))
        assert resolve({"A": True}, rules=rules).is_on("B")

    def test_guard_false_leaves_store_alone(self) -> None:
        rules = RuleSet((Implication(Defined("A"), "B"),))
        assert "B" not in resolve({}, rules=rules)

    def test_non_boolean_value(self) -> None:
        rules = RuleSet((Implication(Defined("A"), "LEVEL", 2),))
        assert resolve({"A": True}, rules=rules)["LEVEL"] == 2

    def test_agreeing_value_is_accepted(self) -> None:
        rules = RuleSet((Implication(Defined("A"), "B", 1),))
        assert resolve({"A": True, "B": True}, rules=rules)["B"] is True

    @pytest.mark.parametrize("current", [0, 2, "gcc"])
    def test_defined_value_satisfies_true(self, current) -> None:
        rules = RuleSet((Implication(Defined("A"), "B"),))
        assert resolve({"A": True, "B": current}, rules=rules)["B"] == current

    def test_different_level_is_an_error(self) -> None:
        rules = RuleSet((Implication(Defined("A"), "LEVEL", 1),))
        with pytest.raises(IncompatibleCombination):
            resolve({"A": True, "LEVEL": 0}, rules=rules)

    def test_contradicting_value_is_an_error(self) -> None:
        rules = RuleSet((Implication(Defined("A"), "B"),))
        with pytest.raises(IncompatibleCombination) as exc_info:
            resolve({"A": True, "B": False}, rules=rules)
        assert exc_info.value.names == ("A", "B")
        assert "B must be True, got False" in str(exc_info.value)

    def test_contradiction_names_only_active_causes(self) -> None:
        rules = RuleSet((Implication(Defined("A") | Defined("C"), "B"),))
        with pytest.raises(IncompatibleCombination) as exc_info:
            resolve({"C": True, "B": False}, rules=rules)
        assert exc_info.value.names == ("C", "B")

    def test_fact_guard_contradiction_names_target(self) -> None:
        rules = RuleSet((Implication(Fact("PIC"), "PIC", 1),))
        with pytest.raises(IncompatibleCombination) as exc_info:
            resolve({"PIC": False}, {"__PIC__": True}, rules=rules)
        assert exc_info.value.names == ("PIC",)

    def test_chained_implications_follow_order(self) -> None:
        rules = RuleSet((Implication(Defined("A"), "B"), Implication(Defined("B"), "C")))
        assert resolve({"A": True}, rules=rules).enabled() == ["A", "B", "C"]

    def test_reverse_order_does_not_chain(self) -> None:
        rules = RuleSet((Implication(Defined("B"), "C"), Implication(Defined("A"), "B")))
        assert resolve({"A": True}, rules=rules).enabled() == ["A", "B"]

    def test_describe(self) -> None:
        assert Implication(Defined("A"), "B").describe() == "A -> B"
        assert Implication(Defined("A"), "B", 1).describe() == "A -> B = 1"


class TestRetraction:
    RULES = RuleSet(
        (
            Implication(Fact("PIC"), "PIC_REG", 1),
            Retraction(Fact("WIN32"), "PIC_REG"),
        )
    )

    def test_later_retraction_wins(self) -> None:
        resolved = resolve({}, {"__PIC__": True, "_WIN32": True}, rules=self.RULES)
        assert "PIC_REG" not in resolved
        assert resolved.value("PIC_REG") is False

    def test_without_platform_fact(self) -> None:
        assert resolve({}, {"__PIC__": True}, rules=self.RULES)["PIC_REG"] == 1

    def test_clears_explicit_input(self) -> None:
        resolved = resolve({"PIC_REG": 1}, {"WIN32": True}, rules=self.RULES)
        assert "PIC_REG" not in resolved

    def test_trace_only_when_something_was_cleared(self) -> None:
        resolved = resolve({}, {"WIN32": True}, rules=self.RULES)
        assert resolved.trace == ()

    def test_retracts_helper(self) -> None:
        rules = retracts(Undefined("A"), "X", "Y")
        assert [r.target for r in rules] == ["X", "Y"]
        assert all(r.kind == "retraction" for r in rules)


class TestConflict:
    def test_names_default_to_guard_names(self) -> None:
        rule = Conflict(Defined("A") & Defined("B"))
        assert rule.names == ("A", "B")

    def test_explicit_names(self) -> None:
        rule = Conflict(Defined("A") & Undefined("B"), names=("A", "mr_b"))
        assert rule.names == ("A", "B")

    def test_fires(self) -> None:
        rules = RuleSet((Conflict(Defined("A") & Defined("B"), note="pick one"),))
        with pytest.raises(IncompatibleCombination) as exc_info:
            resolve({"A": True, "B": True}, rules=rules)
        assert str(exc_info.value) == "A and B are not supported together: pick one"
        assert exc_info.value.rule_index == 0

    def test_false_input_does_not_fire(self) -> None:
        rules = RuleSet((Conflict(Defined("A") & Defined("B")),))
        assert resolve({"A": True, "B": False}, rules=rules).enabled() == ["A"]


class TestRequirement:
    RULES = RuleSet((Requirement("FEATURE", "BASE"),))

    def test_missing(self) -> None:
        with pytest.raises(MissingPrerequisite) as exc_info:
            resolve({"FEATURE": True}, rules=self.RULES)
        assert exc_info.value.names == ("FEATURE", "BASE")
        assert str(exc_info.value) == "FEATURE requires BASE"

    def test_satisfied(self) -> None:
        assert resolve({"FEATURE": True, "BASE": True}, rules=self.RULES).is_on("FEATURE")

    def test_prerequisite_turned_off(self) -> None:
        with pytest.raises(MissingPrerequisite):
            resolve({"FEATURE": True, "BASE": False}, rules=self.RULES)

    def test_feature_absent(self) -> None:
        assert len(resolve({}, rules=self.RULES)) == 0


class TestDefault:
    def test_sets_unassigned(self) -> None:
        rules = RuleSet((Default("CHECK"),))
        resolved = resolve({}, rules=rules)
        assert resolved["CHECK"] is True
        assert resolved.trace[0].effect == "defaulted"

    def test_keeps_explicit_false(self) -> None:
        rules = RuleSet((Default("CHECK"),))
        assert resolve({"CHECK": False}, rules=rules)["CHECK"] is False

    def test_override_flag_suppresses(self) -> None:
        rules = RuleSet((Default("CHECK", unless=Defined("DISABLE_CHECK")),))
        assert "CHECK" not in resolve({"DISABLE_CHECK": True}, rules=rules)

    def test_override_turned_off(self) -> None:
        rules = RuleSet((Default("CHECK", unless=Defined("DISABLE_CHECK")),))
        assert resolve({"DISABLE_CHECK": False}, rules=rules).is_on("CHECK")

    def test_describe(self) -> None:
        rule = Default("CHECK", unless=Defined("DISABLE_CHECK"))
        assert rule.describe() == "default CHECK unless DISABLE_CHECK"


def test_implies_fans_out() -> None:
    rules = implies(Defined("A"), "X", "Y", value=2)
    assert [(r.target, r.value) for r in rules] == [("X", 2), ("Y", 2)]


# ---------------------------------------------------------------------------
# RuleSet
# ---------------------------------------------------------------------------


class TestRuleSet:
    RULES = RuleSet(
        (
            Reservation("D"),
            Implication(Defined("A"), "D"),
            Conflict(Defined("D") & Defined("C")),
            Default("E"),
        ),
        name="sample",
    )

    def test_sequence_protocol(self) -> None:
        assert len(self.RULES) == 4
        assert self.RULES[3].kind == "default"
        assert [r.kind for r in self.RULES] == [
            "reservation",
            "implication",
            "conflict",
            "default",
        ]

    def test_reserved_and_flags(self) -> None:
        assert self.RULES.reserved == frozenset({"D"})
        assert self.RULES.flags == frozenset({"A", "C", "D", "E"})
        assert self.RULES.derived == frozenset({"D", "E"})

    def test_facts(self) -> None:
        rules = RuleSet((Implication(Fact("_WIN32") | Fact("__CYGWIN__"), "X"),))
        assert rules.facts() == frozenset({"WIN32", "CYGWIN"})

    def test_of_kind(self) -> None:
        assert [i for i, _ in self.RULES.of_kind("implication")] == [1]

    def test_touching(self) -> None:
        assert [i for i, _ in self.RULES.touching("mr_d")] == [0, 1, 2]
        assert self.RULES.touching("ZZZ") == []

    def test_rule_list_is_shared_between_calls(self) -> None:
        first = resolve({"A": True}, rules=self.RULES)
        second = resolve({}, rules=self.RULES)
        assert first.is_on("D")
        assert not second.is_on("D")


class TestValidate:
    def test_clean(self) -> None:
        assert TestRuleSet.RULES.validate() == []

    def test_read_before_write(self) -> None:
        rules = RuleSet(
            (
                Reservation("X"),
                Implication(Defined("X"), "Y"),
                Implication(Defined("A"), "X"),
            )
        )
        (violation,) = rules.validate()
        assert (violation.flag, violation.read_index, violation.write_index) == ("X", 1, 2)
        assert str(violation) == "rule 1 reads X before it is derived (derived at rule 2)"

    def test_never_derived(self) -> None:
        rules = RuleSet((Reservation("X"), Conflict(Defined("X") & Defined("A"))))
        (violation,) = rules.validate()
        assert violation.write_index is None
        assert "never derived" in str(violation)

    def test_unreserved_reads_are_ignored(self) -> None:
        rules = RuleSet((Implication(Defined("B"), "C"), Implication(Defined("A"), "B")))
        assert rules.validate() == []
