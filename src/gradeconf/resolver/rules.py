"""Rule kinds and the ordered rule list.

A rule inspects the flag store and either leaves it alone, changes one
option, or raises a :class:`~gradeconf.resolver.errors.ConfigError`.
Rules are frozen values; a :class:`RuleSet` is an ordered tuple of them and
its order is the evaluation order.

Kinds:

Reservation   the flag may only be derived; supplying it is an error
Implication   guard holds -> set target (contradicting value is an error)
Retraction    guard holds -> clear target
Conflict      guard holds -> IncompatibleCombination
Requirement   feature defined without its prerequisite -> MissingPrerequisite
Default       target unassigned (and no override) -> set target
"""

from __future__ import annotations

from collections.abc import Iterator, Set
from dataclasses import dataclass, field

from gradeconf.resolver.errors import (
    IncompatibleCombination,
    MissingPrerequisite,
    ReservedFlagSetExternally,
)
from gradeconf.resolver.flags import FlagStore, FlagValue, TraceStep, is_on, normalize_flag_name
from gradeconf.resolver.guards import Guard

RULE_KINDS = ("reservation", "implication", "retraction", "conflict", "requirement", "default")


class Rule:
    """Base class for rules."""

    kind = ""
    note = ""

    def apply(
        self, store: FlagStore, inputs: Set[str], index: int
    ) -> TraceStep | None:
        """Apply the rule; return a trace step if the store changed."""
        raise NotImplementedError

    def reads(self) -> tuple[str, ...]:
        """Build options this rule inspects in the store."""
        return ()

    def facts(self) -> tuple[str, ...]:
        return ()

    def writes(self) -> tuple[str, ...]:
        """Build options this rule may assign or clear."""
        return ()

    def describe(self) -> str:
        raise NotImplementedError


@dataclass(frozen=True)
class Reservation(Rule):
    flag: str
    note: str = ""
    kind = "reservation"

    def __post_init__(self) -> None:
        object.__setattr__(self, "flag", normalize_flag_name(self.flag))

    def apply(self, store, inputs, index):
        if self.flag in inputs:
            raise ReservedFlagSetExternally(self.flag, rule_index=index)
        return None

    def writes(self) -> tuple[str, ...]:
        return ()

    def describe(self) -> str:
        return f"{self.flag} must not be supplied"


@dataclass(frozen=True)
class Implication(Rule):
    when: Guard
    target: str
    value: FlagValue = True
    note: str = ""
    kind = "implication"

    def __post_init__(self) -> None:
        object.__setattr__(self, "target", normalize_flag_name(self.target))

    def apply(self, store, inputs, index):
        if not self.when(store):
            return None
        if store.has(self.target):
            current = store.get(self.target)
            # any defined value satisfies an implication to True; only False contradicts it
            if self.value is True and is_on(current):
                return None
            if current == self.value:
                return None
            causes = [n for n in self.when.names() if store.is_on(n)]
            raise IncompatibleCombination(
                [*causes, self.target],
                rule_index=index,
                reason=f"{self.target} must be {self.value!r}, got {current!r}",
            )
        store.set(self.target, self.value)
        return TraceStep(index, self, "set", self.target, self.value)

    def reads(self) -> tuple[str, ...]:
        return self.when.names()

    def facts(self) -> tuple[str, ...]:
        return self.when.facts()

    def writes(self) -> tuple[str, ...]:
        return (self.target,)

    def describe(self) -> str:
        value = "" if self.value is True else f" = {self.value!r}"
        return f"{self.when.describe()} -> {self.target}{value}"


@dataclass(frozen=True)
class Retraction(Rule):
    when: Guard
    target: str
    note: str = ""
    kind = "retraction"

    def __post_init__(self) -> None:
        object.__setattr__(self, "target", normalize_flag_name(self.target))

    def apply(self, store, inputs, index):
        if not self.when(store) or not store.has(self.target):
            return None
        store.clear(self.target)
        return TraceStep(index, self, "cleared", self.target)

    def reads(self) -> tuple[str, ...]:
        return self.when.names()

    def facts(self) -> tuple[str, ...]:
        return self.when.facts()

    def writes(self) -> tuple[str, ...]:
        return (self.target,)

    def describe(self) -> str:
        return f"{self.when.describe()} -> clear {self.target}"


@dataclass(frozen=True)
class Conflict(Rule):
    when: Guard
    names: tuple[str, ...] = ()
    note: str = ""
    kind = "conflict"

    def __post_init__(self) -> None:
        names = self.names or self.when.names() or self.when.facts()
        object.__setattr__(self, "names", tuple(normalize_flag_name(n) for n in names))

    def apply(self, store, inputs, index):
        if self.when(store):
            raise IncompatibleCombination(self.names, rule_index=index, reason=self.note)
        return None

    def reads(self) -> tuple[str, ...]:
        return self.when.names()

    def facts(self) -> tuple[str, ...]:
        return self.when.facts()

    def describe(self) -> str:
        return f"{self.when.describe()} -> error"


@dataclass(frozen=True)
class Requirement(Rule):
    feature: str
    requires: str
    note: str = ""
    kind = "requirement"

    def __post_init__(self) -> None:
        object.__setattr__(self, "feature", normalize_flag_name(self.feature))
        object.__setattr__(self, "requires", normalize_flag_name(self.requires))

    def apply(self, store, inputs, index):
        if store.is_on(self.feature) and not store.is_on(self.requires):
            raise MissingPrerequisite(self.feature, self.requires, rule_index=index)
        return None

    def reads(self) -> tuple[str, ...]:
        return (self.feature, self.requires)

    def describe(self) -> str:
        return f"{self.feature} requires {self.requires}"


@dataclass(frozen=True)
class Default(Rule):
    """Set *target* when unassigned, unless the *unless* override holds.

    The override form models "set X unless DISABLE_X is set": the check is
    on the override flag, not only on X itself.
    """

    target: str
    value: FlagValue = True
    unless: Guard | None = None
    note: str = ""
    kind = "default"

    def __post_init__(self) -> None:
        object.__setattr__(self, "target", normalize_flag_name(self.target))

    def apply(self, store, inputs, index):
        if store.has(self.target):
            return None
        if self.unless is not None and self.unless(store):
            return None
        store.set(self.target, self.value)
        return TraceStep(index, self, "defaulted", self.target, self.value)

    def reads(self) -> tuple[str, ...]:
        return self.unless.names() if self.unless is not None else ()

    def facts(self) -> tuple[str, ...]:
        return self.unless.facts() if self.unless is not None else ()

    def writes(self) -> tuple[str, ...]:
        return (self.target,)

    def describe(self) -> str:
        value = "" if self.value is True else f" = {self.value!r}"
        text = f"default {self.target}{value}"
        if self.unless is not None:
            text += f" unless {self.unless.describe()}"
        return text


def implies(when: Guard, *targets: str, value: FlagValue = True, note: str = "") -> tuple[Implication, ...]:
    """Fan one guard out to several implied targets."""
    return tuple(Implication(when, t, value, note=note) for t in targets)


def retracts(when: Guard, *targets: str, note: str = "") -> tuple[Retraction, ...]:
    return tuple(Retraction(when, t, note=note) for t in targets)


@dataclass(frozen=True)
class OrderViolation:
    """A rule that reads a derived-only flag before the rule that derives it."""

    flag: str
    read_index: int
    write_index: int | None

    def __str__(self) -> str:
        where = (
            f"derived at rule {self.write_index}"
            if self.write_index is not None
            else "never derived"
        )
        return f"rule {self.read_index} reads {self.flag} before it is derived ({where})"


@dataclass(frozen=True)
class RuleSet:
    """An ordered, immutable rule list."""

    rules: tuple[Rule, ...]
    name: str = ""
    _reserved: frozenset[str] = field(init=False, repr=False, compare=False)
    _flags: frozenset[str] = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        rules = tuple(self.rules)
        object.__setattr__(self, "rules", rules)
        object.__setattr__(
            self,
            "_reserved",
            frozenset(r.flag for r in rules if isinstance(r, Reservation)),
        )
        names: set[str] = set(self._reserved)
        for rule in rules:
            names.update(rule.reads())
            names.update(rule.writes())
            if isinstance(rule, Conflict):
                names.update(rule.names)
        object.__setattr__(self, "_flags", frozenset(names))

    def __iter__(self) -> Iterator[Rule]:
        return iter(self.rules)

    def __len__(self) -> int:
        return len(self.rules)

    def __getitem__(self, index: int) -> Rule:
        return self.rules[index]

    @property
    def reserved(self) -> frozenset[str]:
        """Flags that may only be derived, never supplied."""
        return self._reserved

    @property
    def flags(self) -> frozenset[str]:
        """Every build option the rule list reads or writes."""
        return self._flags

    @property
    def derived(self) -> frozenset[str]:
        return frozenset(n for r in self.rules for n in r.writes())

    def facts(self) -> frozenset[str]:
        return frozenset(n for r in self.rules for n in r.facts())

    def of_kind(self, kind: str) -> list[tuple[int, Rule]]:
        return [(i, r) for i, r in enumerate(self.rules) if r.kind == kind]

    def touching(self, flag: str) -> list[tuple[int, Rule]]:
        """Rules that read, write or reserve *flag*."""
        flag = normalize_flag_name(flag)
        out = []
        for i, rule in enumerate(self.rules):
            names = set(rule.reads()) | set(rule.writes())
            if isinstance(rule, Reservation):
                names.add(rule.flag)
            if isinstance(rule, Conflict):
                names.update(rule.names)
            if flag in names:
                out.append((i, rule))
        return out

    def validate(self) -> list[OrderViolation]:
        """Check that no rule reads a reserved flag before it is derived."""
        first_write: dict[str, int] = {}
        for i, rule in enumerate(self.rules):
            for name in rule.writes():
                first_write.setdefault(name, i)

        violations: list[OrderViolation] = []
        for i, rule in enumerate(self.rules):
            for name in rule.reads():
                if name not in self._reserved:
                    continue
                written = first_write.get(name)
                if written is None or written >= i:
                    violations.append(OrderViolation(name, i, written))
        return violations
