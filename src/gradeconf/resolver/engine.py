"""Single-pass resolution of a flag assignment against a rule list.

Usage::

    from gradeconf.resolver import resolve

    resolved = resolve({"DEEP_PROFILING": True}, {"have_mprotect": True})
    resolved.is_on("STACK_TRACE")        # True
    resolved.value("PIC_REG")            # False

Each call owns its store, so a rule list can be shared freely between
threads resolving different targets.
"""

from __future__ import annotations

from collections.abc import Mapping

from gradeconf.resolver.errors import ConfigError
from gradeconf.resolver.flags import (
    FlagStore,
    ResolvedConfiguration,
    TraceStep,
    normalize_assignment,
    normalize_facts,
)
from gradeconf.resolver.rule_data import DEFAULT_RULES
from gradeconf.resolver.rules import RuleSet


def resolve(
    initial: Mapping[str, object] | None = None,
    platform: Mapping[str, object] | None = None,
    rules: RuleSet = DEFAULT_RULES,
) -> ResolvedConfiguration:
    """Resolve *initial* build options against *platform* facts.

    Rules are applied once, in declaration order.  The first violated rule
    raises a :class:`ConfigError`; no partial result is returned.

    Raises:
        ConfigError: a reservation, conflict, requirement or contradicting
            implication fired.
        ValueError: two spellings of one name carry different values, or a
            value is not a bool, int or str.
    """
    options = normalize_assignment(initial)
    facts = normalize_facts(platform)
    inputs = frozenset(options)

    store = FlagStore(options, facts)
    trace: list[TraceStep] = []
    for index, rule in enumerate(rules):
        step = rule.apply(store, inputs, index)
        if step is not None:
            trace.append(step)

    return store.freeze(
        known=rules.flags,
        reserved=rules.reserved,
        inputs=inputs,
        trace=tuple(trace),
    )


def check(
    initial: Mapping[str, object] | None = None,
    platform: Mapping[str, object] | None = None,
    rules: RuleSet = DEFAULT_RULES,
) -> ConfigError | None:
    """Return the error :func:`resolve` would raise, or ``None``."""
    try:
        resolve(initial, platform, rules)
    except ConfigError as exc:
        return exc
    return None


def is_idempotent(
    resolved: ResolvedConfiguration,
    platform: Mapping[str, object] | None = None,
    rules: RuleSet = DEFAULT_RULES,
) -> bool:
    """True if feeding *resolved* back in reproduces it."""
    if platform is None:
        platform = resolved.platform
    try:
        again = resolve(resolved.as_initial(), platform, rules)
    except ConfigError:
        return False
    return again == resolved
