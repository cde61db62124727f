"""Flag values, name normalisation, and the per-call flag store.

Build options and platform capability facts live in separate namespaces.
Options are mutated by rules during a single resolution pass; facts are
read-only ground truth supplied by a platform probe.

A value of ``False`` is an explicit "off" assignment: it occupies the flag
(defaults will not overwrite it, an implication to ``True`` contradicts it)
but guards treat it as not defined.
"""

from __future__ import annotations

from collections.abc import Iterator, Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import TYPE_CHECKING, Union

if TYPE_CHECKING:
    from gradeconf.resolver.rules import Rule

FlagValue = Union[bool, int, str]

_OPTION_PREFIX = "MR_"


def normalize_flag_name(name: str) -> str:
    """Canonical build-option name: upper-case, without the ``MR_`` prefix."""
    if not isinstance(name, str):
        raise TypeError(f"flag name must be a string, got {type(name).__name__}")
    canon = name.strip().upper()
    if canon.startswith(_OPTION_PREFIX):
        canon = canon[len(_OPTION_PREFIX) :]
    if not canon:
        raise ValueError(f"invalid flag name: {name!r}")
    return canon


def normalize_fact_name(name: str) -> str:
    """Canonical platform-fact name.

    Toolchain symbols are accepted as written: ``__pic__`` and ``__PIC__``
    both become ``PIC``, ``_WIN32`` becomes ``WIN32``.
    """
    if not isinstance(name, str):
        raise TypeError(f"fact name must be a string, got {type(name).__name__}")
    return normalize_flag_name(name.strip().strip("_"))


def _check_value(name: str, value: object) -> FlagValue:
    if isinstance(value, (bool, int, str)):
        return value
    raise ValueError(
        f"unsupported value for {name}: {value!r} (expected bool, int or str)"
    )


def _normalize_mapping(
    raw: Mapping[str, object] | None, normalize
) -> dict[str, FlagValue]:
    out: dict[str, FlagValue] = {}
    if not raw:
        return out
    for key, value in raw.items():
        name = normalize(key)
        value = _check_value(name, value)
        if name in out and out[name] != value:
            raise ValueError(
                f"{key!r} collides with another spelling of {name} "
                f"({out[name]!r} vs {value!r})"
            )
        out[name] = value
    return out


def normalize_assignment(raw: Mapping[str, object] | None) -> dict[str, FlagValue]:
    """Normalise an initial build-option assignment."""
    return _normalize_mapping(raw, normalize_flag_name)


def normalize_facts(raw: Mapping[str, object] | None) -> dict[str, FlagValue]:
    """Normalise a platform capability map."""
    return _normalize_mapping(raw, normalize_fact_name)


def is_on(value: FlagValue | None) -> bool:
    """True if *value* counts as defined for guards."""
    return value is not None and value is not False


class FlagStore:
    """Mutable option store private to one resolution call."""

    def __init__(
        self,
        initial: Mapping[str, FlagValue] | None = None,
        platform: Mapping[str, FlagValue] | None = None,
    ) -> None:
        self._options: dict[str, FlagValue] = dict(initial or {})
        self._platform = MappingProxyType(dict(platform or {}))

    def get(self, name: str) -> FlagValue | None:
        return self._options.get(name)

    def has(self, name: str) -> bool:
        """True if *name* holds any assignment, including explicit ``False``."""
        return name in self._options

    def is_on(self, name: str) -> bool:
        return is_on(self._options.get(name))

    def fact(self, name: str) -> bool:
        return is_on(self._platform.get(name))

    @property
    def platform(self) -> Mapping[str, FlagValue]:
        return self._platform

    def set(self, name: str, value: FlagValue) -> None:
        self._options[name] = value

    def clear(self, name: str) -> None:
        self._options.pop(name, None)

    def snapshot(self) -> dict[str, FlagValue]:
        return dict(self._options)

    def freeze(
        self,
        *,
        known: frozenset[str] = frozenset(),
        reserved: frozenset[str] = frozenset(),
        inputs: frozenset[str] = frozenset(),
        trace: tuple[TraceStep, ...] = (),
    ) -> ResolvedConfiguration:
        return ResolvedConfiguration(
            options=MappingProxyType(dict(sorted(self._options.items()))),
            platform=self._platform,
            known=known,
            reserved=reserved,
            inputs=inputs,
            trace=trace,
        )


@dataclass(frozen=True)
class TraceStep:
    """One rule application that changed the store."""

    index: int
    rule: Rule
    effect: str  # "set", "cleared" or "defaulted"
    flag: str
    value: FlagValue | None = None

    def to_dict(self) -> dict[str, object]:
        return {
            "index": self.index,
            "kind": self.rule.kind,
            "effect": self.effect,
            "flag": self.flag,
            "value": self.value,
            "rule": self.rule.describe(),
        }


@dataclass(frozen=True)
class ResolvedConfiguration(Mapping[str, FlagValue]):
    """Frozen result of a resolution call.

    Behaves as a read-only mapping over the assigned build options only:
    lookups accept any spelling of a name, but a flag that was never
    assigned (or was retracted) raises ``KeyError``.  Only ``value()`` and
    ``to_dict(total=True)`` cover every flag the rule list knows, reporting
    ``False`` for the unassigned ones.
    """

    options: Mapping[str, FlagValue]
    platform: Mapping[str, FlagValue] = field(default_factory=lambda: MappingProxyType({}))
    known: frozenset[str] = field(default=frozenset(), compare=False)
    reserved: frozenset[str] = field(default=frozenset(), compare=False)
    inputs: frozenset[str] = field(default=frozenset(), compare=False)
    trace: tuple[TraceStep, ...] = field(default=(), compare=False, repr=False)

    def __getitem__(self, name: str) -> FlagValue:
        return self.options[normalize_flag_name(name)]

    def __contains__(self, name: object) -> bool:
        try:
            self[name]
        except (KeyError, TypeError, ValueError):
            return False
        return True

    def __iter__(self) -> Iterator[str]:
        return iter(self.options)

    def __len__(self) -> int:
        return len(self.options)

    def __hash__(self) -> int:
        return hash((frozenset(self.options.items()), frozenset(self.platform.items())))

    def is_on(self, name: str) -> bool:
        return is_on(self.options.get(normalize_flag_name(name)))

    def value(self, name: str, default: FlagValue = False) -> FlagValue:
        """Resolved value of *name*, or *default* if it was never assigned."""
        name = normalize_flag_name(name)
        if name in self.options:
            return self.options[name]
        if self.known and name not in self.known:
            raise KeyError(f"unknown flag: {name}")
        return default

    def enabled(self) -> list[str]:
        """Sorted names of every flag that is on."""
        return sorted(n for n, v in self.options.items() if is_on(v))

    def derived(self) -> list[str]:
        """Sorted names of assigned flags that were not part of the input."""
        return sorted(n for n in self.options if n not in self.inputs)

    def as_initial(self) -> dict[str, FlagValue]:
        """Options suitable for feeding back in as an initial assignment.

        Reserved flags are dropped: they may only be derived, and resolving
        again re-derives them.
        """
        return {n: v for n, v in self.options.items() if n not in self.reserved}

    def to_dict(self, *, total: bool = False) -> dict[str, FlagValue]:
        if not total:
            return dict(self.options)
        out: dict[str, FlagValue] = {name: False for name in sorted(self.known)}
        out.update(self.options)
        return out
