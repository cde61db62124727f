"""Guard predicates over a flag store.

Guards are small frozen values combined with ``&``, ``|`` and ``~``::

    Defined("EXEC_TRACE") | Defined("DEEP_PROFILING")
    Defined("THREAD_SAFE") & ~Defined("HIGHLEVEL_CODE")
    Fact("HAVE_MPROTECT") | Fact("WIN32")

``Defined``/``Equals``/``Truthy``/``Undefined`` read build options;
``Fact`` reads the platform namespace.
"""

from __future__ import annotations

from dataclasses import dataclass

from gradeconf.resolver.flags import (
    FlagStore,
    FlagValue,
    normalize_fact_name,
    normalize_flag_name,
)


class Guard:
    """Base class for guard predicates."""

    def __call__(self, store: FlagStore) -> bool:
        raise NotImplementedError

    def names(self) -> tuple[str, ...]:
        """Build-option names this guard reads, in first-mention order."""
        return ()

    def facts(self) -> tuple[str, ...]:
        """Platform fact names this guard reads."""
        return ()

    def describe(self) -> str:
        raise NotImplementedError

    def __and__(self, other: Guard) -> Guard:
        return AllOf((self, other))

    def __or__(self, other: Guard) -> Guard:
        return AnyOf((self, other))

    def __invert__(self) -> Guard:
        return Not(self)

    def __str__(self) -> str:
        return self.describe()


@dataclass(frozen=True)
class _Always(Guard):
    def __call__(self, store: FlagStore) -> bool:
        return True

    def describe(self) -> str:
        return "always"


Always = _Always()


@dataclass(frozen=True)
class Defined(Guard):
    """The option is assigned and not explicitly ``False``."""

    name: str

    def __post_init__(self) -> None:
        object.__setattr__(self, "name", normalize_flag_name(self.name))

    def __call__(self, store: FlagStore) -> bool:
        return store.is_on(self.name)

    def names(self) -> tuple[str, ...]:
        return (self.name,)

    def describe(self) -> str:
        return self.name


def Undefined(name: str) -> Guard:
    """The option is unassigned or explicitly ``False``."""
    return Not(Defined(name))


@dataclass(frozen=True)
class Equals(Guard):
    name: str
    value: FlagValue

    def __post_init__(self) -> None:
        object.__setattr__(self, "name", normalize_flag_name(self.name))

    def __call__(self, store: FlagStore) -> bool:
        return store.has(self.name) and store.get(self.name) == self.value

    def names(self) -> tuple[str, ...]:
        return (self.name,)

    def describe(self) -> str:
        return f"{self.name} == {self.value!r}"


@dataclass(frozen=True)
class Truthy(Guard):
    """Value test: assigned and truthy, so ``0`` and ``""`` do not count."""

    name: str

    def __post_init__(self) -> None:
        object.__setattr__(self, "name", normalize_flag_name(self.name))

    def __call__(self, store: FlagStore) -> bool:
        return bool(store.get(self.name))

    def names(self) -> tuple[str, ...]:
        return (self.name,)

    def describe(self) -> str:
        return f"value({self.name})"


@dataclass(frozen=True)
class Fact(Guard):
    """A platform capability fact is present and not false."""

    name: str

    def __post_init__(self) -> None:
        object.__setattr__(self, "name", normalize_fact_name(self.name))

    def __call__(self, store: FlagStore) -> bool:
        return store.fact(self.name)

    def facts(self) -> tuple[str, ...]:
        return (self.name,)

    def describe(self) -> str:
        return f"platform.{self.name}"


def _merge(groups) -> tuple[str, ...]:
    seen: dict[str, None] = {}
    for group in groups:
        for name in group:
            seen.setdefault(name, None)
    return tuple(seen)


@dataclass(frozen=True)
class AllOf(Guard):
    parts: tuple[Guard, ...]

    def __post_init__(self) -> None:
        # flatten nested conjunctions so a & b & c stays one level deep
        flat: list[Guard] = []
        for part in self.parts:
            flat.extend(part.parts if isinstance(part, AllOf) else (part,))
        object.__setattr__(self, "parts", tuple(flat))

    def __call__(self, store: FlagStore) -> bool:
        return all(part(store) for part in self.parts)

    def names(self) -> tuple[str, ...]:
        return _merge(p.names() for p in self.parts)

    def facts(self) -> tuple[str, ...]:
        return _merge(p.facts() for p in self.parts)

    def describe(self) -> str:
        return " & ".join(_wrap(p) for p in self.parts)


@dataclass(frozen=True)
class AnyOf(Guard):
    parts: tuple[Guard, ...]

    def __post_init__(self) -> None:
        flat: list[Guard] = []
        for part in self.parts:
            flat.extend(part.parts if isinstance(part, AnyOf) else (part,))
        object.__setattr__(self, "parts", tuple(flat))

    def __call__(self, store: FlagStore) -> bool:
        return any(part(store) for part in self.parts)

    def names(self) -> tuple[str, ...]:
        return _merge(p.names() for p in self.parts)

    def facts(self) -> tuple[str, ...]:
        return _merge(p.facts() for p in self.parts)

    def describe(self) -> str:
        return " | ".join(_wrap(p) for p in self.parts)


@dataclass(frozen=True)
class Not(Guard):
    part: Guard

    def __call__(self, store: FlagStore) -> bool:
        return not self.part(store)

    def names(self) -> tuple[str, ...]:
        return self.part.names()

    def facts(self) -> tuple[str, ...]:
        return self.part.facts()

    def describe(self) -> str:
        return f"!{_wrap(self.part)}"


def _wrap(guard: Guard) -> str:
    text = guard.describe()
    if isinstance(guard, (AllOf, AnyOf)):
        return f"({text})"
    return text


def any_defined(*names: str) -> Guard:
    """Disjunction of :class:`Defined` over *names*."""
    if len(names) == 1:
        return Defined(names[0])
    return AnyOf(tuple(Defined(n) for n in names))


def all_defined(*names: str) -> Guard:
    if len(names) == 1:
        return Defined(names[0])
    return AllOf(tuple(Defined(n) for n in names))
