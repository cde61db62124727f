"""Resolution failures.

Every failure is fatal for the call that raised it: the resolver stops at the
first violated rule and returns no partial configuration.
"""

from __future__ import annotations


class ConfigError(Exception):
    """Base class for resolution failures.

    Attributes:
        kind: Stable error kind name (the subclass name).
        names: Flags involved, in the order the failing rule lists them.
        rule_index: Position of the failing rule in the rule list, if known.
    """

    kind = "ConfigError"

    def __init__(self, message: str, names: tuple[str, ...] = (), rule_index: int | None = None):
        super().__init__(message)
        self.names = tuple(names)
        self.rule_index = rule_index

    def to_dict(self) -> dict[str, object]:
        return {
            "error": str(self),
            "kind": self.kind,
            "names": list(self.names),
            "rule_index": self.rule_index,
        }


class ReservedFlagSetExternally(ConfigError):
    """The caller supplied a flag that may only be derived."""

    kind = "ReservedFlagSetExternally"

    def __init__(self, name: str, rule_index: int | None = None):
        super().__init__(
            f"{name} should not be set by the caller; it is derived from other flags",
            (name,),
            rule_index,
        )
        self.name = name


class IncompatibleCombination(ConfigError):
    """Two or more requested or derived flags are mutually exclusive."""

    kind = "IncompatibleCombination"

    def __init__(self, names, rule_index: int | None = None, reason: str = ""):
        names = tuple(names)
        message = " and ".join(names) + " are not supported together"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message, names, rule_index)
        self.reason = reason


class MissingPrerequisite(ConfigError):
    """A requested feature lacks a flag it requires."""

    kind = "MissingPrerequisite"

    def __init__(self, name: str, requires: str, rule_index: int | None = None):
        super().__init__(f"{name} requires {requires}", (name, requires), rule_index)
        self.name = name
        self.requires = requires
