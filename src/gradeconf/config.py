"""Project configuration loader for gradeconf.

Reads ``gradeconf.toml`` from the project root.  Each target names the build
options requested for one grade; platform facts are shared across targets
and may be overridden per target.

Example::

    [project]
    name = "runtime"
    jobs = 4

    [platform]                       # shared by every target
    have_mprotect = true
    have_siginfo = true

    [targets.asm_fast_gc.flags]
    USE_GCC_GLOBAL_REGISTERS = true
    USE_GCC_NONLOCAL_GOTOS = true
    USE_ASM_LABELS = true
    BOEHM_GC = true

    [targets.hlc_par]
    flags = { HIGHLEVEL_CODE = true, THREAD_SAFE = true }
    platform = { pic = true }        # merged over [platform]

Usage::

    from gradeconf.config import load_config

    cfg = load_config(target="hlc_par")
    resolved = resolve(cfg.flags, cfg.platform)
"""

from __future__ import annotations

import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from gradeconf.resolver.flags import FlagValue, normalize_assignment, normalize_facts

CONFIG_FILENAME = "gradeconf.toml"


@dataclass
class ProjectConfig:
    """Parsed configuration for one target."""

    # Root directory (where gradeconf.toml lives)
    root: Path

    # Target name (key under [targets])
    target_name: str = ""

    # --- [project] ---
    project_name: str = ""
    jobs: int = 4

    # --- per-target, normalised ---
    flags: dict[str, FlagValue] = field(default_factory=dict)
    platform: dict[str, FlagValue] = field(default_factory=dict)

    # --- All known target names, in file order ---
    all_targets: list[str] = field(default_factory=list)

    @property
    def config_path(self) -> Path:
        return self.root / CONFIG_FILENAME


def _find_root(start: Path | None = None) -> Path:
    """Walk up from *start* (or cwd) to find gradeconf.toml."""
    if start is not None:
        return start
    candidate = Path.cwd().resolve()
    while True:
        if (candidate / CONFIG_FILENAME).exists():
            return candidate
        if candidate == candidate.parent:
            break
        candidate = candidate.parent
    raise FileNotFoundError(
        f"Could not find {CONFIG_FILENAME} in any parent of the current directory. "
        "Run 'gradeconf init' to create one."
    )


def _table(raw: Any, where: str) -> dict[str, Any]:
    if raw is None:
        return {}
    if not isinstance(raw, dict):
        raise ValueError(f"{where} must be a table, got {type(raw).__name__}")
    return raw


def load_raw(root: Path | None = None) -> tuple[Path, dict[str, Any]]:
    """Return ``(root, parsed TOML)`` without selecting a target."""
    root = _find_root(root)
    toml_path = root / CONFIG_FILENAME
    if not toml_path.exists():
        raise FileNotFoundError(f"Config not found: {toml_path}")
    with open(toml_path, "rb") as f:
        return root, tomllib.load(f)


def load_config(
    root: Path | None = None,
    target: str | None = None,
) -> ProjectConfig:
    """Load gradeconf.toml.

    Args:
        root: Project root directory.  Auto-detected if ``None``.
        target: Name of the target to load (key under ``[targets]``).
                Defaults to the first target defined in the file.

    Raises:
        FileNotFoundError: no gradeconf.toml was found.
        KeyError: the file has no targets, or *target* is not one of them.
        ValueError: a section has the wrong shape or a value has an
            unsupported type.
    """
    root, raw = load_raw(root)

    project = _table(raw.get("project"), "[project]")
    shared_platform = _table(raw.get("platform"), "[platform]")
    targets = _table(raw.get("targets"), "[targets]")
    all_target_names = list(targets.keys())

    if not targets:
        raise KeyError(f"{CONFIG_FILENAME} has no [targets] section")
    if target is None:
        target = all_target_names[0]
    if target not in targets:
        raise KeyError(
            f"Target '{target}' not found in {CONFIG_FILENAME}.  "
            f"Available targets: {all_target_names}"
        )

    tgt = _table(targets[target], f"[targets.{target}]")
    flags = _table(tgt.get("flags"), f"[targets.{target}.flags]")
    platform = {
        **normalize_facts(shared_platform),
        **normalize_facts(_table(tgt.get("platform"), f"[targets.{target}.platform]")),
    }

    jobs = project.get("jobs", 4)
    if not isinstance(jobs, int) or isinstance(jobs, bool) or jobs < 1:
        raise ValueError(f"[project] jobs must be a positive integer, got {jobs!r}")

    return ProjectConfig(
        root=root,
        target_name=target,
        project_name=project.get("name", root.name),
        jobs=jobs,
        flags=normalize_assignment(flags),
        platform=platform,
        all_targets=all_target_names,
    )
