"""resolve.py – Resolve one target's build options into a full flag set.

Options come from the target's ``[targets.<name>.flags]`` table in
gradeconf.toml, overlaid by ``-D NAME[=VALUE]`` on the command line.
Platform facts come from ``[platform]`` and the target's own ``platform``
table, overlaid by ``-P FACT[=VALUE]``.
"""

from typing import Any

import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from gradeconf.cli import (
    TargetOption,
    error_exit,
    exc_message,
    json_print,
    parse_assignments,
)
from gradeconf.config import load_config
from gradeconf.resolver import ConfigError, ResolvedConfiguration, resolve
from gradeconf.resolver.flags import FlagValue, is_on, normalize_assignment, normalize_facts

console = Console()


def load_inputs(
    target: str | None,
    *,
    use_config: bool = True,
    json_mode: bool = False,
) -> tuple[str, dict[str, FlagValue], dict[str, FlagValue]]:
    """Return ``(target name, options, facts)`` from gradeconf.toml.

    Without a config file (and without an explicit ``--target``) the inputs
    are empty, so ``-D``/``-P`` alone can drive a resolution.
    """
    if not use_config:
        return "", {}, {}
    try:
        cfg = load_config(target=target)
    except FileNotFoundError as exc:
        if target is not None:
            error_exit(exc_message(exc), json_mode=json_mode)
        return "", {}, {}
    except (KeyError, ValueError) as exc:
        error_exit(exc_message(exc), json_mode=json_mode)
    return cfg.target_name, dict(cfg.flags), dict(cfg.platform)


def format_value(value: FlagValue) -> str:
    if value is True:
        return "yes"
    if value is False:
        return "no"
    return str(value)


def resolution_to_dict(target: str, resolved: ResolvedConfiguration, *, total: bool) -> dict[str, Any]:
    return {
        "target": target,
        "flags": resolved.to_dict(total=total),
        "platform": dict(resolved.platform),
        "derived": resolved.derived(),
        "trace": [step.to_dict() for step in resolved.trace],
    }


def render_flags(resolved: ResolvedConfiguration, *, show_all: bool = False, title: str = "") -> Table:
    tbl = Table(title=title or None, show_header=True, header_style="bold", box=None, padding=(0, 2))
    tbl.add_column("Flag")
    tbl.add_column("Value", justify="right")
    tbl.add_column("Origin")

    values = resolved.to_dict(total=show_all)
    for name in sorted(values):
        value = values[name]
        if not show_all and not is_on(value):
            continue
        if name in resolved.inputs:
            origin = "input"
        elif name in resolved:
            origin = "[cyan]derived[/]"
        else:
            origin = "[dim]-[/]"
        style = None if is_on(value) else "dim"
        tbl.add_row(name, format_value(value), origin, style=style)
    return tbl


def render_trace(resolved: ResolvedConfiguration) -> Table:
    tbl = Table(title="Trace", show_header=True, header_style="bold", box=None, padding=(0, 2))
    tbl.add_column("#", justify="right")
    tbl.add_column("Kind")
    tbl.add_column("Effect")
    tbl.add_column("Rule")
    for step in resolved.trace:
        value = "" if step.value in (None, True) else f" = {step.value!r}"
        tbl.add_row(str(step.index), step.rule.kind, f"{step.effect} {step.flag}{value}", step.rule.describe())
    return tbl


# ---------------------------------------------------------------------------
# CLI
# ---------------------------------------------------------------------------

app = typer.Typer(
    help="Resolve a target's build options into the full flag set.",
    rich_markup_mode="rich",
    epilog="""\
[bold]Examples:[/bold]

gradeconf resolve                              First target in gradeconf.toml

gradeconf resolve -t hlc_par --trace           Show which rules fired

gradeconf resolve --no-config -D DEEP_PROFILING
                                               Resolve command-line flags only

gradeconf resolve -D HIGHLEVEL_CODE -P _WIN32  Add a flag and a platform fact

gradeconf resolve --all --json                 Every known flag, as JSON

[dim]-D takes NAME or NAME=VALUE (MR_ prefix optional).
-P takes toolchain or probe names such as __PIC__ or HAVE_MPROTECT.[/dim]""",
)


@app.callback(invoke_without_command=True)
def main(
    target: str | None = TargetOption,
    define: list[str] | None = typer.Option(
        None, "--define", "-D", help="Build option NAME[=VALUE] (repeatable)."
    ),
    fact: list[str] | None = typer.Option(
        None, "--fact", "-P", help="Platform fact NAME[=VALUE] (repeatable)."
    ),
    no_config: bool = typer.Option(False, "--no-config", help="Ignore gradeconf.toml."),
    show_all: bool = typer.Option(False, "--all", help="List every known flag, including unset ones."),
    trace: bool = typer.Option(False, "--trace", help="Show the rules that changed the flag set."),
    json_output: bool = typer.Option(False, "--json", help="Output results as JSON"),
) -> None:
    """Resolve build options and platform facts into a consistent flag set."""
    name, options, facts = load_inputs(target, use_config=not no_config, json_mode=json_output)
    try:
        options.update(normalize_assignment(parse_assignments(define)))
        facts.update(normalize_facts(parse_assignments(fact)))
        resolved = resolve(options, facts)
    except ConfigError as exc:
        error_exit(str(exc), json_mode=json_output, details={"target": name, **_error_details(exc)})
    except (TypeError, ValueError) as exc:
        error_exit(str(exc), json_mode=json_output)

    if json_output:
        json_print(resolution_to_dict(name, resolved, total=show_all))
        return

    title = f"[bold]{escape(name)}[/]" if name else ""
    console.print(render_flags(resolved, show_all=show_all, title=title))
    if trace:
        console.print()
        console.print(render_trace(resolved))


def _error_details(exc: ConfigError) -> dict[str, Any]:
    details = exc.to_dict()
    details.pop("error")
    return details


def main_entry() -> None:
    """Run the resolve CLI app."""
    app()


if __name__ == "__main__":
    main_entry()
