"""rules_cli.py – List, filter and validate the declared rule list.

Usage::

    gradeconf rules                         Whole list in evaluation order
    gradeconf rules --kind conflict         Only one rule kind
    gradeconf rules --flag STACK_TRACE      Rules that read, write or reserve a flag
    gradeconf rules --validate              Check derived-only flags are not read early
"""

import typer
from rich.console import Console
from rich.table import Table

from gradeconf.cli import error_exit, json_print
from gradeconf.resolver import DEFAULT_RULES
from gradeconf.resolver.flags import normalize_flag_name
from gradeconf.resolver.rules import RULE_KINDS, Rule

_KIND_STYLE = {
    "reservation": "magenta",
    "implication": "cyan",
    "retraction": "yellow",
    "conflict": "red",
    "requirement": "red",
    "default": "green",
}


def rule_to_dict(index: int, rule: Rule) -> dict[str, object]:
    return {
        "index": index,
        "kind": rule.kind,
        "rule": rule.describe(),
        "reads": list(rule.reads()),
        "facts": list(rule.facts()),
        "writes": list(rule.writes()),
        "note": rule.note or None,
    }


def select_rules(kind: str | None = None, flag: str | None = None) -> list[tuple[int, Rule]]:
    if flag is not None:
        selected = DEFAULT_RULES.touching(flag)
    else:
        selected = list(enumerate(DEFAULT_RULES))
    if kind is not None:
        selected = [(i, r) for i, r in selected if r.kind == kind]
    return selected


app = typer.Typer(
    help="List and validate the ordered rule list.",
    rich_markup_mode="rich",
    epilog="""\
[bold]Examples:[/bold]

gradeconf rules                         Every rule in evaluation order

gradeconf rules -k retraction           Only retractions

gradeconf rules -f PIC_REG              Rules touching one flag

gradeconf rules --validate              Check rule ordering

gradeconf rules --json                  Machine-readable JSON output

[dim]Rule kinds: reservation, implication, retraction, conflict,
requirement, default.[/dim]""",
)


@app.callback(invoke_without_command=True)
def main(
    kind: str | None = typer.Option(None, "--kind", "-k", help="Only show rules of this kind."),
    flag: str | None = typer.Option(None, "--flag", "-f", help="Only show rules touching FLAG."),
    validate: bool = typer.Option(False, "--validate", help="Check rule ordering and exit."),
    json_output: bool = typer.Option(False, "--json", help="Output results as JSON"),
) -> None:
    """Show the rule list the resolver applies, in order."""
    if validate:
        violations = DEFAULT_RULES.validate()
        if json_output:
            json_print({"valid": not violations, "violations": [str(v) for v in violations]})
        elif violations:
            for v in violations:
                typer.secho(f"  {v}", fg=typer.colors.RED, err=True)
        else:
            typer.secho(f"{len(DEFAULT_RULES)} rules, ordering OK", fg=typer.colors.GREEN)
        if violations:
            raise typer.Exit(code=1)
        return

    if kind is not None and kind not in RULE_KINDS:
        error_exit(f"Unknown rule kind '{kind}'. Known kinds: {', '.join(RULE_KINDS)}", json_mode=json_output)
    if flag is not None:
        try:
            flag = normalize_flag_name(flag)
        except ValueError as exc:
            error_exit(str(exc), json_mode=json_output)
        if flag not in DEFAULT_RULES.flags:
            error_exit(f"No rule mentions {flag}", json_mode=json_output)

    selected = select_rules(kind, flag)

    if json_output:
        json_print([rule_to_dict(i, r) for i, r in selected])
        return

    tbl = Table(show_header=True, header_style="bold", box=None, padding=(0, 2))
    tbl.add_column("#", justify="right")
    tbl.add_column("Kind")
    tbl.add_column("Rule")
    tbl.add_column("Note", style="dim")
    for index, rule in selected:
        style = _KIND_STYLE.get(rule.kind, "")
        tbl.add_row(str(index), f"[{style}]{rule.kind}[/]", rule.describe(), rule.note)
    Console().print(tbl)


def main_entry() -> None:
    """Run the rules CLI app."""
    app()


if __name__ == "__main__":
    main_entry()
