"""check.py – Resolve every target in gradeconf.toml and report failures.

Each target is resolved on its own worker thread; the rule list is shared
read-only and every resolution owns its own flag store.  A target passes
when it resolves without error and re-resolving its result reproduces it.
"""

from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field

import typer
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from gradeconf.cli import error_exit, exc_message, json_print
from gradeconf.config import ProjectConfig, load_config
from gradeconf.resolver import ConfigError, is_idempotent, resolve


@dataclass
class TargetCheck:
    """Outcome of resolving a single target."""

    name: str
    ok: bool = False
    idempotent: bool = False
    enabled: list[str] = field(default_factory=list)
    error: str = ""
    kind: str = ""
    names: list[str] = field(default_factory=list)

    @property
    def passed(self) -> bool:
        return self.ok and self.idempotent

    def to_dict(self) -> dict[str, object]:
        return {
            "target": self.name,
            "passed": self.passed,
            "idempotent": self.idempotent,
            "enabled": self.enabled,
            "error": self.error or None,
            "kind": self.kind or None,
            "names": self.names,
        }


def check_target(cfg: ProjectConfig) -> TargetCheck:
    """Resolve one loaded target."""
    result = TargetCheck(name=cfg.target_name)
    try:
        resolved = resolve(cfg.flags, cfg.platform)
    except ConfigError as exc:
        result.error = str(exc)
        result.kind = exc.kind
        result.names = list(exc.names)
        return result
    result.ok = True
    result.enabled = resolved.enabled()
    result.idempotent = is_idempotent(resolved)
    if not result.idempotent:
        result.error = "re-resolving the result does not reproduce it"
    return result


def check_targets(configs: list[ProjectConfig], jobs: int = 4) -> list[TargetCheck]:
    """Resolve *configs* concurrently; results come back in input order."""
    results: dict[str, TargetCheck] = {}
    with ThreadPoolExecutor(max_workers=max(1, jobs)) as executor:
        futures = {executor.submit(check_target, c): c.target_name for c in configs}
        for fut in as_completed(futures):
            results[futures[fut]] = fut.result()
    return [results[c.target_name] for c in configs]


def _render(console: Console, results: list[TargetCheck]) -> None:
    tbl = Table(show_header=True, header_style="bold", box=None, padding=(0, 2))
    tbl.add_column("Target")
    tbl.add_column("Result")
    tbl.add_column("Flags", justify="right")
    tbl.add_column("Detail")
    for r in results:
        status = "[green]ok[/]" if r.passed else "[red]FAIL[/]"
        detail = f"{r.kind}: {r.error}" if r.kind else r.error
        tbl.add_row(escape(r.name), status, str(len(r.enabled)) if r.ok else "-", escape(detail))
    failed = sum(1 for r in results if not r.passed)
    border = "red" if failed else "green"
    title = f"[bold]{len(results) - failed}/{len(results)} targets resolve[/]"
    console.print(Panel(tbl, title=title, border_style=border))


# ---------------------------------------------------------------------------
# CLI
# ---------------------------------------------------------------------------

app = typer.Typer(
    help="Resolve every target and report conflicts.",
    rich_markup_mode="rich",
    epilog="""\
[bold]Examples:[/bold]

gradeconf check                  Check all targets

gradeconf check -j 8             Use 8 worker threads

gradeconf check --json           Machine-readable JSON output

[dim]Exits with status 1 if any target fails to resolve.[/dim]""",
)


@app.callback(invoke_without_command=True)
def main(
    jobs: int | None = typer.Option(
        None, "--jobs", "-j", help="Worker threads (default: [project] jobs)."
    ),
    json_output: bool = typer.Option(False, "--json", help="Output results as JSON"),
) -> None:
    """Resolve every target in gradeconf.toml."""
    try:
        first = load_config()
        configs = [load_config(root=first.root, target=name) for name in first.all_targets]
    except (FileNotFoundError, KeyError, ValueError) as exc:
        error_exit(exc_message(exc), json_mode=json_output)

    results = check_targets(configs, jobs=jobs or first.jobs)
    failed = [r for r in results if not r.passed]

    if json_output:
        json_print({"project": first.project_name, "targets": [r.to_dict() for r in results]})
    else:
        _render(Console(), results)

    if failed:
        raise typer.Exit(code=1)


def main_entry() -> None:
    """Run the check CLI app."""
    app()


if __name__ == "__main__":
    main_entry()
