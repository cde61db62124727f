"""gradeconf cfg: Programmatic editor for gradeconf.toml.

Uses tomlkit for format-preserving round-trip editing (comments,
ordering, and whitespace are retained).

Usage::

    gradeconf cfg list-targets
    gradeconf cfg show [KEY]
    gradeconf cfg add-target hlc_par
    gradeconf cfg remove-target old_target
    gradeconf cfg set-flag THREAD_SAFE --target hlc_par
    gradeconf cfg set-flag TAGBITS=3 --target hlc_par
    gradeconf cfg unset-flag THREAD_SAFE --target hlc_par
    gradeconf cfg set-fact have_mprotect
    gradeconf cfg path
"""

from pathlib import Path

import tomlkit
import typer

from gradeconf.cli import parse_assignment
from gradeconf.config import CONFIG_FILENAME
from gradeconf.resolver.flags import normalize_fact_name, normalize_flag_name

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _find_root() -> Path:
    """Walk up from cwd to find gradeconf.toml."""
    candidate = Path.cwd().resolve()
    while True:
        if (candidate / CONFIG_FILENAME).exists():
            return candidate
        if candidate == candidate.parent:
            break
        candidate = candidate.parent
    typer.secho(
        f"Error: Could not find {CONFIG_FILENAME} in any parent directory.\n"
        "Run this command from within a gradeconf project, or use 'gradeconf init' first.",
        fg=typer.colors.RED,
        err=True,
    )
    raise typer.Exit(code=1)


def _load_toml(root: Path | None = None) -> tuple[tomlkit.TOMLDocument, Path]:
    """Load gradeconf.toml as a tomlkit document, preserving formatting."""
    if root is None:
        root = _find_root()
    toml_path = root / CONFIG_FILENAME
    if not toml_path.exists():
        typer.secho(f"Error: {toml_path} not found.", fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1)
    doc = tomlkit.parse(toml_path.read_text(encoding="utf-8"))
    return doc, toml_path


def _save_toml(doc: tomlkit.TOMLDocument, path: Path) -> None:
    """Write tomlkit document back, preserving formatting."""
    path.write_text(tomlkit.dumps(doc), encoding="utf-8")


def _resolve_target(doc: tomlkit.TOMLDocument, target: str | None) -> str:
    """Resolve a target name: use given name, or default to first target."""
    targets = doc.get("targets", {})
    if not targets:
        typer.secho(f"Error: No [targets] section in {CONFIG_FILENAME}.", fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1)
    if target is None:
        target = list(targets.keys())[0]
    if target not in targets:
        typer.secho(
            f"Error: Target '{target}' not found. Available: {list(targets.keys())}",
            fg=typer.colors.RED,
            err=True,
        )
        raise typer.Exit(code=1)
    return target


def _subtable(parent, key: str):
    """Return ``parent[key]``, creating an empty table if missing."""
    table = parent.get(key)
    if table is None:
        table = tomlkit.table()
        parent[key] = table
    return table


def _drop_spellings(table, name: str, normalize) -> list[str]:
    """Remove every key of *table* that normalises to *name*."""
    removed = [key for key in list(table.keys()) if normalize(key) == name]
    for key in removed:
        del table[key]
    return removed


def _normalize(name: str, normalize=normalize_flag_name) -> str:
    try:
        return normalize(name)
    except ValueError as exc:
        typer.secho(f"Error: {exc}", fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1) from None


def _parse_item(item: str, normalize=normalize_flag_name) -> tuple[str, object]:
    try:
        name, value = parse_assignment(item)
    except ValueError as exc:
        typer.secho(f"Error: {exc}", fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1) from None
    return _normalize(name, normalize), value


# ---------------------------------------------------------------------------
# Typer app
# ---------------------------------------------------------------------------

app = typer.Typer(
    help="Read and edit gradeconf.toml programmatically.",
    rich_markup_mode="rich",
    epilog="""\
[bold]Examples:[/bold]
  gradeconf cfg list-targets                      List targets
  gradeconf cfg show targets.hlc_par.flags        Read a table or value
  gradeconf cfg set-flag THREAD_SAFE -t hlc_par   Request a build option
  gradeconf cfg unset-flag THREAD_SAFE -t hlc_par Drop a build option
  gradeconf cfg set-fact __PIC__ -t hlc_par       Add a per-target platform fact
  gradeconf cfg set-fact have_mprotect            Add a shared platform fact
  gradeconf cfg path                              Print path to gradeconf.toml

[dim]Useful for scripting and automation. Supports dotted key paths
for nested TOML tables (e.g. 'targets.main.flags').[/dim]""",
)


@app.command("list-targets")
def list_targets() -> None:
    """List all targets defined in gradeconf.toml."""
    doc, _ = _load_toml()
    targets = doc.get("targets", {})
    if not targets:
        typer.echo("No targets defined.")
        return
    for i, name in enumerate(targets.keys()):
        flags = targets[name].get("flags", {})
        marker = "→" if i == 0 else " "
        typer.echo(f"  {marker} {name}  ({len(flags)} options)")
    typer.secho("\n  → = default target", dim=True)


@app.command("show")
def show(
    key: str | None = typer.Argument(
        None, help="Dot-separated key to show, e.g. 'targets.main.flags'"
    ),
) -> None:
    """Show the current config, or a specific key."""
    doc, _ = _load_toml()

    if key is None:
        typer.echo(tomlkit.dumps(doc))
        return

    current = doc
    for part in key.split("."):
        if isinstance(current, dict) and part in current:
            current = current[part]
        else:
            typer.secho(f"Key '{key}' not found.", fg=typer.colors.RED, err=True)
            raise typer.Exit(code=1)

    if isinstance(current, dict):
        typer.echo(tomlkit.dumps(current))
    else:
        typer.echo(str(current))


@app.command("add-target")
def add_target(
    name: str = typer.Argument(..., help="Target name (e.g. 'hlc_par')."),
    define: list[str] | None = typer.Option(
        None, "--define", "-D", help="Initial build option NAME[=VALUE] (repeatable)."
    ),
) -> None:
    """Add a new target section to gradeconf.toml (idempotent)."""
    doc, toml_path = _load_toml()
    targets = _subtable(doc, "targets")

    if name in targets:
        typer.secho(f"Target '{name}' already exists (no changes made).", fg=typer.colors.YELLOW)
        return

    flags = tomlkit.table()
    for item in define or []:
        flag, value = _parse_item(item)
        flags.add(flag, value)
    tgt = tomlkit.table()
    tgt.add("flags", flags)
    targets[name] = tgt
    _save_toml(doc, toml_path)
    typer.secho(f"Added [targets.{name}] to {CONFIG_FILENAME}", fg=typer.colors.GREEN)


@app.command("remove-target")
def remove_target(
    name: str = typer.Argument(..., help="Target name to remove."),
) -> None:
    """Remove a target section from gradeconf.toml (idempotent)."""
    doc, toml_path = _load_toml()
    targets = doc.get("targets", {})
    if name not in targets:
        typer.secho(f"Target '{name}' not found (already removed).", fg=typer.colors.YELLOW)
        return
    del targets[name]
    _save_toml(doc, toml_path)
    typer.secho(f"Removed [targets.{name}] from {CONFIG_FILENAME}", fg=typer.colors.GREEN)


@app.command("set-flag")
def set_flag(
    item: str = typer.Argument(..., help="NAME or NAME=VALUE (MR_ prefix optional)."),
    target: str | None = typer.Option(None, "--target", "-t", help="Target name."),
) -> None:
    """Request a build option for a target."""
    doc, toml_path = _load_toml()
    target = _resolve_target(doc, target)
    name, value = _parse_item(item)

    flags = _subtable(doc["targets"][target], "flags")
    _drop_spellings(flags, name, normalize_flag_name)
    flags[name] = value
    _save_toml(doc, toml_path)
    typer.echo(f"targets.{target}.flags.{name} = {value!r}")


@app.command("unset-flag")
def unset_flag(
    name: str = typer.Argument(..., help="Build option to remove."),
    target: str | None = typer.Option(None, "--target", "-t", help="Target name."),
) -> None:
    """Remove a build option from a target (idempotent)."""
    doc, toml_path = _load_toml()
    target = _resolve_target(doc, target)
    name = _normalize(name)

    flags = doc["targets"][target].get("flags", {})
    if not _drop_spellings(flags, name, normalize_flag_name):
        typer.secho(f"{name} is not set for '{target}'.", fg=typer.colors.YELLOW)
        return
    _save_toml(doc, toml_path)
    typer.echo(f"Removed targets.{target}.flags.{name}")


@app.command("set-fact")
def set_fact(
    item: str = typer.Argument(..., help="FACT or FACT=VALUE, e.g. __PIC__ or have_mprotect."),
    target: str | None = typer.Option(
        None, "--target", "-t", help="Target name (default: shared [platform] table)."
    ),
) -> None:
    """Record a platform capability fact, shared or per target."""
    doc, toml_path = _load_toml()
    name, value = _parse_item(item, normalize_fact_name)
    name = name.lower()

    if target is None:
        table = _subtable(doc, "platform")
        where = "platform"
    else:
        target = _resolve_target(doc, target)
        table = _subtable(doc["targets"][target], "platform")
        where = f"targets.{target}.platform"

    _drop_spellings(table, normalize_fact_name(name), normalize_fact_name)
    table[name] = value
    _save_toml(doc, toml_path)
    typer.echo(f"{where}.{name} = {value!r}")


@app.command("path")
def path() -> None:
    """Print the path to gradeconf.toml."""
    root = _find_root()
    typer.echo(str(root / CONFIG_FILENAME))
