"""main.py – Umbrella CLI entry point for gradeconf.

Single-command modules are registered as flat ``app.command()`` entries;
only ``cfg``, which has several subcommands, uses ``add_typer()``.
"""

import typer

from gradeconf import cfg, check, init, resolve, rules_cli

app = typer.Typer(
    help="Resolve build options and platform facts into a consistent grade configuration.",
    rich_markup_mode="rich",
    epilog="""\
[bold]Typical workflow:[/bold]
  gradeconf init                 Create gradeconf.toml with one target
  gradeconf resolve              Resolve the first target
  gradeconf resolve --trace      Show which rules fired
  gradeconf check                Resolve every target, report conflicts
  gradeconf rules -f STACK_TRACE Explain how a flag is derived

[dim]All subcommands read project settings from gradeconf.toml.
Run 'gradeconf <cmd> --help' for details.[/dim]""",
)

# ---------------------------------------------------------------------------
# Subcommand registry
# ---------------------------------------------------------------------------

# Single-command modules – registered as flat commands via app.command().
_SINGLE_COMMANDS = [
    ("resolve", resolve, "Resolve a target into the full flag set."),
    ("check", check, "Resolve every target and report conflicts."),
    ("rules", rules_cli, "List and validate the ordered rule list."),
    ("init", init, "Initialize a new gradeconf project."),
]

# Multi-command modules – registered as groups via app.add_typer().
_MULTI_COMMANDS = [
    ("cfg", cfg, "Read and edit gradeconf.toml programmatically."),
]


for _name, _mod, _help in _SINGLE_COMMANDS:
    _epilog = _mod.app.info.epilog
    if not isinstance(_epilog, str):
        _epilog = None
    app.command(name=_name, help=_help, epilog=_epilog)(_mod.main)

for _name, _mod, _help in _MULTI_COMMANDS:
    app.add_typer(_mod.app, name=_name, help=_help)


def main() -> None:
    app()


if __name__ == "__main__":
    main()
