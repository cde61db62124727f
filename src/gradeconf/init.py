"""Initialize a new gradeconf project directory.

Usage:
    gradeconf init [--target NAME] [--preset PRESET]
"""

from pathlib import Path

import typer

from gradeconf.cli import error_exit
from gradeconf.config import CONFIG_FILENAME

app = typer.Typer(
    help="Initialize a new gradeconf project directory.",
    rich_markup_mode="rich",
    epilog="""\
[bold]Examples:[/bold]

gradeconf init                          Low-level C grade with Boehm GC

gradeconf init --preset hlc             High-level C grade

gradeconf init --target asm_fast_gc     Name the first target

[bold]Presets:[/bold]

llds     asm_fast style: GCC global registers, non-local gotos, asm labels

hlc      high-level C code generation

none     empty flag table

[dim]Run this once in the directory that should hold gradeconf.toml.[/dim]""",
)

PRESETS: dict[str, dict[str, bool]] = {
    "llds": {
        "USE_GCC_GLOBAL_REGISTERS": True,
        "USE_GCC_NONLOCAL_GOTOS": True,
        "USE_ASM_LABELS": True,
        "BOEHM_GC": True,
    },
    "hlc": {
        "HIGHLEVEL_CODE": True,
        "BOEHM_GC": True,
    },
    "none": {},
}

DEFAULT_GRADECONF_TOML = """# gradeconf project configuration
# Each target lists the build options requested for one grade.  Options
# that are derived from others (STACK_TRACE, INSERT_LABELS, ...) must not
# be listed here; `gradeconf rules -k reservation` shows them.
#
# Tools default to the first target unless --target <name> is passed.

[project]
name = "{project_name}"
jobs = 4                           # worker threads for `gradeconf check`

# ---------------------------------------------------------------------------
# Platform facts shared by every target (normally written by a probe).
# Toolchain spellings are accepted: __PIC__, _WIN32, _MSC_VER, ...
# ---------------------------------------------------------------------------

[platform]
# have_mprotect = true
# have_siginfo = true
# pc_access = true

# ---------------------------------------------------------------------------
# Target definitions
# ---------------------------------------------------------------------------

[targets.{target_name}.flags]
{flag_lines}
"""


def render_config(project_name: str, target_name: str, preset: str) -> str:
    flags = PRESETS[preset]
    lines = [f"{name} = {'true' if value else 'false'}" for name, value in flags.items()]
    return DEFAULT_GRADECONF_TOML.format(
        project_name=project_name,
        target_name=target_name,
        flag_lines="\n".join(lines),
    )


@app.callback(invoke_without_command=True)
def main(
    target_name: str = typer.Option("main", "--target", "-t", help="Name of the initial target."),
    preset: str = typer.Option("llds", "--preset", "-p", help="Initial flag preset."),
) -> None:
    """
    Initialize a new gradeconf project in the current directory.

    Creates a gradeconf.toml with one target.
    """
    cwd = Path.cwd()
    toml_path = cwd / CONFIG_FILENAME

    if toml_path.exists():
        error_exit(f"A {CONFIG_FILENAME} already exists in {cwd}")

    if preset not in PRESETS:
        known = ", ".join(sorted(PRESETS))
        error_exit(f"Unknown preset '{preset}'. Known presets: {known}")

    toml_path.write_text(render_config(cwd.name, target_name, preset), encoding="utf-8")
    typer.secho(f"Created {toml_path.name}", fg=typer.colors.GREEN)

    typer.secho("\nInitialization complete! Next steps:", fg=typer.colors.CYAN, bold=True)
    typer.echo(f"1. Adjust the flags under [targets.{target_name}.flags]")
    typer.echo("2. Record platform facts under [platform]")
    typer.echo("3. Run 'gradeconf resolve' or 'gradeconf check'")


init = main


def main_entry() -> None:
    """Run the Typer CLI application."""
    app()


if __name__ == "__main__":
    main_entry()
