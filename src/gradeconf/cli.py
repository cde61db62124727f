"""Shared CLI utilities for gradeconf tools.

Provides common Typer options, config-loading helpers, ``NAME[=VALUE]``
assignment parsing, and standardised output / error helpers so that every
tool gets consistent ``--target`` support and error reporting.

Usage in a tool::

    import typer
    from gradeconf.cli import TargetOption, get_config, error_exit, json_print

    app = typer.Typer()

    @app.command()
    def main(target: str = TargetOption) -> None:
        cfg = get_config(target)
        ...
"""

from __future__ import annotations

import json
import re
from typing import Any, NoReturn

import typer
from rich.console import Console
from rich.markup import escape

from gradeconf.config import ProjectConfig, load_config
from gradeconf.resolver.flags import FlagValue

# Re-usable Typer option for --target
TargetOption: str | None = typer.Option(
    None,
    "--target",
    "-t",
    help="Target name from gradeconf.toml (default: first target).",
)


def get_config(target: str | None = None) -> ProjectConfig:
    """Load the project config for the given target."""
    return load_config(target=target)


# ---------------------------------------------------------------------------
# Assignment parsing
# ---------------------------------------------------------------------------

_TRUE_WORDS = {"true", "yes", "on"}
_FALSE_WORDS = {"false", "no", "off"}
_INT_RE = re.compile(r"^[+-]?(0x[0-9a-f]+|\d+)$", re.IGNORECASE)


def parse_value(text: str) -> FlagValue:
    """Parse a command-line flag value.

    ``true``/``yes``/``on`` and ``false``/``no``/``off`` are booleans,
    decimal or ``0x`` numbers are ints, anything else stays a string.
    """
    word = text.strip()
    if word.lower() in _TRUE_WORDS:
        return True
    if word.lower() in _FALSE_WORDS:
        return False
    if _INT_RE.match(word):
        return int(word, 16) if "x" in word.lower() else int(word, 10)
    return word


def parse_assignment(item: str) -> tuple[str, FlagValue]:
    """Parse ``NAME`` or ``NAME=VALUE``, the way ``-D`` works for a C compiler.

    A bare name means ``True``.
    """
    name, sep, value = item.partition("=")
    name = name.strip()
    if not name:
        raise ValueError(f"Invalid assignment: {item!r}")
    if not sep:
        return name, True
    return name, parse_value(value)


def parse_assignments(items: list[str] | None) -> dict[str, FlagValue]:
    out: dict[str, FlagValue] = {}
    for item in items or []:
        name, value = parse_assignment(item)
        out[name] = value
    return out


# ---------------------------------------------------------------------------
# Standardised output helpers
# ---------------------------------------------------------------------------

_err_console = Console(stderr=True)


def error_exit(
    msg: str,
    *,
    json_mode: bool = False,
    code: int = 1,
    details: dict[str, Any] | None = None,
) -> NoReturn:
    """Print *msg* as an error and ``raise typer.Exit(code)``.

    In JSON mode *details* are merged into the printed object.
    """
    if json_mode:
        print(json.dumps({"error": msg, **(details or {})}, indent=2))
    else:
        _err_console.print(f"[red bold]error:[/red bold] {escape(msg)}")
    raise typer.Exit(code=code)


def json_print(data: dict[str, Any] | list[Any]) -> None:
    """Print *data* as pretty-printed JSON to stdout."""
    print(json.dumps(data, indent=2))


def exc_message(exc: Exception) -> str:
    """Message for *exc*; ``KeyError`` otherwise wraps it in quotes."""
    if isinstance(exc, KeyError) and exc.args:
        return str(exc.args[0])
    return str(exc)
