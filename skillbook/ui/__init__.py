"""Rich console helpers for the CLI.

Messages are printed as plain text: paths, lint rule names such as
``[name-format]`` and user input are escaped before Rich sees them.
"""

from typing import Any, Iterable

from rich.console import Console
from rich.markup import escape
from rich.table import Table

console = Console()


def info(msg: str) -> None:
    console.print(f"[bold blue]\\[i][/] {escape(msg)}")


def success(msg: str) -> None:
    console.print(f"[bold green]\\[+][/] {escape(msg)}")


def warn(msg: str) -> None:
    console.print(f"[bold yellow]\\[!][/] {escape(msg)}")


def error(msg: str) -> None:
    console.print(f"[bold red]\\[-][/] {escape(msg)}")


def flatten(data: dict, prefix: str = "") -> list[tuple[str, Any]]:
    """Nested dict to ``[("a.b", value), ...]`` rows."""
    rows = []
    for key, value in data.items():
        full_key = f"{prefix}.{key}" if prefix else key
        if isinstance(value, dict):
            rows.extend(flatten(value, full_key))
        else:
            rows.append((full_key, value))
    return rows


def key_value_table(
    title: str,
    rows: Iterable[tuple[str, Any]],
    key_header: str = "Setting",
    value_header: str = "Value",
) -> Table:
    table = Table(title=title)
    table.add_column(key_header, style="cyan")
    table.add_column(value_header, style="green")
    for key, value in rows:
        table.add_row(key, escape(str(value)))
    return table
