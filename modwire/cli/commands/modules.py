"""CLI — Module inspection commands."""

from __future__ import annotations

import json

import typer
from rich.console import Console
from rich.syntax import Syntax
from rich.table import Table

from modwire.modules import get_registry

app = typer.Typer(help="Inspect registered modules and their capabilities.")
console = Console()


@app.command("list")
def list_modules(
    json_output: bool = typer.Option(False, "--json", help="Output raw JSON."),
) -> None:
    """List all registered modules."""
    report = get_registry().status_report()

    if json_output:
        console.print(Syntax(json.dumps(report, indent=2), "json"))
        return

    table = Table(title="Registered Modules")
    table.add_column("Name", style="cyan")
    table.add_column("Optional capabilities")

    for name, capabilities in report.items():
        table.add_row(name, ", ".join(capabilities) or "-")
    console.print(table)
