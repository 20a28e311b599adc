"""chime health — show recent tick activity."""

from __future__ import annotations

import asyncio

import click
from rich.console import Console
from rich.table import Table

console = Console()


@click.command()
def health():
    """Show the last tick, the last successful tick and the last delivery."""
    asyncio.run(_show_health())


async def _show_health() -> None:
    from chime.core.bookkeeping import TickRunRecorder

    console.print("\n[bold magenta]Chime Health[/bold magenta]\n")

    report = (await TickRunRecorder().health()).to_dict()
    table = Table(show_header=True)
    table.add_column("Field")
    table.add_column("Value")
    for field, value in report.items():
        table.add_row(field, "[dim]none[/dim]" if value is None else str(value))
    console.print(table)

    if report["last_error"]:
        console.print(f"[yellow]Last tick reported an error:[/yellow] {report['last_error']}")
    console.print()
