"""CLI command for inspecting a registry document.

Usage:
    cronus show nightly-report
    cronus show nightly-report --format json
"""

from __future__ import annotations

from datetime import datetime, timezone

import typer

from cronus.core.identity import system_clock
from cronus.store.factory import get_store


def show(
    registry_id: str = typer.Argument(
        ...,
        help="Logical job id",
    ),
    output_format: str = typer.Option(
        "text",
        "--format",
        "-f",
        help="Output format: text, json",
    ),
) -> None:
    """Show the slots recorded for REGISTRY_ID, as stored (uncleaned)."""
    import orjson
    from rich.console import Console
    from rich.table import Table

    console = Console()
    document = get_store().find(registry_id)

    if document is None:
        console.print(f"[red]No registry document for '{registry_id}'[/red]")
        raise typer.Exit(code=1)

    if output_format == "json":
        typer.echo(orjson.dumps(document.to_dict(), option=orjson.OPT_INDENT_2).decode())
        return

    now = system_clock()
    table = Table(title=f"Registry '{registry_id}'")
    table.add_column("Host")
    table.add_column("PID")
    table.add_column("Expires (UTC)")
    table.add_column("State")

    for hostname, pids in sorted(document.hosts.items()):
        for pid, expiry in sorted(pids.items()):
            expires_at = datetime.fromtimestamp(expiry, tz=timezone.utc).isoformat()
            state = "[red]expired[/red]" if expiry <= now else "[green]active[/green]"
            table.add_row(hostname, pid, expires_at, state)

    console.print(table)
    console.print(f"Slots: {document.slot_count()}")
