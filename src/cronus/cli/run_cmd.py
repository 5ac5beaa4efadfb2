"""CLI command for running a job under a registry slot.

Usage:
    cronus run nightly-report -- ./report.sh --full
    cronus run sync --minutes 30 --max-global 3 --max-host 1 -- rsync ...
    cronus run cleanup --skip-exit-code 75 -- ./cleanup.sh
"""

from __future__ import annotations

import subprocess  # nosec B404 - runs the operator-supplied command

import typer
from rich.console import Console

from cronus.core.registry import (
    DEFAULT_MAX_GLOBAL_SLOTS,
    DEFAULT_MAX_HOST_SLOTS,
    DEFAULT_MINUTES_BEFORE_EXPIRE,
    ProcessRegistry,
)
from cronus.store.factory import get_store


def run(
    registry_id: str = typer.Argument(
        ...,
        help="Logical job id shared by every instance of the job",
    ),
    command: list[str] = typer.Argument(
        ...,
        help="Command to run (put it after --)",
    ),
    minutes: int | None = typer.Option(
        None,
        "--minutes",
        "-m",
        help="Lease length in minutes; omit for a lease that never expires",
    ),
    max_global: int = typer.Option(
        DEFAULT_MAX_GLOBAL_SLOTS,
        "--max-global",
        "-g",
        help="Max concurrent instances across all hosts",
    ),
    max_host: int = typer.Option(
        DEFAULT_MAX_HOST_SLOTS,
        "--max-host",
        "-H",
        help="Max concurrent instances on this host",
    ),
    skip_exit_code: int = typer.Option(
        0,
        "--skip-exit-code",
        help="Exit code when no slot is available",
    ),
) -> None:
    """Run COMMAND only if a slot for REGISTRY_ID is free.

    The slot is held while the command runs and released when it exits.
    Exits with the command's exit code.
    """
    console = Console(stderr=True)
    registry = ProcessRegistry(get_store())

    with registry.slot(
        registry_id,
        minutes_before_expire=DEFAULT_MINUTES_BEFORE_EXPIRE if minutes is None else minutes,
        max_global_slots=max_global,
        max_host_slots=max_host,
    ) as held:
        if not held.acquired:
            console.print(f"[yellow]No slot available for '{registry_id}', skipping[/yellow]")
            raise typer.Exit(code=skip_exit_code)

        try:
            result = subprocess.run(command, check=False)  # nosec B603
        except FileNotFoundError:
            console.print(f"[red]Command not found:[/red] {command[0]}")
            raise typer.Exit(code=127) from None
        raise typer.Exit(code=result.returncode)
