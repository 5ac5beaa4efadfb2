"""CLI commands for Cronus.

Provides command-line interface using Typer:
- cronus run: Run a command only if a registry slot is available
- cronus show: Print a registry document

Usage:
    cronus --help
    cronus run nightly-report --minutes 60 -- ./report.sh
    cronus show nightly-report
"""

import typer

from cronus.cli.run_cmd import run
from cronus.cli.show_cmd import show
from cronus.config import settings
from cronus.observability.logging import configure_logging

# Main CLI application
app = typer.Typer(
    name="cronus",
    help="Cronus: limit concurrent job instances across hosts",
    no_args_is_help=True,
)

# Add commands
app.command(name="run")(run)
app.command(name="show")(show)


@app.callback()
def callback(
    log_level: str = typer.Option(
        settings.log_level,
        "--log-level",
        "-l",
        help="Log level: debug, info, warning, error",
    ),
    json_logs: bool = typer.Option(
        settings.log_json,
        "--json-logs/--console-logs",
        help="Emit JSON log lines instead of console format",
    ),
) -> None:
    """Cronus: limit concurrent job instances across hosts."""
    configure_logging(json_format=json_logs, level=log_level)


def main() -> None:
    """Entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
