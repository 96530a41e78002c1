"""Main CLI entry point using Typer."""

from __future__ import annotations

from pathlib import Path

import typer
from rich.console import Console

from service_management import __version__
from service_management.cli.commands import affinity_groups, locations
from service_management.logging.config import configure_logging

app = typer.Typer(
    name="asm",
    help="Service management CLI for locations and affinity groups.",
    add_completion=True,
    no_args_is_help=True,
)

console = Console()


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        console.print(f"asm version {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    ctx: typer.Context,
    version: bool | None = typer.Option(
        None,
        "--version",
        "-V",
        callback=version_callback,
        is_eager=True,
        help="Show version and exit.",
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        help="Enable verbose output.",
    ),
    debug: bool = typer.Option(
        False,
        "--debug",
        help="Enable debug mode.",
    ),
    config: Path | None = typer.Option(
        None,
        "--config",
        "-c",
        help="Account config file (default: ~/.config/asm/config.yaml).",
    ),
) -> None:
    """Service management CLI - locations and affinity groups."""
    configure_logging(verbose=verbose, debug=debug)
    ctx.obj = {"config_path": config}


app.command("locations")(locations.locations)
app.command("role-sizes")(locations.role_sizes)
app.add_typer(affinity_groups.app, name="affinity-group")


if __name__ == "__main__":
    app()
