"""Affinity group commands."""

from __future__ import annotations

from typing import Annotated

import typer

from service_management.cli.commands.base import (
    DescriptionOption,
    ForceOption,
    OutputFormat,
    OutputOption,
    build_service,
    console,
    handle_management_error,
    render_entity,
    render_list,
)
from service_management.integrations.management.exceptions import ManagementError

app = typer.Typer(
    name="affinity-group",
    help="Manage affinity groups.",
    no_args_is_help=True,
)

AFFINITY_GROUP_COLUMNS = [
    ("name", "Name"),
    ("label", "Label"),
    ("location", "Location"),
    ("description", "Description"),
]

NameArgument = Annotated[str, typer.Argument(help="Affinity group name")]
LabelOption = Annotated[str, typer.Option("--label", "-l", help="Affinity group label")]


@app.command("list")
def list_groups(ctx: typer.Context, output: OutputOption = OutputFormat.TABLE) -> None:
    """List the affinity groups of the subscription."""
    with build_service(ctx) as service:
        try:
            groups = service.list_affinity_groups()
        except ManagementError as e:
            handle_management_error(e)
    render_list(groups, AFFINITY_GROUP_COLUMNS, "Affinity Groups", output)


@app.command("show")
def show_group(
    ctx: typer.Context,
    name: NameArgument,
    output: OutputOption = OutputFormat.TABLE,
) -> None:
    """Show the properties of an affinity group."""
    with build_service(ctx) as service:
        try:
            group = service.get_affinity_group(name)
        except ManagementError as e:
            handle_management_error(e)
    render_entity(group, f"Affinity Group: {group.name}", output)


@app.command("create")
def create_group(
    ctx: typer.Context,
    name: NameArgument,
    location: Annotated[str, typer.Option("--location", help="Location, e.g. 'West US'")],
    label: LabelOption,
    description: DescriptionOption = None,
) -> None:
    """Create an affinity group."""
    with build_service(ctx) as service:
        try:
            service.create_affinity_group(name, location, label, description=description)
        except ManagementError as e:
            handle_management_error(e)
    console.print(f"[green]Affinity group '{name}' created[/green]")


@app.command("update")
def update_group(
    ctx: typer.Context,
    name: NameArgument,
    label: LabelOption,
    description: DescriptionOption = None,
) -> None:
    """Update the label and description of an affinity group."""
    with build_service(ctx) as service:
        try:
            service.update_affinity_group(name, label, description=description)
        except ManagementError as e:
            handle_management_error(e)
    console.print(f"[green]Affinity group '{name}' updated[/green]")


@app.command("delete")
def delete_group(
    ctx: typer.Context,
    name: NameArgument,
    force: ForceOption = False,
) -> None:
    """Delete an affinity group."""
    if not force and not typer.confirm(
        f"Are you sure you want to delete affinity group '{name}'?", default=False
    ):
        console.print("[dim]Cancelled[/dim]")
        raise typer.Exit(0)

    with build_service(ctx) as service:
        try:
            service.delete_affinity_group(name)
        except ManagementError as e:
            handle_management_error(e)
    console.print(f"[green]Affinity group '{name}' deleted[/green]")
