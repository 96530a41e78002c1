"""Location and role size commands."""

from __future__ import annotations

import typer

from service_management.cli.commands.base import (
    OutputFormat,
    OutputOption,
    build_service,
    handle_management_error,
    render_list,
    render_values,
)
from service_management.integrations.management.exceptions import ManagementError

LOCATION_COLUMNS = [
    ("name", "Name"),
    ("display_name", "Display Name"),
    ("role_sizes", "Role Sizes"),
]


def locations(ctx: typer.Context, output: OutputOption = OutputFormat.TABLE) -> None:
    """List the regional data center locations."""
    with build_service(ctx) as service:
        try:
            items = service.list_locations()
        except ManagementError as e:
            handle_management_error(e)
    render_list(items, LOCATION_COLUMNS, "Locations", output)


def role_sizes(ctx: typer.Context, output: OutputOption = OutputFormat.TABLE) -> None:
    """List the role sizes offered across all locations."""
    with build_service(ctx) as service:
        try:
            sizes = service.list_role_sizes()
        except ManagementError as e:
            handle_management_error(e)
    render_values(sizes, "Role Size", "Role Sizes", output)
