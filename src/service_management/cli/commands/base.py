"""Shared utilities for CLI commands.

Common Typer options, service construction from the CLI context, output
rendering and error handling.
"""

from __future__ import annotations

import json
from collections.abc import Sequence
from enum import StrEnum
from pathlib import Path
from typing import Annotated, Any, NoReturn

import typer
import yaml
from pydantic import BaseModel
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from service_management.integrations.management.config import AccountConfig
from service_management.integrations.management.exceptions import (
    CertificateError,
    ConfigError,
    ManagementAPIError,
    ManagementError,
    TransportError,
    ValidationError,
)
from service_management.services.management.service import ManagementService

console = Console()


class OutputFormat(StrEnum):
    """Supported output formats for CLI commands."""

    TABLE = "table"
    JSON = "json"
    YAML = "yaml"


OutputOption = Annotated[
    OutputFormat,
    typer.Option(
        "--output",
        "-o",
        help="Output format: table, json, or yaml",
        case_sensitive=False,
    ),
]

ForceOption = Annotated[
    bool,
    typer.Option(
        "--force",
        "-f",
        help="Skip confirmation prompts",
    ),
]

DescriptionOption = Annotated[
    str | None,
    typer.Option(
        "--description",
        "-d",
        help="Affinity group description",
    ),
]


def build_service(ctx: typer.Context) -> ManagementService:
    """Load the account configuration and build a ready service.

    Args:
        ctx: Typer context; ``ctx.obj["config_path"]`` may name a config file.

    Returns:
        A ready ManagementService.

    Raises:
        typer.Exit: If the configuration or certificate is invalid.
    """
    config_path: Path | None = (ctx.obj or {}).get("config_path")
    try:
        config = AccountConfig.load(config_path)
        return ManagementService(config)
    except ManagementError as e:
        handle_management_error(e)


def handle_management_error(error: ManagementError) -> NoReturn:
    """Print a management error and exit.

    Args:
        error: The error raised by the library.

    Raises:
        typer.Exit: Always exits with code 1.
    """
    if isinstance(error, ConfigError):
        console.print("[red]Error:[/red] Invalid account configuration")
        console.print(f"  {escape(str(error))}")
        console.print(
            "\n[dim]Hint: Set ASM_SUBSCRIPTION_ID and ASM_MANAGEMENT_CERTIFICATE, "
            f"or edit {AccountConfig.get_config_path()}[/dim]"
        )

    elif isinstance(error, CertificateError):
        console.print("[red]Error:[/red] Management certificate could not be loaded")
        console.print(f"  {escape(str(error))}")

    elif isinstance(error, TransportError):
        console.print("[red]Error:[/red] Cannot reach the management endpoint")
        console.print(f"  {escape(error.message)}")
        if error.original_error:
            console.print(f"  Cause: {escape(str(error.original_error))}")

    elif isinstance(error, ValidationError):
        console.print("[red]Error:[/red] Validation failed")
        console.print(f"  {escape(error.message)}")

    elif isinstance(error, ManagementAPIError):
        console.print(f"[red]Error:[/red] {escape(error.message)}")
        if error.code:
            console.print(f"  Code: {error.code}")
        if error.status_code:
            console.print(f"  HTTP Status: {error.status_code}")

    else:
        console.print(f"[red]Error:[/red] {escape(str(error))}")

    raise typer.Exit(1)


def _format_value(value: Any) -> str:
    if value is None:
        return "-"
    if isinstance(value, list):
        return ", ".join(_format_value(v) for v in value) if value else "-"
    if isinstance(value, dict):
        return ", ".join(f"{k}={v}" for k, v in value.items() if v is not None)
    return str(value)


def _dump(data: Any, output: OutputFormat) -> None:
    if output == OutputFormat.JSON:
        console.print_json(json.dumps(data, default=str))
    else:
        text = yaml.safe_dump(data, default_flow_style=False, sort_keys=False).rstrip()
        console.print(text, markup=False, highlight=False, soft_wrap=True)


def render_list(
    items: Sequence[BaseModel],
    columns: list[tuple[str, str]],
    title: str,
    output: OutputFormat = OutputFormat.TABLE,
) -> None:
    """Render a list of models as a table, JSON or YAML.

    Args:
        items: Models to render.
        columns: (field_name, header) pairs for table output.
        title: Table title.
        output: Output format.
    """
    if output != OutputFormat.TABLE:
        _dump([item.model_dump() for item in items], output)
        return

    table = Table(title=title)
    for _, header in columns:
        table.add_column(header, overflow="fold")
    for item in items:
        data = item.model_dump()
        table.add_row(*(_format_value(data.get(field)) for field, _ in columns))
    console.print(table)


def render_entity(
    item: BaseModel,
    title: str,
    output: OutputFormat = OutputFormat.TABLE,
) -> None:
    """Render a single model as a field/value table, JSON or YAML."""
    data = item.model_dump()
    if output != OutputFormat.TABLE:
        _dump(data, output)
        return

    table = Table(title=title)
    table.add_column("Field", style="cyan", no_wrap=True)
    table.add_column("Value", style="green", overflow="fold")
    for field, value in data.items():
        table.add_row(field, _format_value(value))
    console.print(table)


def render_values(
    values: Sequence[str],
    header: str,
    title: str,
    output: OutputFormat = OutputFormat.TABLE,
) -> None:
    """Render a flat list of strings."""
    if output != OutputFormat.TABLE:
        _dump(list(values), output)
        return

    table = Table(title=title)
    table.add_column(header, style="cyan")
    for value in values:
        table.add_row(value)
    console.print(table)
