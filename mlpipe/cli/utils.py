"""Rich UI utilities for CLI commands."""

from collections.abc import Mapping
from typing import Any

import numpy as np
import typer
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from mlpipe.data.dataset import parse_field
from mlpipe.data.schema import Schema

console = Console()


def parse_fields(fields: list[str], schema: Schema) -> dict[str, Any]:
    """Parse ``NAME=VALUE`` options into a record over ``schema``.

    Raises:
        typer.BadParameter: An option is not of the form NAME=VALUE.
        MissingColumn: NAME is not a schema column.
        MalformedRow: VALUE cannot be parsed as the column type.
    """
    record: dict[str, Any] = {}
    for item in fields:
        name, sep, value = item.partition("=")
        if not sep or not name:
            raise typer.BadParameter(f"Expected NAME=VALUE, got {item!r}", param_hint="--field")
        spec = schema[name.strip()]
        record[spec.name] = parse_field(spec, value, row=1)
    return record


def format_value(value: Any) -> str:
    """Render a record value for a table cell."""
    if isinstance(value, bool) or value is None:
        return str(value)
    if isinstance(value, (float, np.floating)):
        return f"{value:.4f}"
    if isinstance(value, np.ndarray):
        return f"vector[{value.shape[0]}]"
    return str(value)


def create_metrics_table(metrics: Mapping[str, Any], title: str = "Test Metrics") -> Table:
    """Create a Rich table of scalar metrics."""
    table = Table(title=title, show_header=True, header_style="bold cyan")
    table.add_column("Metric", style="dim")
    table.add_column("Value", justify="right")

    for name, value in metrics.items():
        if isinstance(value, (list, tuple, dict)):
            continue
        table.add_row(name, format_value(value))

    return table


def create_prediction_table(
    inputs: list[Mapping[str, Any]],
    outputs: list[Mapping[str, Any]],
    columns: tuple[str, ...],
) -> Table:
    """Create a Rich table with one row per prediction."""
    table = Table(title="Predictions", show_header=True, header_style="bold cyan")
    input_columns = list(inputs[0].keys()) if inputs else []
    for name in input_columns:
        table.add_column(name, style="dim")
    for name in columns:
        table.add_column(name, justify="right", style="bold")

    for record, prediction in zip(inputs, outputs, strict=True):
        table.add_row(
            *(format_value(record[name]) for name in input_columns),
            *(format_value(prediction[name]) for name in columns),
        )

    return table


def create_schema_table(schema: Schema, title: str = "Input Schema") -> Table:
    """Create a Rich table describing a schema."""
    table = Table(title=title, show_header=True, header_style="bold cyan")
    table.add_column("Column")
    table.add_column("Type")
    table.add_column("Role", style="dim")

    for column in schema.columns:
        type_text = column.type.value
        if column.size is not None:
            type_text += f"[{column.size}]"
        table.add_row(column.name, type_text, column.role.value)

    return table


def success_panel(message: str, title: str = "Success") -> Panel:
    """Create a green success panel."""
    return Panel(message, title=title, border_style="green")


def error_panel(message: str, title: str = "Error") -> Panel:
    """Create a red error panel; ``message`` is shown verbatim, not as markup."""
    return Panel(escape(message), title=title, border_style="red")


def info_panel(message: str, title: str = "Info") -> Panel:
    """Create a blue info panel."""
    return Panel(message, title=title, border_style="blue")


def config_panel(config: dict[str, str], title: str = "Configuration") -> Panel:
    """Create a panel showing configuration."""
    lines = [f"[bold]{k}:[/bold] {v}" for k, v in config.items()]
    return Panel("\n".join(lines), title=title, border_style="cyan")

