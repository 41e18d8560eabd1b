"""CLI command to show model artifact information."""

from pathlib import Path

import typer

from mlpipe.artifacts.bundle import ModelArtifact
from mlpipe.cli.utils import (
    console,
    create_metrics_table,
    create_schema_table,
    error_panel,
    info_panel,
)
from mlpipe.errors import CorruptArtifact


def info(
    artifact_path: Path = typer.Argument(
        ...,
        metavar="ARTIFACT",
        help="Path to a saved model artifact (.zip)",
    ),
) -> None:
    """Show information about a saved model."""
    try:
        metadata = ModelArtifact.read_metadata(artifact_path)
    except (CorruptArtifact, FileNotFoundError) as e:
        console.print(error_panel(str(e)))
        raise typer.Exit(1)

    model_info = f"""[bold]Task:[/bold] {metadata.task.value}
[bold]Trainer:[/bold] {metadata.trainer}
[bold]Stages:[/bold] {' -> '.join(metadata.stages)}
[bold]Converged:[/bold] {'yes' if metadata.converged else 'no'}
[bold]Artifact ID:[/bold] {metadata.artifact_id[:8]}...
[bold]Format Version:[/bold] {metadata.artifact_version}
[bold]Created:[/bold] {metadata.created_at.isoformat()[:19]}
[bold]Dataset Hash:[/bold] {metadata.dataset_hash or 'N/A'}"""

    console.print(info_panel(model_info, title="Model Information"))
    console.print()
    console.print(create_schema_table(metadata.input_schema))
    console.print()

    if metadata.metrics:
        console.print(create_metrics_table(metadata.metrics))
        console.print()

    if metadata.framework_versions:
        versions = ", ".join(f"{k} {v}" for k, v in metadata.framework_versions.items())
        console.print(f"[dim]Built with {versions}[/dim]")
