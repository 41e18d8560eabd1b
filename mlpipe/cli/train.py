"""CLI command to train a preset model."""

from dataclasses import replace
from pathlib import Path

import typer
from pydantic import ValidationError
from rich.progress import Progress, SpinnerColumn, TextColumn

from mlpipe.cli.utils import (
    config_panel,
    console,
    create_metrics_table,
    error_panel,
    success_panel,
)
from mlpipe.config.settings import get_settings
from mlpipe.errors import MLPipeError
from mlpipe.presets import PRESETS, get_preset
from mlpipe.trainers.factory import TrainerFactory
from mlpipe.training import FeatureSpec


def train(
    preset_name: str = typer.Argument(
        ...,
        metavar="PRESET",
        help=f"Task preset: {', '.join(PRESETS)}",
    ),
    data_path: Path | None = typer.Option(
        None,
        "--data",
        "-d",
        help="Path to training data CSV (default: <data_dir>/<preset>.csv)",
    ),
    output_path: Path | None = typer.Option(
        None,
        "--output",
        "-o",
        help="Artifact file to write (default: <model_dir>/<preset>.zip)",
    ),
    trainer: str | None = typer.Option(
        None,
        "--trainer",
        "-t",
        help=f"Trainer override: {', '.join(TrainerFactory.list_available())}",
    ),
    test_fraction: float | None = typer.Option(
        None,
        "--test-fraction",
        help="Share of rows held out for evaluation (default: from settings)",
    ),
    seed: int | None = typer.Option(
        None,
        "--seed",
        help="Split seed (default: from settings)",
    ),
) -> None:
    """Train a preset model, evaluate it on held-out rows and save it."""
    settings = get_settings()
    try:
        preset = get_preset(preset_name)
    except ValueError as e:
        console.print(error_panel(str(e)))
        raise typer.Exit(1)

    overrides = {
        key: value
        for key, value in {"trainer": trainer, "test_fraction": test_fraction, "seed": seed}.items()
        if value is not None
    }
    if overrides:
        try:
            feature_spec = FeatureSpec.model_validate({**preset.feature_spec.model_dump(), **overrides})
        except ValidationError as e:
            console.print(error_panel(str(e), title="Invalid Options"))
            raise typer.Exit(1)
        preset = replace(preset, feature_spec=feature_spec)
    spec = preset.feature_spec

    data_path = data_path or settings.data_path(preset.data_file)
    output_path = output_path or settings.model_path(preset.model_file)

    config = {
        "Preset": f"{preset.name} ({preset.task.value})",
        "Trainer": preset.feature_spec.trainer,
        "Data": str(data_path),
        "Output": str(output_path),
        "Test Fraction": f"{spec.test_fraction if spec.test_fraction is not None else settings.test_fraction:.0%}",
        "Seed": str(spec.seed if spec.seed is not None else settings.seed),
    }
    console.print(config_panel(config, title="Training Configuration"))
    console.print()

    with Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        console=console,
    ) as progress:
        task = progress.add_task(f"Training {preset.feature_spec.trainer}...", total=None)
        try:
            result = preset.train(data_path, output_path)
        except (MLPipeError, FileNotFoundError, ValueError) as e:
            progress.stop()
            console.print(error_panel(str(e), title="Training Failed"))
            raise typer.Exit(1)
        progress.update(task, description="[green]Training complete")

    console.print()
    console.print(create_metrics_table(result.metrics.to_dict()))
    console.print()

    if not result.converged:
        console.print("[yellow]Trainer stopped on its iteration budget; parameters are partially optimized.[/yellow]\n")

    result_info = f"""[bold]{result.metrics}[/bold]
[bold]Train/Test Rows:[/bold] {result.training_samples}/{result.test_samples}
[bold]Dataset Hash:[/bold] {result.dataset_hash}
[bold]Saved:[/bold] {result.artifact_path}"""
    console.print(success_panel(result_info, title="Training Complete"))
