"""CLI command to predict with a saved preset model."""

from pathlib import Path

import typer

from mlpipe.artifacts.bundle import load_model
from mlpipe.cli.utils import console, create_prediction_table, error_panel, parse_fields
from mlpipe.config.settings import get_settings
from mlpipe.errors import MLPipeError
from mlpipe.prediction import PredictionEngine
from mlpipe.presets import PRESETS, get_preset


def predict(
    preset_name: str = typer.Argument(
        ...,
        metavar="PRESET",
        help=f"Task preset: {', '.join(PRESETS)}",
    ),
    model_path: Path | None = typer.Option(
        None,
        "--model",
        "-m",
        help="Artifact file to load (default: <model_dir>/<preset>.zip)",
    ),
    fields: list[str] | None = typer.Option(
        None,
        "--field",
        "-f",
        help="Input value as NAME=VALUE; repeat per column. Uses the preset samples when omitted.",
    ),
) -> None:
    """Predict one record (or the preset's sample records) with a saved model."""
    settings = get_settings()
    try:
        preset = get_preset(preset_name)
    except ValueError as e:
        console.print(error_panel(str(e)))
        raise typer.Exit(1)

    model_path = model_path or settings.model_path(preset.model_file)

    try:
        records = [parse_fields(fields, preset.schema)] if fields else list(preset.samples)
        model = load_model(model_path, task=preset.task, schema=preset.schema)
        with PredictionEngine(model) as engine:
            predictions = engine.predict_many(records)
    except (MLPipeError, FileNotFoundError) as e:
        console.print(error_panel(str(e), title="Prediction Failed"))
        raise typer.Exit(1)

    console.print(create_prediction_table(records, predictions, preset.display_columns))
