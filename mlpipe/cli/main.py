"""Main CLI application for mlpipe."""

import typer

from mlpipe.cli import info, predict, train
from mlpipe.config.settings import get_settings
from mlpipe.logging_config import setup_logging

app = typer.Typer(
    name="mlpipe",
    help="mlpipe - train, evaluate and query tabular ML pipelines",
    add_completion=False,
    no_args_is_help=True,
)


@app.callback()
def main(
    log_level: str | None = typer.Option(
        None,
        "--log-level",
        help="Log level (default: MLPIPE_LOG_LEVEL)",
    ),
) -> None:
    """Configure logging before any command runs."""
    settings = get_settings()
    setup_logging(level=(log_level or settings.log_level).upper(), json_format=settings.log_json)


# Register commands
app.command(name="train", help="Train a preset model and save it")(train.train)
app.command(name="predict", help="Predict with a saved preset model")(predict.predict)
app.command(name="info", help="Show saved model information")(info.info)


if __name__ == "__main__":
    app()
