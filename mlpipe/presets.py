"""Ready-made demo tasks: sentiment (binary), iris (multiclass), house price (regression).

Each preset bundles a schema in CSV column order, the feature spec of its
default pipeline, default data/model file names and sample records.
"""

from dataclasses import dataclass, field
from pathlib import Path

from mlpipe.data.dataset import Record
from mlpipe.data.schema import Schema
from mlpipe.trainers.base import PREDICTED_LABEL_COLUMN, PROBABILITY_COLUMN, SCORE_COLUMN, TaskKind
from mlpipe.training.core import PREDICTED_VALUE_COLUMN, TRAIN_BY_TASK, FeatureSpec, TrainingResult


@dataclass(frozen=True)
class Preset:
    """A demo task with everything needed to train and query it."""

    name: str
    task: TaskKind
    schema: Schema
    feature_spec: FeatureSpec
    data_file: str
    model_file: str
    display_columns: tuple[str, ...]
    samples: tuple[Record, ...] = field(default=())

    def train(self, dataset_path: str | Path, output_path: str | Path | None = None) -> TrainingResult:
        """Train this preset's default pipeline on ``dataset_path``."""
        return TRAIN_BY_TASK[self.task](dataset_path, self.schema, self.feature_spec, output_path)


SENTIMENT = Preset(
    name="sentiment",
    task=TaskKind.BINARY,
    schema=Schema.build([("Label", "bool", "label"), ("Text", "string")]),
    feature_spec=FeatureSpec(trainer="logistic_regression"),
    data_file="sentiment.csv",
    model_file="sentiment.zip",
    display_columns=(PREDICTED_LABEL_COLUMN, PROBABILITY_COLUMN),
    samples=(
        {"Text": "This product is amazing and works perfectly!"},
        {"Text": "I dont know maybe another time."},
    ),
)

IRIS = Preset(
    name="iris",
    task=TaskKind.MULTICLASS,
    schema=Schema.build(
        [
            ("SepalLength", "float32"),
            ("SepalWidth", "float32"),
            ("PetalLength", "float32"),
            ("PetalWidth", "float32"),
            ("Label", "string", "label"),
        ]
    ),
    feature_spec=FeatureSpec(trainer="maximum_entropy"),
    data_file="iris.csv",
    model_file="iris.zip",
    display_columns=(PREDICTED_VALUE_COLUMN,),
    samples=(
        {"SepalLength": 6.1, "SepalWidth": 2.8, "PetalLength": 4.7, "PetalWidth": 1.2},
        {"SepalLength": 6.3, "SepalWidth": 3.0, "PetalLength": 5.8, "PetalWidth": 2.1},
    ),
)

HOUSE = Preset(
    name="house",
    task=TaskKind.REGRESSION,
    schema=Schema.build(
        [
            ("SizeM2", "float32"),
            ("Bedrooms", "float32"),
            ("AgeYears", "float32"),
            ("PriceEur", "float32", "label"),
        ]
    ),
    feature_spec=FeatureSpec(trainer="fast_tree"),
    data_file="house.csv",
    model_file="house.zip",
    display_columns=(SCORE_COLUMN,),
    samples=(
        {"SizeM2": 100.0, "Bedrooms": 3.0, "AgeYears": 10.0},
        {"SizeM2": 120.0, "Bedrooms": 4.0, "AgeYears": 5.0},
    ),
)

PRESETS: dict[str, Preset] = {p.name: p for p in (SENTIMENT, IRIS, HOUSE)}


def get_preset(name: str) -> Preset:
    """Look up a preset by name.

    Raises:
        ValueError: If no preset has that name.
    """
    try:
        return PRESETS[name]
    except KeyError:
        raise ValueError(f"Unknown preset '{name}'. Available: {list(PRESETS)}") from None
