"""Core training logic shared by the CLI and library callers.

Each ``train_*`` operation runs the same sequence:
1. Load the CSV into a schema-validated Dataset
2. Split it into train/test with a seeded permutation
3. Build the default pipeline for the task from a FeatureSpec
4. Fit on the train partition only and evaluate on the test partition
5. Optionally save the fitted model as an artifact
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field

import mlpipe.trainers.strategies  # noqa: F401
from mlpipe.artifacts.bundle import load_model as load_artifact
from mlpipe.artifacts.bundle import save_model
from mlpipe.config.settings import get_settings
from mlpipe.data.dataset import Dataset, Record
from mlpipe.data.schema import ColumnType, Schema
from mlpipe.errors import UnsupportedConversion
from mlpipe.evaluation.metrics import Metrics, evaluate
from mlpipe.logging_config import get_logger, run_context
from mlpipe.pipeline import Model, Pipeline
from mlpipe.prediction import PredictionEngine
from mlpipe.trainers.base import DEFAULT_FEATURE_COLUMN, PREDICTED_LABEL_COLUMN, TaskKind
from mlpipe.trainers.factory import TrainerFactory
from mlpipe.transforms import (
    Concatenator,
    KeyToValueMapper,
    MeanVarianceNormalizer,
    TextFeaturizer,
    TypeConverter,
    ValueToKeyMapper,
)

logger = get_logger()

LABEL_KEY_COLUMN = "LabelKey"
PREDICTED_VALUE_COLUMN = "PredictedLabelValue"


class FeatureSpec(BaseModel):
    """Declarative description of the default pipeline for one task.

    Unset split and threshold fields fall back to the application settings.
    """

    trainer: str = Field(description="Registered trainer type (e.g. 'logistic_regression')")
    features: list[str] | None = Field(
        default=None,
        description="Feature columns in concatenation order; all non-label columns when unset",
    )
    trainer_params: dict[str, Any] = Field(default_factory=dict)
    normalize: bool = Field(default=False, description="Append a mean/variance normalizer")
    test_fraction: float | None = Field(default=None, gt=0.0, lt=1.0)
    seed: int | None = None
    threshold: float | None = Field(default=None, ge=0.0, le=1.0)


@dataclass
class TrainingResult:
    """Result from training a model."""

    model: Model
    metrics: Metrics
    training_samples: int
    test_samples: int
    dataset_hash: str
    artifact_path: Path | None = None

    @property
    def converged(self) -> bool:
        return self.model.converged


def _feature_columns(schema: Schema, spec: FeatureSpec) -> list[str]:
    label = schema.label_column.name
    if spec.features is not None:
        return list(spec.features)
    return [name for name in schema.names if name != label]


def build_pipeline(task: TaskKind, schema: Schema, spec: FeatureSpec) -> Pipeline:
    """Build the default pipeline for ``task`` over ``schema``.

    String features are featurized as text, bool features converted to
    float32, float32 and vector features passed through; everything is
    concatenated into ``Features``. Multiclass pipelines key the label into
    ``LabelKey`` and map the predicted key back into ``PredictedLabelValue``.

    Raises:
        ValueError: The trainer is unknown or belongs to another task.
        SchemaMismatch: The schema has no label column.
        MissingColumn: A declared feature is not in the schema.
        UnsupportedConversion: A feature has a type the pipeline cannot use.
    """
    trainer_class = TrainerFactory.get_class(spec.trainer)
    if trainer_class.task != task:
        raise ValueError(
            f"Trainer '{spec.trainer}' is a {trainer_class.task.value} trainer, "
            f"not {task.value}. Available: {TrainerFactory.list_available(task)}"
        )

    label = schema.label_column
    pipeline = Pipeline()
    label_column = label.name
    if task == TaskKind.MULTICLASS:
        pipeline = pipeline.append(ValueToKeyMapper(LABEL_KEY_COLUMN, label.name))
        label_column = LABEL_KEY_COLUMN

    concat_inputs: list[str] = []
    for name in _feature_columns(schema, spec):
        column = schema[name]
        if column.type == ColumnType.STRING:
            pipeline = pipeline.append(TextFeaturizer(f"{name}Featurized", name))
            concat_inputs.append(f"{name}Featurized")
        elif column.type == ColumnType.BOOL:
            pipeline = pipeline.append(TypeConverter(f"{name}Float", name))
            concat_inputs.append(f"{name}Float")
        elif column.type in (ColumnType.FLOAT32, ColumnType.VECTOR):
            concat_inputs.append(name)
        else:
            raise UnsupportedConversion(
                "Feature column type cannot be used as a feature",
                column=name,
                actual=column.type.value,
            )

    pipeline = pipeline.append(Concatenator(DEFAULT_FEATURE_COLUMN, concat_inputs))
    if spec.normalize:
        pipeline = pipeline.append(MeanVarianceNormalizer(DEFAULT_FEATURE_COLUMN, DEFAULT_FEATURE_COLUMN))

    threshold = spec.threshold if spec.threshold is not None else get_settings().binary_threshold
    pipeline = pipeline.append(
        TrainerFactory.create(
            spec.trainer,
            label_column=label_column,
            feature_column=DEFAULT_FEATURE_COLUMN,
            threshold=threshold,
            **spec.trainer_params,
        )
    )
    if task == TaskKind.MULTICLASS:
        pipeline = pipeline.append(KeyToValueMapper(PREDICTED_VALUE_COLUMN, PREDICTED_LABEL_COLUMN))
    return pipeline


def _train(
    task: TaskKind,
    dataset_path: str | Path,
    schema: Schema,
    feature_spec: FeatureSpec,
    output_path: str | Path | None,
) -> TrainingResult:
    settings = get_settings()
    test_fraction = (
        feature_spec.test_fraction if feature_spec.test_fraction is not None else settings.test_fraction
    )
    seed = feature_spec.seed if feature_spec.seed is not None else settings.seed

    pipeline = build_pipeline(task, schema, feature_spec)
    pipeline.validate(schema)

    with run_context(task=task.value, trainer=feature_spec.trainer, seed=seed):
        dataset = Dataset.load(dataset_path, schema)
        split = dataset.split(test_fraction, seed)

        model = pipeline.fit(split.train)
        metrics = evaluate(model, split.test)
        dataset_hash = dataset.content_hash()

        artifact_path = None
        if output_path is not None:
            artifact_path = save_model(model, output_path, metrics=metrics, dataset_hash=dataset_hash)

        logger.info(
            "training_completed",
            train_rows=len(split.train),
            test_rows=len(split.test),
            converged=model.converged,
        )
    return TrainingResult(
        model=model,
        metrics=metrics,
        training_samples=len(split.train),
        test_samples=len(split.test),
        dataset_hash=dataset_hash,
        artifact_path=artifact_path,
    )


def train_binary(
    dataset_path: str | Path,
    schema: Schema,
    feature_spec: FeatureSpec,
    output_path: str | Path | None = None,
) -> TrainingResult:
    """Train and evaluate a binary classifier.

    Args:
        dataset_path: CSV file with a header row, columns in schema order.
        schema: Declared schema; the label column must be bool.
        feature_spec: Features, trainer and split configuration.
        output_path: Where to save the fitted model, if given.

    Returns:
        TrainingResult with the fitted model and its held-out BinaryMetrics.
    """
    return _train(TaskKind.BINARY, dataset_path, schema, feature_spec, output_path)


def train_multiclass(
    dataset_path: str | Path,
    schema: Schema,
    feature_spec: FeatureSpec,
    output_path: str | Path | None = None,
) -> TrainingResult:
    """Train and evaluate a multiclass classifier.

    The label column may hold any category type; it is keyed into
    ``LabelKey`` on the training rows only.
    """
    return _train(TaskKind.MULTICLASS, dataset_path, schema, feature_spec, output_path)


def train_regression(
    dataset_path: str | Path,
    schema: Schema,
    feature_spec: FeatureSpec,
    output_path: str | Path | None = None,
) -> TrainingResult:
    """Train and evaluate a regressor; the label column must be float32."""
    return _train(TaskKind.REGRESSION, dataset_path, schema, feature_spec, output_path)


TRAIN_BY_TASK = {
    TaskKind.BINARY: train_binary,
    TaskKind.MULTICLASS: train_multiclass,
    TaskKind.REGRESSION: train_regression,
}


def load_model(path: str | Path, task: TaskKind | str) -> Model:
    """Load a saved model, rejecting artifacts of another task kind."""
    return load_artifact(path, task=task)


def predict_one(model: Model, record: Record) -> Record:
    """Predict a single record through a PredictionEngine."""
    with PredictionEngine(model) as engine:
        return engine.predict(record)
