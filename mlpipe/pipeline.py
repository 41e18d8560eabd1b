"""Pipeline declaration and the fitted Model it produces.

``Pipeline`` is an immutable, ordered list of stage declarations containing
exactly one trainer; transforms may also follow the trainer (for example a
key -> value mapping of the predicted label). ``Pipeline.fit`` statically
checks every column dependency before touching any data, then fits stages in
order, feeding each the training frame as transformed by all earlier stages.
"""

import time
from collections.abc import Iterable
from dataclasses import dataclass, replace
from typing import Any

import numpy as np
import pandas as pd

from mlpipe.data.dataset import Dataset, Record
from mlpipe.data.schema import ColumnType, Schema
from mlpipe.errors import EmptyDataset, SchemaIncompatible, SchemaMismatch
from mlpipe.logging_config import get_logger
from mlpipe.trainers.base import BaseTrainer, FittedTrainer, TaskKind
from mlpipe.transforms.base import FittedTransform, Transform
from mlpipe.transforms.conversion import UNKNOWN_KEY, FittedValueToKeyMapper

logger = get_logger()

# Placeholder label values for inference records, which carry no label.
_LABEL_PLACEHOLDERS: dict[ColumnType, Any] = {
    ColumnType.BOOL: False,
    ColumnType.FLOAT32: float("nan"),
    ColumnType.STRING: "",
    ColumnType.KEY: UNKNOWN_KEY,
}


@dataclass(frozen=True)
class Pipeline:
    """Ordered stage declarations terminated by (or containing) one trainer.

    Example:
        >>> pipeline = (
        ...     Pipeline()
        ...     .append(TextFeaturizer("Features", "Text"))
        ...     .append(TrainerFactory.create("logistic_regression", label_column="Label"))
        ... )
        >>> model = pipeline.fit(split.train)
    """

    steps: tuple[Transform, ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "steps", tuple(self.steps))

    def append(self, step: Transform) -> "Pipeline":
        """Return a new pipeline with ``step`` appended."""
        return Pipeline(steps=(*self.steps, step))

    @property
    def trainer(self) -> BaseTrainer:
        """The pipeline's single trainer.

        Raises:
            ValueError: The pipeline has no trainer or more than one.
        """
        trainers = [s for s in self.steps if isinstance(s, BaseTrainer)]
        if len(trainers) != 1:
            raise ValueError(f"Pipeline must contain exactly one trainer, found {len(trainers)}")
        return trainers[0]

    @property
    def task(self) -> TaskKind:
        return self.trainer.task

    def validate(self, schema: Schema) -> Schema:
        """Check every stage's input columns against the columns available to it.

        Runs without reading any data.

        Args:
            schema: Input schema of the training data.

        Returns:
            The statically derived output schema.

        Raises:
            ValueError: The pipeline does not contain exactly one trainer.
            MissingColumn: A stage reads a column no earlier stage produces.
            UnsupportedConversion: A stage reads a column of the wrong type.
        """
        _ = self.trainer
        for step in self.steps:
            schema = step.declared_outputs(schema)
        return schema

    def fit(self, train: Dataset) -> "Model":
        """Fit every stage on the training dataset.

        Args:
            train: Training partition. Never read by any other partition's fit.

        Returns:
            Immutable fitted Model.

        Raises:
            EmptyDataset: ``train`` has no rows.
            MissingColumn, UnsupportedConversion: From the static check.
        """
        self.validate(train.schema)
        if len(train) == 0:
            raise EmptyDataset("Cannot fit a pipeline on an empty dataset")

        start_time = time.perf_counter()
        logger.info("pipeline_fit_started", task=self.task.value, steps=len(self.steps), rows=len(train))

        frame = train.to_frame()
        schema = train.schema
        fitted: list[FittedTransform] = []
        for step in self.steps:
            stage = step.fit(frame, schema)
            frame = stage.transform(frame)
            schema = stage.output_schema
            fitted.append(stage)

        model = Model(
            input_schema=train.schema,
            steps=tuple(fitted),
            output_schema=schema,
            task=self.task,
        )
        logger.info(
            "pipeline_fit_completed",
            task=self.task.value,
            trainer=model.trainer.name,
            converged=model.converged,
            duration_s=round(time.perf_counter() - start_time, 4),
        )
        return model


@dataclass(frozen=True)
class Model:
    """A fitted pipeline.

    Attributes:
        input_schema: Schema of the data the pipeline was fitted on.
        steps: Fitted stages in order, exactly one of which is a trainer.
        output_schema: Schema after every stage has been applied.
        task: Task kind of the trainer.
    """

    input_schema: Schema
    steps: tuple[FittedTransform, ...]
    output_schema: Schema
    task: TaskKind

    @property
    def trainer(self) -> FittedTrainer:
        for step in self.steps:
            if isinstance(step, FittedTrainer):
                return step
        raise ValueError("Model has no fitted trainer")

    @property
    def converged(self) -> bool:
        """False when the trainer stopped on its iteration budget."""
        return self.trainer.converged

    @property
    def label_column(self) -> str:
        """Column the trainer learned from (e.g. a label key column)."""
        return self.trainer.label_column

    @property
    def inference_schema(self) -> Schema:
        """Input schema without the label column."""
        return self.input_schema.without_label()

    def _input_frame(self, dataset: Dataset) -> tuple[pd.DataFrame, bool]:
        """Typed frame over ``input_schema`` and whether it carries real labels."""
        if dataset.schema.is_compatible(self.input_schema):
            return dataset.to_frame(), True
        if self.input_schema.has_label and dataset.schema.is_compatible(self.inference_schema):
            label = self.input_schema.label_column
            frame = dataset.to_frame()
            frame[label.name] = _placeholder_series(label.type, frame.index)
            return frame.loc[:, self.input_schema.names], False
        raise SchemaIncompatible(
            "Dataset schema does not match the model's input schema",
            expected=self.input_schema.describe(),
            actual=dataset.schema.describe(),
        )

    def _unlabeled_steps(self) -> tuple[FittedTransform, ...]:
        # Placeholder labels are never fitted categories; key them as unknown.
        label = self.input_schema.label_column.name
        return tuple(
            replace(step, strict=False)
            if isinstance(step, FittedValueToKeyMapper) and step.strict and step.input_column == label
            else step
            for step in self.steps
        )

    def transform_frame(self, frame: pd.DataFrame, labeled: bool = True) -> pd.DataFrame:
        """Run every fitted stage over a typed frame conforming to ``input_schema``.

        Pass ``labeled=False`` when the label column holds placeholders.
        """
        for step in self.steps if labeled else self._unlabeled_steps():
            frame = step.transform(frame)
        return frame

    def transform(self, dataset: Dataset) -> Dataset:
        """Apply the fitted stages to every row of ``dataset``.

        The dataset may omit the label column; a placeholder label is used.

        Raises:
            SchemaIncompatible: The dataset's schema differs from ``input_schema``.
        """
        frame, labeled = self._input_frame(dataset)
        return Dataset(self.transform_frame(frame, labeled=labeled), self.output_schema)

    def _record_schema(self, records: list[dict[str, Any]]) -> Schema:
        names = set(self.input_schema.names)
        label = self.input_schema.label_column.name if self.input_schema.has_label else None
        unlabeled = False
        for record in records:
            keys = set(record)
            if keys == names:
                continue
            if label is not None and keys == names - {label}:
                unlabeled = True
                continue
            raise SchemaIncompatible(
                "Record columns do not match the model's input schema",
                expected=sorted(names),
                actual=sorted(keys),
            )
        return self.inference_schema if unlabeled else self.input_schema

    def to_dataset(self, records: Iterable[Record]) -> Dataset:
        """Validate inference records into a dataset over ``input_schema``.

        The label column is optional. When any record omits it, the batch is
        built over the inference schema and scored with placeholder labels.

        Raises:
            SchemaIncompatible: Missing or extra columns, or mistyped values.
        """
        rows = [dict(r) for r in records]
        schema = self._record_schema(rows)
        if schema is not self.input_schema:
            label = self.input_schema.label_column.name
            for row in rows:
                row.pop(label, None)
        try:
            return Dataset.from_records(rows, schema)
        except SchemaMismatch as exc:
            raise SchemaIncompatible(
                f"Record does not conform to the model's input schema: {exc.message}",
                column=exc.column,
                expected=exc.expected,
                actual=exc.actual,
                row=exc.row,
            ) from exc

    def apply(self, record: Record) -> Record:
        """Apply the model to a single record via a one-row dataset."""
        return self.transform(self.to_dataset([record])).row(0)


def _placeholder_series(column_type: ColumnType, index: pd.Index) -> pd.Series:
    value = _LABEL_PLACEHOLDERS.get(column_type)
    dtype = {
        ColumnType.BOOL: bool,
        ColumnType.FLOAT32: np.float32,
        ColumnType.KEY: np.int64,
    }.get(column_type, object)
    return pd.Series([value] * len(index), index=index, dtype=dtype)
