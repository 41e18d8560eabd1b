"""Mean/variance normalization."""

from dataclasses import dataclass

import numpy as np
import pandas as pd

from mlpipe.data.schema import ColumnRole, ColumnSpec, ColumnType, Schema, require_column
from mlpipe.transforms.base import FittedTransform, Transform, column_matrix, vector_series

VARIANCE_FLOOR = 1e-12


@dataclass(frozen=True)
class MeanVarianceNormalizer(Transform):
    """Standardize a float32 or vector column to zero mean and unit variance.

    Mean and (population) variance are computed per slot over the training
    column only; variance is floored at ``epsilon`` so constant slots map to 0.
    """

    output_column: str
    input_column: str
    epsilon: float = VARIANCE_FLOOR

    @property
    def inputs(self) -> tuple[str, ...]:
        return (self.input_column,)

    def declared_outputs(self, schema: Schema) -> Schema:
        spec = require_column(
            schema,
            self.input_column,
            [ColumnType.FLOAT32, ColumnType.VECTOR],
            stage="MeanVarianceNormalizer",
        )
        return schema.with_column(
            ColumnSpec(name=self.output_column, type=spec.type, role=ColumnRole.DERIVED, size=spec.size)
        )

    def fit(self, frame: pd.DataFrame, schema: Schema) -> "FittedMeanVarianceNormalizer":
        output_schema = self.declared_outputs(schema)
        values = column_matrix(frame, schema[self.input_column])
        mean = values.mean(axis=0)
        variance = np.maximum(values.var(axis=0), self.epsilon)
        scale = 1.0 / np.sqrt(variance)
        mean.setflags(write=False)
        scale.setflags(write=False)
        return FittedMeanVarianceNormalizer(
            input_schema=schema,
            output_schema=output_schema,
            input_column=self.input_column,
            output_column=self.output_column,
            mean=mean,
            scale=scale,
        )


@dataclass(frozen=True)
class FittedMeanVarianceNormalizer(FittedTransform):
    """Normalizer with frozen per-slot mean and inverse standard deviation."""

    input_schema: Schema
    output_schema: Schema
    input_column: str
    output_column: str
    mean: np.ndarray
    scale: np.ndarray

    @property
    def name(self) -> str:
        return "mean_variance_normalizer"

    @property
    def variance(self) -> np.ndarray:
        return 1.0 / np.square(self.scale)

    def transform(self, frame: pd.DataFrame) -> pd.DataFrame:
        spec = self.input_schema[self.input_column]
        normalized = (column_matrix(frame, spec, width=self.mean.shape[0]) - self.mean) * self.scale
        out = frame.copy()
        if spec.type == ColumnType.FLOAT32:
            out[self.output_column] = pd.Series(normalized[:, 0], index=out.index, dtype=np.float32)
        else:
            out[self.output_column] = vector_series(normalized, out.index)
        return out
