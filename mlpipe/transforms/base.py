"""Two-phase transform contract.

A ``Transform`` is an unfit, immutable declaration (column names and
hyperparameters). ``Transform.fit`` consumes a training frame once and
returns a *separate* ``FittedTransform`` holding the learned state. Fitted
transforms are pure functions of a frame: they add or overwrite their output
columns and never remove or mutate anything else.

Trainers implement the same surface, which lets the pipeline engine treat
every stage alike.
"""

from abc import ABC, abstractmethod

import numpy as np
import pandas as pd

from mlpipe.data.dataset import Record, frame_row, records_to_frame
from mlpipe.data.schema import ColumnSpec, ColumnType, Schema
from mlpipe.errors import DimensionMismatch, UnsupportedConversion


def vector_series(matrix: np.ndarray, index: pd.Index) -> pd.Series:
    """Wrap the rows of a 2-D array as a float32 vector column."""
    matrix = np.asarray(matrix, dtype=np.float32)
    series = pd.Series([None] * len(index), index=index, dtype=object)
    for i in range(len(index)):
        row = matrix[i].copy()
        row.setflags(write=False)
        series.iat[i] = row
    return series


def column_matrix(frame: pd.DataFrame, spec: ColumnSpec, width: int | None = None) -> np.ndarray:
    """Read a numeric column as an ``(n_rows, width)`` float64 matrix.

    Args:
        frame: Typed frame.
        spec: Column to read; float32, bool, key or vector.
        width: Expected vector length; defaults to the declared size.

    Raises:
        DimensionMismatch: A vector's runtime length differs from ``width``.
        UnsupportedConversion: The column is not numeric.
    """
    values = frame[spec.name]
    if spec.type == ColumnType.VECTOR:
        width = width if width is not None else spec.size
        rows = []
        for i, vector in enumerate(values.to_numpy()):
            vector = np.asarray(vector, dtype=np.float64)
            if width is not None and vector.shape != (width,):
                raise DimensionMismatch(
                    "Vector length differs from declared size",
                    column=spec.name,
                    expected=width,
                    actual=vector.shape[0] if vector.ndim else 0,
                    row=i,
                )
            rows.append(vector)
        if not rows:
            return np.empty((0, width or 0), dtype=np.float64)
        return np.vstack(rows)
    if spec.type in (ColumnType.FLOAT32, ColumnType.BOOL, ColumnType.KEY):
        return values.to_numpy(dtype=np.float64).reshape(-1, 1)
    raise UnsupportedConversion("Column is not numeric", column=spec.name, actual=spec.type.value)


class FittedTransform(ABC):
    """A transform with frozen, learned state.

    Subclasses set ``input_schema`` and ``output_schema`` when constructed
    and never modify any attribute afterwards.
    """

    input_schema: Schema
    output_schema: Schema

    @property
    @abstractmethod
    def name(self) -> str:
        """Stage name used in logs and artifact metadata."""
        ...

    @abstractmethod
    def transform(self, frame: pd.DataFrame) -> pd.DataFrame:
        """Apply the fitted state to every row of ``frame``.

        Args:
            frame: Typed frame conforming to ``input_schema``. Not modified.

        Returns:
            A new frame with the output columns added or overwritten.
        """
        ...

    def apply(self, record: Record) -> Record:
        """Apply the fitted state to a single record.

        Runs ``transform`` on a one-row frame, so single-record and batch
        application share one code path.
        """
        frame = records_to_frame([record], self.input_schema)
        return frame_row(self.transform(frame), self.output_schema, 0)


class Transform(ABC):
    """Unfit declaration of a pipeline stage."""

    @property
    @abstractmethod
    def inputs(self) -> tuple[str, ...]:
        """Columns this stage reads."""
        ...

    @abstractmethod
    def declared_outputs(self, schema: Schema) -> Schema:
        """Statically derive the schema after this stage.

        Raises:
            MissingColumn: A declared input column is absent from ``schema``.
            UnsupportedConversion: An input column has a type this stage cannot read.
        """
        ...

    @abstractmethod
    def fit(self, frame: pd.DataFrame, schema: Schema) -> FittedTransform:
        """Learn state from a training frame and return the fitted stage."""
        ...
