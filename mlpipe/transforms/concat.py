"""Order-preserving concatenation of numeric columns into one vector."""

from dataclasses import dataclass

import numpy as np
import pandas as pd

from mlpipe.data.schema import ColumnRole, ColumnSpec, ColumnType, Schema, require_column
from mlpipe.transforms.base import FittedTransform, Transform, column_matrix, vector_series

_CONCATENABLE = (ColumnType.FLOAT32, ColumnType.VECTOR)


@dataclass(frozen=True)
class Concatenator(Transform):
    """Concatenate float32 and vector columns, in declared order, into a vector column."""

    output_column: str
    input_columns: tuple[str, ...]

    def __post_init__(self) -> None:
        object.__setattr__(self, "input_columns", tuple(self.input_columns))
        if not self.input_columns:
            raise ValueError("Concatenator needs at least one input column")

    @property
    def inputs(self) -> tuple[str, ...]:
        return self.input_columns

    def _specs(self, schema: Schema) -> list[ColumnSpec]:
        return [
            require_column(schema, name, _CONCATENABLE, stage="Concatenator")
            for name in self.input_columns
        ]

    def declared_outputs(self, schema: Schema) -> Schema:
        widths = [spec.width for spec in self._specs(schema)]
        size = sum(widths) if all(w is not None for w in widths) else None
        return schema.with_column(
            ColumnSpec(name=self.output_column, type=ColumnType.VECTOR, role=ColumnRole.DERIVED, size=size)
        )

    def fit(self, frame: pd.DataFrame, schema: Schema) -> "FittedConcatenator":
        widths = []
        for spec in self._specs(schema):
            width = spec.width
            if width is None:
                # Undeclared vector size: learn it from the first training row.
                first = frame[spec.name].iat[0] if len(frame) else np.empty(0)
                width = int(np.asarray(first).shape[0])
            widths.append(width)
        output_schema = schema.with_column(
            ColumnSpec(
                name=self.output_column,
                type=ColumnType.VECTOR,
                role=ColumnRole.DERIVED,
                size=sum(widths),
            )
        )
        return FittedConcatenator(
            input_schema=schema,
            output_schema=output_schema,
            input_columns=self.input_columns,
            widths=tuple(widths),
            output_column=self.output_column,
        )


@dataclass(frozen=True)
class FittedConcatenator(FittedTransform):
    """Concatenator with resolved input widths."""

    input_schema: Schema
    output_schema: Schema
    input_columns: tuple[str, ...]
    widths: tuple[int, ...]
    output_column: str

    @property
    def name(self) -> str:
        return "concatenator"

    def transform(self, frame: pd.DataFrame) -> pd.DataFrame:
        blocks = [
            column_matrix(frame, self.input_schema[name], width)
            for name, width in zip(self.input_columns, self.widths, strict=True)
        ]
        out = frame.copy()
        out[self.output_column] = vector_series(np.hstack(blocks), out.index)
        return out
