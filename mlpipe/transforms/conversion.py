"""Type conversion and bidirectional category <-> key mapping."""

from dataclasses import dataclass, field
from typing import Any

import numpy as np
import pandas as pd

from mlpipe.data.schema import ColumnRole, ColumnSpec, ColumnType, Schema, require_column
from mlpipe.errors import UnknownCategory, UnsupportedConversion
from mlpipe.transforms.base import FittedTransform, Transform, column_matrix, vector_series

# Key assigned to values never seen while fitting.
UNKNOWN_KEY = -1

SUPPORTED_CONVERSIONS: frozenset[tuple[ColumnType, ColumnType]] = frozenset(
    {
        (ColumnType.BOOL, ColumnType.FLOAT32),
        (ColumnType.FLOAT32, ColumnType.FLOAT32),
        (ColumnType.KEY, ColumnType.FLOAT32),
        (ColumnType.BOOL, ColumnType.VECTOR),
        (ColumnType.FLOAT32, ColumnType.VECTOR),
        (ColumnType.VECTOR, ColumnType.VECTOR),
    }
)


# ---------------------------------------------------------------------------
# Type conversion
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class TypeConverter(Transform):
    """Convert a column to float32 (bool -> 1.0/0.0, numeric widening) or to a vector."""

    output_column: str
    input_column: str
    output_type: ColumnType = ColumnType.FLOAT32

    @property
    def inputs(self) -> tuple[str, ...]:
        return (self.input_column,)

    def declared_outputs(self, schema: Schema) -> Schema:
        spec = require_column(schema, self.input_column, stage="TypeConverter")
        if (spec.type, self.output_type) not in SUPPORTED_CONVERSIONS:
            raise UnsupportedConversion(
                "TypeConverter: conversion not supported",
                column=self.input_column,
                expected=self.output_type.value,
                actual=spec.type.value,
            )
        size = spec.width if self.output_type == ColumnType.VECTOR else None
        return schema.with_column(
            ColumnSpec(name=self.output_column, type=self.output_type, role=ColumnRole.DERIVED, size=size)
        )

    def fit(self, frame: pd.DataFrame, schema: Schema) -> "FittedTypeConverter":
        return FittedTypeConverter(
            input_schema=schema,
            output_schema=self.declared_outputs(schema),
            input_column=self.input_column,
            output_column=self.output_column,
        )


@dataclass(frozen=True)
class FittedTypeConverter(FittedTransform):
    input_schema: Schema
    output_schema: Schema
    input_column: str
    output_column: str

    @property
    def name(self) -> str:
        return "type_converter"

    def transform(self, frame: pd.DataFrame) -> pd.DataFrame:
        source = self.input_schema[self.input_column]
        target = self.output_schema[self.output_column]
        out = frame.copy()
        if target.type == ColumnType.FLOAT32:
            out[self.output_column] = frame[self.input_column].astype(np.float32)
        else:
            matrix = column_matrix(frame, source, target.size)
            out[self.output_column] = vector_series(matrix, out.index)
        return out


# ---------------------------------------------------------------------------
# Key mapping
# ---------------------------------------------------------------------------


def _native_value(value: Any) -> Any:
    if isinstance(value, (bool, np.bool_)):
        return bool(value)
    if isinstance(value, (float, np.floating)):
        return float(value)
    return value


def _value_type(values: tuple[Any, ...]) -> ColumnType:
    if values and all(isinstance(v, bool) for v in values):
        return ColumnType.BOOL
    if values and all(isinstance(v, float) for v in values):
        return ColumnType.FLOAT32
    return ColumnType.STRING


@dataclass(frozen=True)
class ValueToKeyMapper(Transform):
    """Map category values to dense integer keys (forward key mapping).

    Keys are assigned first-seen-first-indexed over the training rows, so the
    mapping is deterministic given a deterministic row order. Values never
    seen while fitting map to ``UNKNOWN_KEY``, or raise ``UnknownCategory``
    when ``strict`` is set.
    """

    output_column: str
    input_column: str
    strict: bool = False

    @property
    def inputs(self) -> tuple[str, ...]:
        return (self.input_column,)

    def declared_outputs(self, schema: Schema) -> Schema:
        require_column(
            schema,
            self.input_column,
            [ColumnType.STRING, ColumnType.BOOL, ColumnType.FLOAT32],
            stage="ValueToKeyMapper",
        )
        return schema.with_column(
            ColumnSpec(name=self.output_column, type=ColumnType.KEY, role=ColumnRole.DERIVED)
        )

    def fit(self, frame: pd.DataFrame, schema: Schema) -> "FittedValueToKeyMapper":
        self.declared_outputs(schema)
        values = tuple(dict.fromkeys(_native_value(v) for v in frame[self.input_column].tolist()))
        output_schema = schema.with_column(
            ColumnSpec(
                name=self.output_column,
                type=ColumnType.KEY,
                role=ColumnRole.DERIVED,
                key_values=values,
            )
        )
        return FittedValueToKeyMapper(
            input_schema=schema,
            output_schema=output_schema,
            input_column=self.input_column,
            output_column=self.output_column,
            values=values,
            strict=self.strict,
        )


@dataclass(frozen=True)
class FittedValueToKeyMapper(FittedTransform):
    """Frozen value <-> key table."""

    input_schema: Schema
    output_schema: Schema
    input_column: str
    output_column: str
    values: tuple[Any, ...]
    strict: bool = False
    _index: dict[Any, int] = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "_index", {v: k for k, v in enumerate(self.values)})

    @property
    def name(self) -> str:
        return "value_to_key"

    @property
    def cardinality(self) -> int:
        return len(self.values)

    def map_value_to_key(self, value: Any) -> int:
        """Key of ``value``; ``UNKNOWN_KEY`` (or ``UnknownCategory`` when strict) if unseen."""
        key = self._index.get(_native_value(value))
        if key is not None:
            return key
        if self.strict:
            raise UnknownCategory(
                "Category not seen while fitting",
                column=self.input_column,
                actual=value,
                expected=list(self.values[:10]),
            )
        return UNKNOWN_KEY

    def map_key_to_value(self, key: int) -> Any:
        """Inverse of ``map_value_to_key``; ``UNKNOWN_KEY`` maps to None."""
        return _lookup_value(self.values, key, self.output_column)

    def transform(self, frame: pd.DataFrame) -> pd.DataFrame:
        out = frame.copy()
        keys = [self.map_value_to_key(v) for v in frame[self.input_column].tolist()]
        out[self.output_column] = pd.Series(keys, index=out.index, dtype=np.int64)
        return out


def _lookup_value(values: tuple[Any, ...], key: int, column: str) -> Any:
    key = int(key)
    if key == UNKNOWN_KEY:
        return None
    if not 0 <= key < len(values):
        raise UnknownCategory(
            "Key outside the fitted key range",
            column=column,
            expected=f"0..{len(values) - 1}",
            actual=key,
        )
    return values[key]


@dataclass(frozen=True)
class KeyToValueMapper(Transform):
    """Map keys back to their category values (reverse key mapping).

    The input must be a key column whose fitted values are known, e.g. the
    output of ``ValueToKeyMapper`` or a multiclass trainer's predicted label.
    """

    output_column: str
    input_column: str

    @property
    def inputs(self) -> tuple[str, ...]:
        return (self.input_column,)

    def declared_outputs(self, schema: Schema) -> Schema:
        spec = require_column(schema, self.input_column, [ColumnType.KEY], stage="KeyToValueMapper")
        value_type = _value_type(spec.key_values) if spec.key_values else ColumnType.STRING
        return schema.with_column(
            ColumnSpec(name=self.output_column, type=value_type, role=ColumnRole.DERIVED)
        )

    def fit(self, frame: pd.DataFrame, schema: Schema) -> "FittedKeyToValueMapper":
        spec = require_column(schema, self.input_column, [ColumnType.KEY], stage="KeyToValueMapper")
        if spec.key_values is None:
            raise UnsupportedConversion(
                "KeyToValueMapper: key column has no fitted key values",
                column=self.input_column,
            )
        return FittedKeyToValueMapper(
            input_schema=schema,
            output_schema=self.declared_outputs(schema),
            input_column=self.input_column,
            output_column=self.output_column,
            values=spec.key_values,
        )


@dataclass(frozen=True)
class FittedKeyToValueMapper(FittedTransform):
    input_schema: Schema
    output_schema: Schema
    input_column: str
    output_column: str
    values: tuple[Any, ...]

    @property
    def name(self) -> str:
        return "key_to_value"

    def transform(self, frame: pd.DataFrame) -> pd.DataFrame:
        out = frame.copy()
        mapped = [_lookup_value(self.values, k, self.input_column) for k in frame[self.input_column].tolist()]
        value_type = self.output_schema[self.output_column].type
        if any(v is None for v in mapped) or value_type == ColumnType.STRING:
            series = pd.Series(mapped, index=out.index, dtype=object)
        elif value_type == ColumnType.BOOL:
            series = pd.Series(mapped, index=out.index, dtype=bool)
        else:
            series = pd.Series(mapped, index=out.index, dtype=np.float32)
        out[self.output_column] = series
        return out
