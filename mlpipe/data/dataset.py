"""Immutable, schema-bound datasets backed by pandas.

A Dataset owns a private copy of its frame; every accessor hands out copies
or read-only values, so train/test partitions never alias each other and no
stage can mutate a dataset it was given.
"""

import csv
from collections.abc import Iterable, Iterator, Mapping, Sequence
from dataclasses import dataclass
from pathlib import Path
from types import MappingProxyType
from typing import Any

import numpy as np
import pandas as pd
from sklearn.model_selection import train_test_split

from mlpipe.data.schema import ColumnSpec, ColumnType, Schema
from mlpipe.errors import InvalidFraction, MalformedRow, SchemaMismatch
from mlpipe.logging_config import get_logger
from mlpipe.utils import compute_dataset_hash

logger = get_logger()

Record = Mapping[str, Any]

_TRUE_TOKENS = frozenset({"true", "1"})
_FALSE_TOKENS = frozenset({"false", "0"})


# ---------------------------------------------------------------------------
# Value coercion
# ---------------------------------------------------------------------------


def parse_field(spec: ColumnSpec, raw: str, row: int) -> Any:
    """Parse one delimited-text field into its column type.

    Args:
        spec: Column the field belongs to.
        raw: Field text (already unquoted by the CSV reader).
        row: 1-based line number in the source, for error context.

    Raises:
        MalformedRow: The text cannot be parsed as the column type.
    """
    if spec.type == ColumnType.STRING:
        return raw

    text = raw.strip()
    try:
        if spec.type == ColumnType.BOOL:
            lowered = text.lower()
            if lowered in _TRUE_TOKENS:
                return True
            if lowered in _FALSE_TOKENS:
                return False
            raise ValueError(text)
        if spec.type == ColumnType.FLOAT32:
            return np.float32(float(text))
        if spec.type == ColumnType.KEY:
            return int(text)
        if spec.type == ColumnType.VECTOR:
            parts = text.replace(";", " ").split()
            vector = np.asarray([float(p) for p in parts], dtype=np.float32)
            if spec.size is not None and vector.shape[0] != spec.size:
                raise SchemaMismatch(
                    "Vector field has wrong length",
                    column=spec.name,
                    expected=spec.size,
                    actual=int(vector.shape[0]),
                    row=row,
                )
            return vector
    except ValueError:
        raise MalformedRow(
            "Unparsable field",
            column=spec.name,
            expected=spec.type.value,
            actual=raw,
            row=row,
        ) from None
    raise SchemaMismatch("Unknown column type", column=spec.name, actual=spec.type)


def coerce_value(spec: ColumnSpec, value: Any, row: int | None = None) -> Any:
    """Check an in-memory value against its column type and normalize it.

    Integers widen to float32; everything else must already have the
    declared type.

    Raises:
        SchemaMismatch: The value does not conform to the column type.
    """

    def mismatch() -> SchemaMismatch:
        return SchemaMismatch(
            "Value does not match column type",
            column=spec.name,
            expected=spec.type.value,
            actual=type(value).__name__,
            row=row,
        )

    if spec.type == ColumnType.BOOL:
        if isinstance(value, (bool, np.bool_)):
            return bool(value)
        raise mismatch()
    if spec.type == ColumnType.FLOAT32:
        if isinstance(value, (bool, np.bool_)) or not isinstance(value, (int, float, np.number)):
            raise mismatch()
        return np.float32(value)
    if spec.type == ColumnType.STRING:
        if isinstance(value, str):
            return value
        raise mismatch()
    if spec.type == ColumnType.KEY:
        if isinstance(value, (int, np.integer)) and not isinstance(value, (bool, np.bool_)):
            return int(value)
        raise mismatch()
    if spec.type == ColumnType.VECTOR:
        try:
            vector = np.asarray(value, dtype=np.float32)
        except (TypeError, ValueError):
            raise mismatch() from None
        if vector.ndim != 1:
            raise mismatch()
        if spec.size is not None and vector.shape[0] != spec.size:
            raise SchemaMismatch(
                "Vector value has wrong length",
                column=spec.name,
                expected=spec.size,
                actual=int(vector.shape[0]),
                row=row,
            )
        return vector
    raise mismatch()


def _column_series(spec: ColumnSpec, values: list[Any]) -> pd.Series:
    """Build a pandas column with the storage dtype of ``spec``."""
    if spec.type == ColumnType.BOOL:
        return pd.Series(values, dtype=bool)
    if spec.type == ColumnType.FLOAT32:
        return pd.Series(values, dtype=np.float32)
    if spec.type == ColumnType.KEY:
        return pd.Series(values, dtype=np.int64)
    series = pd.Series([None] * len(values), dtype=object)
    for i, value in enumerate(values):
        series.iat[i] = value
    return series


def _native(spec: ColumnSpec, value: Any) -> Any:
    """Convert a stored cell to a plain, read-only Python value."""
    if value is None:
        return None
    if spec.type == ColumnType.BOOL:
        return bool(value)
    if spec.type == ColumnType.FLOAT32:
        return float(value)
    if spec.type == ColumnType.KEY:
        return int(value)
    if spec.type == ColumnType.VECTOR:
        vector = np.array(value, dtype=np.float32, copy=True)
        vector.setflags(write=False)
        return vector
    return value


def records_to_frame(records: Sequence[Record], schema: Schema) -> pd.DataFrame:
    """Validate records against ``schema`` and build a typed frame.

    Raises:
        SchemaMismatch: A record has missing or extra columns, or a mistyped value.
    """
    names = schema.names
    expected = set(names)
    columns: dict[str, list[Any]] = {name: [] for name in names}
    for i, record in enumerate(records):
        keys = set(record.keys())
        if keys != expected:
            raise SchemaMismatch(
                "Record columns do not match schema",
                expected=sorted(expected),
                actual=sorted(keys),
                row=i,
            )
        for spec in schema.columns:
            columns[spec.name].append(coerce_value(spec, record[spec.name], row=i))
    return pd.DataFrame(
        {spec.name: _column_series(spec, columns[spec.name]) for spec in schema.columns},
        columns=names,
    )


def frame_row(frame: pd.DataFrame, schema: Schema, index: int) -> Record:
    """Read row ``index`` of a typed frame as an immutable record."""
    return MappingProxyType(
        {spec.name: _native(spec, frame[spec.name].iat[index]) for spec in schema.columns}
    )


def _field_counts(source: Path, separator: str) -> Iterator[tuple[int, int]]:
    """Yield ``(first line number, field count)`` for every non-blank record of a delimited file.

    A quoted field may span several physical lines, so records and lines differ.
    """
    with source.open(newline="", encoding="utf-8") as handle:
        reader = csv.reader(handle, delimiter=separator)
        last_line = 0
        for fields in reader:
            if fields:
                yield last_line + 1, len(fields)
            last_line = reader.line_num


# ---------------------------------------------------------------------------
# Dataset
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Split:
    """A deterministic train/test partition of a dataset.

    Attributes:
        train: Training partition.
        test: Held-out partition.
        train_indices: Row indices of ``train`` in the original dataset.
        test_indices: Row indices of ``test`` in the original dataset.
    """

    train: "Dataset"
    test: "Dataset"
    train_indices: tuple[int, ...]
    test_indices: tuple[int, ...]


class Dataset:
    """Ordered, immutable collection of records conforming to one schema.

    Use ``load``, ``from_records`` or ``from_frame`` to construct a dataset
    from untrusted input; the plain constructor expects an already typed frame.
    """

    def __init__(self, frame: pd.DataFrame, schema: Schema) -> None:
        missing = [n for n in schema.names if n not in frame.columns]
        if missing:
            raise SchemaMismatch("Frame is missing schema columns", expected=schema.names, actual=missing)
        self._frame = frame.loc[:, schema.names].reset_index(drop=True).copy(deep=True)
        self._schema = schema

    # -- construction -------------------------------------------------------

    @classmethod
    def load(
        cls,
        source: str | Path,
        schema: Schema,
        separator: str = ",",
    ) -> "Dataset":
        """Load a delimited text file with a header row.

        Columns are bound by position: the file's column order must match
        the schema order. Quoted fields may contain the separator.

        Args:
            source: Path to the file.
            schema: Declared schema of every row.
            separator: Field separator.

        Returns:
            Validated dataset.

        Raises:
            FileNotFoundError: If the file doesn't exist.
            SchemaMismatch: Header or row field count disagrees with the schema.
            MalformedRow: A field cannot be parsed into its column type.
        """
        source = Path(source)
        if not source.exists():
            raise FileNotFoundError(f"Dataset not found: {source}")

        # The header is read as a data row so the field count is fixed by it
        # and longer rows fail instead of shifting into an index column.
        try:
            raw = pd.read_csv(
                source,
                sep=separator,
                header=None,
                dtype=str,
                keep_default_na=False,
                na_filter=False,
                skip_blank_lines=True,
            )
        except pd.errors.EmptyDataError:
            raise SchemaMismatch("Source has no header row", expected=schema.names) from None
        except pd.errors.ParserError as exc:
            raise SchemaMismatch(f"Row has more fields than the header: {exc}", expected=len(schema)) from None

        header = [str(c) for c in raw.iloc[0]] if len(raw) else []
        if len(header) != len(schema):
            raise SchemaMismatch(
                "Header column count does not match schema",
                expected=schema.names,
                actual=header,
            )
        if header != schema.names:
            logger.debug("dataset_header_differs", header=header, schema=schema.names)

        # The CSV reader pads short rows with empty fields, so counts are checked on the raw lines.
        record_lines = list(_field_counts(source, separator))
        for line, count in record_lines:
            if count != len(schema):
                raise SchemaMismatch(
                    "Row field count does not match the header",
                    expected=len(schema),
                    actual=count,
                    row=line,
                )

        columns: dict[str, list[Any]] = {name: [] for name in schema.names}
        rows = raw.iloc[1:].itertuples(index=False, name=None)
        for (line, _), values in zip(record_lines[1:], rows, strict=True):
            for spec, value in zip(schema.columns, values, strict=True):
                columns[spec.name].append(parse_field(spec, value, line))

        frame = pd.DataFrame(
            {spec.name: _column_series(spec, columns[spec.name]) for spec in schema.columns},
            columns=schema.names,
        )
        dataset = cls(frame, schema)
        logger.info("dataset_loaded", source=str(source), rows=len(dataset), columns=len(schema))
        return dataset

    @classmethod
    def from_records(cls, records: Iterable[Record], schema: Schema) -> "Dataset":
        """Build a dataset from in-memory records, validating every value."""
        return cls(records_to_frame(list(records), schema), schema)

    @classmethod
    def from_frame(cls, frame: pd.DataFrame, schema: Schema) -> "Dataset":
        """Build a dataset from an untyped DataFrame, validating every value."""
        extra = [c for c in frame.columns if c not in schema]
        if extra:
            raise SchemaMismatch("Frame has columns not in schema", expected=schema.names, actual=extra)
        return cls.from_records(frame.to_dict(orient="records"), schema)

    # -- accessors ----------------------------------------------------------

    @property
    def schema(self) -> Schema:
        return self._schema

    def __len__(self) -> int:
        return len(self._frame)

    def __repr__(self) -> str:
        return f"Dataset(rows={len(self)}, columns={self._schema.describe()})"

    def to_frame(self) -> pd.DataFrame:
        """Return a copy of the underlying frame."""
        return self._frame.copy(deep=True)

    def row(self, index: int) -> Record:
        """Return row ``index`` as an immutable record."""
        if not 0 <= index < len(self):
            raise IndexError(f"Row {index} out of range for dataset of {len(self)} rows")
        return frame_row(self._frame, self._schema, index)

    def records(self) -> Iterator[Record]:
        """Iterate over rows as immutable records."""
        for i in range(len(self)):
            yield frame_row(self._frame, self._schema, i)

    def column(self, name: str) -> np.ndarray:
        """Return a copy of one column's values."""
        spec = self._schema[name]
        values = self._frame[spec.name]
        if spec.type == ColumnType.VECTOR:
            return np.vstack(values.to_numpy()) if len(values) else np.empty((0, spec.size or 0))
        return values.to_numpy(copy=True)

    def take(self, indices: Sequence[int]) -> "Dataset":
        """Return a new dataset with the given rows, in the given order."""
        return Dataset(self._frame.iloc[list(indices)], self._schema)

    def content_hash(self) -> str:
        """Short content hash used to version training data."""
        return compute_dataset_hash(self._frame)

    # -- partitioning -------------------------------------------------------

    def split(self, test_fraction: float, seed: int) -> Split:
        """Partition rows into train and test sets.

        A seeded permutation is applied to the row indices; the first
        ``ceil(test_fraction * N)`` permuted rows form the test set. Identical
        input order, fraction and seed always give the identical partition.

        Args:
            test_fraction: Share of rows held out, strictly between 0 and 1.
            seed: Seed of the permutation.

        Raises:
            InvalidFraction: Fraction outside (0, 1) or an empty partition.
        """
        if not (isinstance(test_fraction, (int, float)) and 0.0 < test_fraction < 1.0):
            raise InvalidFraction("Test fraction must be in (0, 1)", actual=test_fraction)

        indices = np.arange(len(self))
        try:
            train_idx, test_idx = train_test_split(
                indices,
                test_size=test_fraction,
                random_state=seed,
                shuffle=True,
            )
        except ValueError as exc:
            raise InvalidFraction(
                f"Fraction leaves an empty partition: {exc}",
                actual=test_fraction,
                expected=f"N={len(self)}",
            ) from None

        train_indices = tuple(int(i) for i in train_idx)
        test_indices = tuple(int(i) for i in test_idx)
        logger.info("dataset_split", train=len(train_indices), test=len(test_indices), seed=seed)
        return Split(
            train=self.take(train_indices),
            test=self.take(test_indices),
            train_indices=train_indices,
            test_indices=test_indices,
        )
