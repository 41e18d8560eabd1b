"""Schemas and schema-bound datasets."""

from mlpipe.data.dataset import Dataset, Record, Split
from mlpipe.data.schema import ColumnRole, ColumnSpec, ColumnType, Schema

__all__ = [
    "ColumnRole",
    "ColumnSpec",
    "ColumnType",
    "Dataset",
    "Record",
    "Schema",
    "Split",
]
