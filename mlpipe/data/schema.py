"""Typed column descriptors for record types."""

from collections.abc import Iterable
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, field_validator

from mlpipe.errors import MissingColumn, SchemaMismatch, UnsupportedConversion


class ColumnType(str, Enum):
    """Column value types.

    ``KEY`` is never loaded from a source file; it is the dense integer
    category key produced by key mapping and by multiclass trainers.
    """

    BOOL = "bool"
    FLOAT32 = "float32"
    STRING = "string"
    VECTOR = "vector"
    KEY = "key"


class ColumnRole(str, Enum):
    """Role a column plays in a task."""

    FEATURE = "feature"
    LABEL = "label"
    DERIVED = "derived"


class ColumnSpec(BaseModel):
    """A single named, typed column.

    Attributes:
        name: Column name, unique within a schema.
        type: Value type.
        role: Feature, label, or derived (produced by a pipeline stage).
        size: Fixed length of a vector column, when known.
        key_values: Ordered category values of a fitted key column.
    """

    model_config = ConfigDict(frozen=True)

    name: str
    type: ColumnType
    role: ColumnRole = ColumnRole.FEATURE
    size: int | None = None
    key_values: tuple[Any, ...] | None = None

    @property
    def width(self) -> int | None:
        """Number of numeric slots this column contributes to a feature vector."""
        if self.type == ColumnType.VECTOR:
            return self.size
        return 1

    def same_shape(self, other: "ColumnSpec") -> bool:
        """Whether two specs agree on name, type and role (ignoring fitted metadata)."""
        return (self.name, self.type, self.role) == (other.name, other.type, other.role)


class Schema(BaseModel):
    """Ordered sequence of column specs.

    Invariants: column names are unique and at most one column has the label
    role. Task schemas additionally require exactly one label column, which
    ``label_column`` enforces.
    """

    model_config = ConfigDict(frozen=True)

    columns: tuple[ColumnSpec, ...]

    @field_validator("columns")
    @classmethod
    def _check_columns(cls, columns: tuple[ColumnSpec, ...]) -> tuple[ColumnSpec, ...]:
        seen: set[str] = set()
        for column in columns:
            if column.name in seen:
                raise ValueError(f"Duplicate column name: {column.name!r}")
            seen.add(column.name)
        labels = [c.name for c in columns if c.role == ColumnRole.LABEL]
        if len(labels) > 1:
            raise ValueError(f"At most one label column allowed, got {labels}")
        return columns

    @classmethod
    def build(cls, columns: Iterable[tuple[str, str] | tuple[str, str, str]]) -> "Schema":
        """Build a schema from ``(name, type[, role])`` tuples.

        Example:
            >>> Schema.build([("Label", "bool", "label"), ("Text", "string")])
        """
        specs = []
        for entry in columns:
            name, type_, *rest = entry
            role = rest[0] if rest else ColumnRole.FEATURE
            specs.append(ColumnSpec(name=name, type=ColumnType(type_), role=ColumnRole(role)))
        return cls(columns=tuple(specs))

    @property
    def names(self) -> list[str]:
        """Column names in declared order."""
        return [c.name for c in self.columns]

    def __len__(self) -> int:
        return len(self.columns)

    def __contains__(self, name: object) -> bool:
        return any(c.name == name for c in self.columns)

    def get(self, name: str) -> ColumnSpec | None:
        """Return the spec for ``name`` or None."""
        for column in self.columns:
            if column.name == name:
                return column
        return None

    def __getitem__(self, name: str) -> ColumnSpec:
        column = self.get(name)
        if column is None:
            raise MissingColumn("Column not in schema", column=name, expected=self.names)
        return column

    @property
    def label_column(self) -> ColumnSpec:
        """The single label column.

        Raises:
            SchemaMismatch: If the schema declares no label column.
        """
        for column in self.columns:
            if column.role == ColumnRole.LABEL:
                return column
        raise SchemaMismatch("Task schema has no label column", expected="exactly one label")

    @property
    def has_label(self) -> bool:
        return any(c.role == ColumnRole.LABEL for c in self.columns)

    def with_column(self, spec: ColumnSpec) -> "Schema":
        """Return a new schema with ``spec`` added, or replacing a same-named column in place."""
        columns = list(self.columns)
        for i, existing in enumerate(columns):
            if existing.name == spec.name:
                if existing.role == ColumnRole.LABEL and spec.role != ColumnRole.LABEL:
                    spec = spec.model_copy(update={"role": ColumnRole.LABEL})
                columns[i] = spec
                return Schema(columns=tuple(columns))
        return Schema(columns=(*columns, spec))

    def without_label(self) -> "Schema":
        """Return a schema without its label column (inference-time input)."""
        return Schema(columns=tuple(c for c in self.columns if c.role != ColumnRole.LABEL))

    def is_compatible(self, other: "Schema") -> bool:
        """Same column names, types and roles in the same order."""
        if len(self) != len(other):
            return False
        return all(a.same_shape(b) for a, b in zip(self.columns, other.columns, strict=True))

    def describe(self) -> list[str]:
        """Human-readable ``name:type`` list for error messages and metadata."""
        return [f"{c.name}:{c.type.value}" for c in self.columns]


def require_column(
    schema: Schema,
    name: str,
    allowed: Iterable[ColumnType] | None = None,
    stage: str | None = None,
) -> ColumnSpec:
    """Resolve a column a stage reads, failing fast when it cannot be read.

    Args:
        schema: Schema visible to the stage.
        name: Column the stage reads.
        allowed: Acceptable column types, or None for any.
        stage: Stage name for the error message.

    Raises:
        MissingColumn: The column is not present.
        UnsupportedConversion: The column has a type the stage cannot read.
    """
    column = schema.get(name)
    prefix = f"{stage}: " if stage else ""
    if column is None:
        raise MissingColumn(f"{prefix}input column not produced by any earlier stage", column=name)
    if allowed is not None:
        allowed = tuple(allowed)
        if column.type not in allowed:
            raise UnsupportedConversion(
                f"{prefix}unsupported input column type",
                column=name,
                expected=[t.value for t in allowed],
                actual=column.type.value,
            )
    return column
