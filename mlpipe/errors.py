"""Error taxonomy for dataset loading, pipeline fitting and inference.

Structural errors (schema and column dependency checks) are raised before any
data pass. Non-convergence is the only recoverable condition and is reported
as a warning, not an exception.
"""

from typing import Any


class MLPipeError(Exception):
    """Base class for all mlpipe errors.

    Carries enough context (column, expected vs. actual, row number) to
    diagnose a failure without re-running the pipeline.
    """

    def __init__(
        self,
        message: str,
        *,
        column: str | None = None,
        expected: Any = None,
        actual: Any = None,
        row: int | None = None,
    ) -> None:
        self.message = message
        self.column = column
        self.expected = expected
        self.actual = actual
        self.row = row
        super().__init__(self._format())

    def _format(self) -> str:
        context = []
        if self.row is not None:
            context.append(f"row={self.row}")
        if self.column is not None:
            context.append(f"column={self.column!r}")
        if self.expected is not None:
            context.append(f"expected={self.expected!r}")
        if self.actual is not None:
            context.append(f"actual={self.actual!r}")
        if not context:
            return self.message
        return f"{self.message} ({', '.join(context)})"


class SchemaMismatch(MLPipeError):
    """Row shape or value type disagrees with the declared schema."""


class MalformedRow(MLPipeError):
    """A field could not be parsed into its column type."""


class InvalidFraction(MLPipeError):
    """Split fraction outside (0, 1) or producing an empty partition."""


class MissingColumn(MLPipeError):
    """A declared input column is not produced by any earlier stage."""


class DimensionMismatch(MLPipeError):
    """A vector's runtime length differs from its declared size."""


class UnsupportedConversion(MLPipeError):
    """A stage was asked to read or convert a column type it cannot handle."""


class UnknownCategory(MLPipeError):
    """A category value (or key) was never seen while fitting."""


class EmptyDataset(MLPipeError):
    """An operation that needs rows was given a dataset without any."""


class CorruptArtifact(MLPipeError):
    """A model artifact could not be decoded."""


class SchemaIncompatible(MLPipeError):
    """An artifact or record does not match the schema the caller expects."""


class TrainingDidNotConverge(UserWarning):
    """The optimizer hit its iteration budget; parameters are partial."""
