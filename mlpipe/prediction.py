"""Single-record inference over a fitted Model.

A record is validated against the model's input schema, wrapped in a
one-row Dataset and run through ``Model.transform``, the same code path as
batch inference, so a single prediction always equals the corresponding
row of a batch prediction.
"""

import time
from collections.abc import Iterable
from pathlib import Path

from mlpipe.artifacts.bundle import load_model
from mlpipe.data.dataset import Record
from mlpipe.data.schema import Schema
from mlpipe.logging_config import get_logger
from mlpipe.pipeline import Model
from mlpipe.trainers.base import TaskKind

logger = get_logger()


class PredictionEngine:
    """Serves predictions for one fitted model.

    Args:
        model: The fitted model to serve.
    """

    def __init__(self, model: Model) -> None:
        self._model: Model | None = model

    @classmethod
    def from_artifact(
        cls,
        path: Path | str,
        task: TaskKind | str | None = None,
        schema: Schema | None = None,
    ) -> "PredictionEngine":
        """Create an engine from a saved model artifact."""
        return cls(load_model(path, task=task, schema=schema))

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    @property
    def model(self) -> Model:
        """The served model.

        Raises:
            RuntimeError: The engine has been closed.
        """
        if self._model is None:
            raise RuntimeError("PredictionEngine is closed")
        return self._model

    @property
    def closed(self) -> bool:
        return self._model is None

    def predict(self, record: Record) -> Record:
        """Predict a single record.

        The record must contain every input column of the model; the label
        column may be omitted.

        Args:
            record: Mapping of column name to value.

        Returns:
            The transformed record, including the prediction columns.

        Raises:
            SchemaIncompatible: Missing, extra or mistyped columns.
            RuntimeError: The engine has been closed.
        """
        model = self.model
        return model.transform(model.to_dataset([record])).row(0)

    def predict_many(self, records: Iterable[Record]) -> list[Record]:
        """Predict a batch of records in one pass."""
        model = self.model
        start_time = time.perf_counter()
        scored = model.transform(model.to_dataset(records))
        logger.debug(
            "batch_predicted",
            rows=len(scored),
            duration_ms=round((time.perf_counter() - start_time) * 1000, 3),
        )
        return list(scored.records())

    def close(self) -> None:
        """Release the model. Further predictions raise ``RuntimeError``."""
        self._model = None

    def __enter__(self) -> "PredictionEngine":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()
