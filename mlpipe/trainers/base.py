"""Trainer capability and fitted predictor variants.

A trainer is the one pipeline stage that learns from labels. Each strategy
wraps a scikit-learn estimator behind the same surface as a transform
declaration (``declared_outputs``/``fit``) plus ``train`` for raw arrays.
Fitting returns one of three fitted variants, chosen by task kind:

- ``FittedBinaryTrainer``: Score, Probability, PredictedLabel (bool)
- ``FittedMulticlassTrainer``: Score (per-class vector), PredictedLabel (key)
- ``FittedRegressionTrainer``: Score
"""

import warnings
from abc import abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, ClassVar

import numpy as np
import pandas as pd
from sklearn.exceptions import ConvergenceWarning

from mlpipe.data.schema import ColumnRole, ColumnSpec, ColumnType, Schema, require_column
from mlpipe.errors import TrainingDidNotConverge
from mlpipe.logging_config import get_logger
from mlpipe.transforms.base import FittedTransform, Transform, column_matrix, vector_series

logger = get_logger()

SCORE_COLUMN = "Score"
PROBABILITY_COLUMN = "Probability"
PREDICTED_LABEL_COLUMN = "PredictedLabel"
DEFAULT_FEATURE_COLUMN = "Features"
DEFAULT_THRESHOLD = 0.5


class TaskKind(str, Enum):
    """Supervised task kinds."""

    BINARY = "binary"
    MULTICLASS = "multiclass"
    REGRESSION = "regression"


LABEL_TYPES: dict[TaskKind, tuple[ColumnType, ...]] = {
    TaskKind.BINARY: (ColumnType.BOOL,),
    TaskKind.MULTICLASS: (ColumnType.KEY,),
    TaskKind.REGRESSION: (ColumnType.FLOAT32,),
}


@dataclass(frozen=True)
class TrainedParameters:
    """Result of ``BaseTrainer.train``.

    Attributes:
        estimator: Fitted scikit-learn estimator.
        params: Hyperparameters used.
        converged: False when the optimizer hit its iteration budget.
    """

    estimator: Any
    params: dict[str, Any]
    converged: bool = True


class BaseTrainer(Transform):
    """Abstract base class for trainer strategies.

    Implements the Strategy pattern to allow interchangeable learning
    algorithms behind one fit/predict surface. The declaration itself is
    never modified: ``fit`` returns a separate fitted trainer.

    Args:
        label_column: Column holding the training label.
        feature_column: Float32 or vector column holding the features.
        threshold: Probability threshold for the predicted label (binary only).
        **params: Hyperparameters overriding ``default_params``.
    """

    task: ClassVar[TaskKind]

    def __init__(
        self,
        label_column: str = "Label",
        feature_column: str = DEFAULT_FEATURE_COLUMN,
        threshold: float = DEFAULT_THRESHOLD,
        **params: Any,
    ) -> None:
        if not 0.0 <= threshold <= 1.0:
            raise ValueError(f"Threshold must be in [0, 1], got {threshold}")
        self._label_column = label_column
        self._feature_column = feature_column
        self._threshold = threshold
        self._params: dict[str, Any] = {**self.default_params, **params}

    @property
    @abstractmethod
    def name(self) -> str:
        """Unique identifier for the trainer strategy."""
        ...

    @property
    @abstractmethod
    def default_params(self) -> dict[str, Any]:
        """Default hyperparameters for the estimator."""
        ...

    @abstractmethod
    def _create_model(self, **params: Any) -> Any:
        """Create the underlying scikit-learn estimator.

        Args:
            **params: Hyperparameters for model initialization.

        Returns:
            An unfitted scikit-learn estimator.
        """
        ...

    @property
    def label_column(self) -> str:
        return self._label_column

    @property
    def feature_column(self) -> str:
        return self._feature_column

    @property
    def threshold(self) -> float:
        return self._threshold

    @property
    def params(self) -> dict[str, Any]:
        """Get the parameters used for training."""
        return self._params.copy()

    @property
    def inputs(self) -> tuple[str, ...]:
        return (self._feature_column, self._label_column)

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}(label={self._label_column!r}, "
            f"features={self._feature_column!r}, params={self._params})"
        )

    def declared_outputs(self, schema: Schema) -> Schema:
        feature_spec, label_spec = self._resolve(schema)
        return _FITTED_BY_TASK[self.task].output_schema_for(schema, label_spec)

    def _resolve(self, schema: Schema) -> tuple[ColumnSpec, ColumnSpec]:
        stage = f"{self.name} trainer"
        feature_spec = require_column(
            schema,
            self._feature_column,
            [ColumnType.VECTOR, ColumnType.FLOAT32],
            stage=stage,
        )
        label_spec = require_column(schema, self._label_column, LABEL_TYPES[self.task], stage=stage)
        return feature_spec, label_spec

    def train(self, X: np.ndarray, y: np.ndarray, **params: Any) -> TrainedParameters:
        """Train the estimator on arrays.

        Non-convergence is reported, not raised: a ``TrainingDidNotConverge``
        warning is emitted and the partially optimized estimator is returned
        with ``converged=False``.

        Args:
            X: Feature matrix.
            y: Label vector.
            **params: Hyperparameters overriding this trainer's params.

        Returns:
            The fitted estimator with its convergence flag.
        """
        merged = {**self._params, **params}
        estimator = self._create_model(**merged)
        with warnings.catch_warnings(record=True) as caught:
            warnings.simplefilter("always", ConvergenceWarning)
            estimator.fit(X, y)

        converged = True
        for warning in caught:
            if issubclass(warning.category, ConvergenceWarning):
                converged = False
            else:
                warnings.warn_explicit(
                    warning.message, warning.category, warning.filename, warning.lineno
                )

        if not converged:
            logger.warning("training_did_not_converge", trainer=self.name, params=merged)
            warnings.warn(
                f"{self.name} reached its iteration budget before converging; "
                "parameters are partially optimized",
                TrainingDidNotConverge,
                stacklevel=2,
            )
        return TrainedParameters(estimator=estimator, params=merged, converged=converged)

    def fit(self, frame: pd.DataFrame, schema: Schema) -> "FittedTrainer":
        feature_spec, label_spec = self._resolve(schema)
        X = column_matrix(frame, feature_spec)
        y = _label_values(frame, label_spec, self.task)
        trained = self.train(X, y)
        fitted_cls = _FITTED_BY_TASK[self.task]
        return fitted_cls(
            input_schema=schema,
            output_schema=fitted_cls.output_schema_for(schema, label_spec),
            trainer_name=self.name,
            feature_column=self._feature_column,
            label_column=self._label_column,
            feature_width=X.shape[1],
            estimator=trained.estimator,
            params=trained.params,
            converged=trained.converged,
            threshold=self._threshold,
        )


def _label_values(frame: pd.DataFrame, spec: ColumnSpec, task: TaskKind) -> np.ndarray:
    values = frame[spec.name]
    if task == TaskKind.BINARY:
        return values.to_numpy(dtype=bool)
    if task == TaskKind.MULTICLASS:
        return values.to_numpy(dtype=np.int64)
    return values.to_numpy(dtype=np.float64)


# ---------------------------------------------------------------------------
# Fitted variants
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class FittedTrainer(FittedTransform):
    """Fields and helpers shared by every fitted trainer variant."""

    task: ClassVar[TaskKind]

    input_schema: Schema
    output_schema: Schema
    trainer_name: str
    feature_column: str
    label_column: str
    feature_width: int
    estimator: Any = field(repr=False)
    params: dict[str, Any] = field(default_factory=dict, compare=False)
    converged: bool = True
    threshold: float = DEFAULT_THRESHOLD

    @property
    def name(self) -> str:
        return self.trainer_name

    @classmethod
    @abstractmethod
    def output_schema_for(cls, schema: Schema, label_spec: ColumnSpec) -> Schema:
        """Schema after this trainer's prediction columns are added."""
        ...

    def features(self, frame: pd.DataFrame) -> np.ndarray:
        """Feature matrix of ``frame``, checked against the training width."""
        return column_matrix(frame, self.input_schema[self.feature_column], self.feature_width)


@dataclass(frozen=True)
class FittedBinaryTrainer(FittedTrainer):
    """Binary classifier: decision score, calibrated probability, thresholded label."""

    task: ClassVar[TaskKind] = TaskKind.BINARY

    @classmethod
    def output_schema_for(cls, schema: Schema, label_spec: ColumnSpec) -> Schema:
        return (
            schema.with_column(ColumnSpec(name=SCORE_COLUMN, type=ColumnType.FLOAT32, role=ColumnRole.DERIVED))
            .with_column(ColumnSpec(name=PROBABILITY_COLUMN, type=ColumnType.FLOAT32, role=ColumnRole.DERIVED))
            .with_column(ColumnSpec(name=PREDICTED_LABEL_COLUMN, type=ColumnType.BOOL, role=ColumnRole.DERIVED))
        )

    def score(self, X: np.ndarray) -> np.ndarray:
        """Raw decision value; positive favours the ``True`` class."""
        return np.asarray(self.estimator.decision_function(X), dtype=np.float64).reshape(-1)

    @staticmethod
    def probability(score: np.ndarray) -> np.ndarray:
        """Logistic calibration of the decision score into [0, 1]."""
        with np.errstate(over="ignore"):
            return 1.0 / (1.0 + np.exp(-np.asarray(score, dtype=np.float64)))

    def transform(self, frame: pd.DataFrame) -> pd.DataFrame:
        out = frame.copy()
        if len(frame):
            score = self.score(self.features(frame))
        else:
            score = np.empty(0, dtype=np.float64)
        probability = self.probability(score)
        out[SCORE_COLUMN] = pd.Series(score, index=out.index, dtype=np.float32)
        out[PROBABILITY_COLUMN] = pd.Series(probability, index=out.index, dtype=np.float32)
        out[PREDICTED_LABEL_COLUMN] = pd.Series(probability >= self.threshold, index=out.index, dtype=bool)
        return out


@dataclass(frozen=True)
class FittedMulticlassTrainer(FittedTrainer):
    """Multiclass classifier over dense label keys.

    ``Score`` holds one probability per fitted key (0 for keys absent from
    training); ``PredictedLabel`` is the argmax, lowest key winning ties.
    """

    task: ClassVar[TaskKind] = TaskKind.MULTICLASS

    @classmethod
    def output_schema_for(cls, schema: Schema, label_spec: ColumnSpec) -> Schema:
        n_classes = len(label_spec.key_values) if label_spec.key_values is not None else None
        return schema.with_column(
            ColumnSpec(name=SCORE_COLUMN, type=ColumnType.VECTOR, role=ColumnRole.DERIVED, size=n_classes)
        ).with_column(
            ColumnSpec(
                name=PREDICTED_LABEL_COLUMN,
                type=ColumnType.KEY,
                role=ColumnRole.DERIVED,
                key_values=label_spec.key_values,
            )
        )

    @property
    def n_classes(self) -> int:
        size = self.output_schema[SCORE_COLUMN].size
        if size is not None:
            return size
        return int(np.max(self.estimator.classes_)) + 1

    def scores(self, X: np.ndarray) -> np.ndarray:
        """Per-key probability matrix of shape ``(n_rows, n_classes)``."""
        proba = np.asarray(self.estimator.predict_proba(X), dtype=np.float64)
        scores = np.zeros((X.shape[0], self.n_classes), dtype=np.float64)
        scores[:, np.asarray(self.estimator.classes_, dtype=np.int64)] = proba
        return scores

    def transform(self, frame: pd.DataFrame) -> pd.DataFrame:
        out = frame.copy()
        if len(frame):
            scores = self.scores(self.features(frame))
        else:
            scores = np.empty((0, self.n_classes), dtype=np.float64)
        # np.argmax returns the first maximum, i.e. the lowest key on ties.
        predicted = scores.argmax(axis=1) if len(scores) else np.empty(0, dtype=np.int64)
        out[SCORE_COLUMN] = vector_series(scores, out.index)
        out[PREDICTED_LABEL_COLUMN] = pd.Series(predicted, index=out.index, dtype=np.int64)
        return out


@dataclass(frozen=True)
class FittedRegressionTrainer(FittedTrainer):
    """Regressor: ``Score`` is the predicted value, no calibration."""

    task: ClassVar[TaskKind] = TaskKind.REGRESSION

    @classmethod
    def output_schema_for(cls, schema: Schema, label_spec: ColumnSpec) -> Schema:
        return schema.with_column(
            ColumnSpec(name=SCORE_COLUMN, type=ColumnType.FLOAT32, role=ColumnRole.DERIVED)
        )

    def predict(self, X: np.ndarray) -> np.ndarray:
        return np.asarray(self.estimator.predict(X), dtype=np.float64).reshape(-1)

    def transform(self, frame: pd.DataFrame) -> pd.DataFrame:
        out = frame.copy()
        prediction = self.predict(self.features(frame)) if len(frame) else np.empty(0)
        out[SCORE_COLUMN] = pd.Series(prediction, index=out.index, dtype=np.float32)
        return out


_FITTED_BY_TASK: dict[TaskKind, type[FittedTrainer]] = {
    TaskKind.BINARY: FittedBinaryTrainer,
    TaskKind.MULTICLASS: FittedMulticlassTrainer,
    TaskKind.REGRESSION: FittedRegressionTrainer,
}
