"""Task-specific evaluation of a fitted Model on held-out data."""

import math
from dataclasses import asdict, dataclass
from typing import Any

import numpy as np
from sklearn.metrics import (
    accuracy_score,
    confusion_matrix,
    f1_score,
    mean_absolute_error,
    mean_squared_error,
    precision_score,
    recall_score,
    roc_auc_score,
)

from mlpipe.data.dataset import Dataset
from mlpipe.errors import EmptyDataset, SchemaIncompatible
from mlpipe.logging_config import get_logger
from mlpipe.pipeline import Model
from mlpipe.trainers.base import (
    PREDICTED_LABEL_COLUMN,
    PROBABILITY_COLUMN,
    SCORE_COLUMN,
    TaskKind,
)

logger = get_logger()

# Probabilities are floored here before taking logs.
PROBABILITY_FLOOR = 1e-15


@dataclass(frozen=True)
class BinaryMetrics:
    """Binary classification metrics.

    Attributes:
        accuracy: Correct predictions / rows.
        auc: Area under the ROC curve (pairwise, ties count 0.5); NaN when
            the test set contains only one class.
        f1: Harmonic mean of precision and recall; 0 when both are 0.
        precision: Positive predictive value; 0 when nothing predicted positive.
        recall: True positive rate; 0 when there are no positives.
        log_loss: Mean negative log-likelihood of the true label.
        confusion_matrix: ``[[tn, fp], [fn, tp]]``.
        n_samples: Number of rows evaluated.
    """

    accuracy: float
    auc: float
    f1: float
    precision: float
    recall: float
    log_loss: float
    confusion_matrix: tuple[tuple[int, ...], ...]
    n_samples: int

    task = TaskKind.BINARY

    def to_dict(self) -> dict[str, Any]:
        return {k: (v if not isinstance(v, float) else round(v, 6)) for k, v in asdict(self).items()}

    def __str__(self) -> str:
        return f"Accuracy: {self.accuracy:.2%}  AUC: {self.auc:.2%}  F1: {self.f1:.4f}"


@dataclass(frozen=True)
class MulticlassMetrics:
    """Multiclass classification metrics.

    Attributes:
        micro_accuracy: Correct predictions / rows.
        macro_accuracy: Mean per-class recall over classes present in the labels.
        log_loss: Mean negative log of the probability given to the true class.
        per_class_log_loss: Log loss restricted to rows of each class key.
        confusion_matrix: Rows are true keys, columns predicted keys.
        n_samples: Number of rows evaluated.
    """

    micro_accuracy: float
    macro_accuracy: float
    log_loss: float
    per_class_log_loss: tuple[float, ...]
    confusion_matrix: tuple[tuple[int, ...], ...]
    n_samples: int

    task = TaskKind.MULTICLASS

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    def __str__(self) -> str:
        return (
            f"MicroAccuracy: {self.micro_accuracy:.2%}  "
            f"MacroAccuracy: {self.macro_accuracy:.2%}  LogLoss: {self.log_loss:.3f}"
        )


@dataclass(frozen=True)
class RegressionMetrics:
    """Regression metrics.

    Attributes:
        r_squared: 1 - SS_res / SS_tot; 0.0 when SS_tot is 0.
        r_squared_defined: False when SS_tot is 0 (constant labels).
        rmse: Root mean squared error.
        mae: Mean absolute error.
        mse: Mean squared error.
        n_samples: Number of rows evaluated.
    """

    r_squared: float
    r_squared_defined: bool
    rmse: float
    mae: float
    mse: float
    n_samples: int

    task = TaskKind.REGRESSION

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    def __str__(self) -> str:
        r2 = f"{self.r_squared:.3f}" if self.r_squared_defined else "undefined"
        return f"R²: {r2}, RMSE: {self.rmse:.3f}"


Metrics = BinaryMetrics | MulticlassMetrics | RegressionMetrics


def _pairwise_auc(labels: np.ndarray, scores: np.ndarray) -> float:
    if labels.all() or not labels.any():
        logger.warning("auc_undefined", reason="test set contains a single class")
        return float("nan")
    return float(roc_auc_score(labels, scores))


def binary_metrics(labels: np.ndarray, scores: np.ndarray, probabilities: np.ndarray, predicted: np.ndarray) -> BinaryMetrics:
    """Compute binary metrics from label, score, probability and predicted-label arrays."""
    labels = np.asarray(labels, dtype=bool)
    predicted = np.asarray(predicted, dtype=bool)
    probabilities = np.clip(np.asarray(probabilities, dtype=np.float64), PROBABILITY_FLOOR, 1 - PROBABILITY_FLOOR)
    log_loss = -np.mean(np.where(labels, np.log(probabilities), np.log(1 - probabilities)))
    matrix = confusion_matrix(labels, predicted, labels=[False, True])
    return BinaryMetrics(
        accuracy=float(accuracy_score(labels, predicted)),
        auc=_pairwise_auc(labels, np.asarray(scores, dtype=np.float64)),
        f1=float(f1_score(labels, predicted, zero_division=0)),
        precision=float(precision_score(labels, predicted, zero_division=0)),
        recall=float(recall_score(labels, predicted, zero_division=0)),
        log_loss=float(log_loss),
        confusion_matrix=tuple(tuple(int(v) for v in row) for row in matrix),
        n_samples=int(labels.shape[0]),
    )


def multiclass_metrics(labels: np.ndarray, predicted: np.ndarray, scores: np.ndarray) -> MulticlassMetrics:
    """Compute multiclass metrics from true keys, predicted keys and per-key scores.

    True keys outside ``0..n_classes-1`` (categories unseen while fitting)
    count as misclassified and receive the floor probability.
    """
    labels = np.asarray(labels, dtype=np.int64)
    predicted = np.asarray(predicted, dtype=np.int64)
    scores = np.asarray(scores, dtype=np.float64)
    n_classes = scores.shape[1]

    known = (labels >= 0) & (labels < n_classes)
    p_true = np.full(labels.shape[0], PROBABILITY_FLOOR)
    p_true[known] = scores[np.flatnonzero(known), labels[known]]
    losses = -np.log(np.clip(p_true, PROBABILITY_FLOOR, 1.0))

    present = np.unique(labels)
    recalls = [float(np.mean(predicted[labels == k] == k)) for k in present]
    per_class_log_loss = tuple(
        float(losses[labels == k].mean()) if np.any(labels == k) else 0.0 for k in range(n_classes)
    )
    matrix = confusion_matrix(labels, predicted, labels=list(range(n_classes)))

    return MulticlassMetrics(
        micro_accuracy=float(np.mean(predicted == labels)),
        macro_accuracy=float(np.mean(recalls)),
        log_loss=float(losses.mean()),
        per_class_log_loss=per_class_log_loss,
        confusion_matrix=tuple(tuple(int(v) for v in row) for row in matrix),
        n_samples=int(labels.shape[0]),
    )


def regression_metrics(labels: np.ndarray, predictions: np.ndarray) -> RegressionMetrics:
    """Compute regression metrics from true and predicted values."""
    labels = np.asarray(labels, dtype=np.float64)
    predictions = np.asarray(predictions, dtype=np.float64)
    ss_res = float(np.sum((labels - predictions) ** 2))
    ss_tot = float(np.sum((labels - labels.mean()) ** 2))
    defined = ss_tot > 0.0
    mse = float(mean_squared_error(labels, predictions))
    return RegressionMetrics(
        r_squared=1.0 - ss_res / ss_tot if defined else 0.0,
        r_squared_defined=defined,
        rmse=math.sqrt(mse),
        mae=float(mean_absolute_error(labels, predictions)),
        mse=mse,
        n_samples=int(labels.shape[0]),
    )


def evaluate(model: Model, test: Dataset, label_column: str | None = None) -> Metrics:
    """Evaluate a fitted model on held-out data.

    Runs the model's full transform chain over ``test`` and derives the
    metrics for its task kind.

    Args:
        model: Fitted model.
        test: Held-out dataset with labels, conforming to the model's input schema.
        label_column: Column holding the true labels after transformation.
            Defaults to the column the trainer learned from.

    Returns:
        BinaryMetrics, MulticlassMetrics or RegressionMetrics.

    Raises:
        EmptyDataset: ``test`` has no rows.
        SchemaIncompatible: ``test`` does not match the model's input schema,
            including a missing label column.
    """
    if len(test) == 0:
        raise EmptyDataset("Cannot evaluate on an empty dataset")
    if not test.schema.is_compatible(model.input_schema):
        raise SchemaIncompatible(
            "Evaluation data must carry every input column of the model, label included",
            expected=model.input_schema.describe(),
            actual=test.schema.describe(),
        )

    scored = model.transform(test)
    label_column = label_column or model.label_column
    labels = scored.column(label_column)

    metrics: Metrics
    if model.task == TaskKind.BINARY:
        metrics = binary_metrics(
            labels,
            scored.column(SCORE_COLUMN),
            scored.column(PROBABILITY_COLUMN),
            scored.column(PREDICTED_LABEL_COLUMN),
        )
    elif model.task == TaskKind.MULTICLASS:
        metrics = multiclass_metrics(
            labels,
            scored.column(PREDICTED_LABEL_COLUMN),
            scored.column(SCORE_COLUMN),
        )
    else:
        metrics = regression_metrics(labels, scored.column(SCORE_COLUMN))

    logger.info("evaluation_completed", task=model.task.value, rows=len(test), metrics=str(metrics))
    return metrics
