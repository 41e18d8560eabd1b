"""Evaluation of fitted models on held-out data."""

from mlpipe.evaluation.metrics import (
    BinaryMetrics,
    Metrics,
    MulticlassMetrics,
    RegressionMetrics,
    evaluate,
)

__all__ = [
    "BinaryMetrics",
    "Metrics",
    "MulticlassMetrics",
    "RegressionMetrics",
    "evaluate",
]
