"""Training module: caller-facing train/load/predict operations."""

from mlpipe.training.core import (
    FeatureSpec,
    TrainingResult,
    build_pipeline,
    load_model,
    predict_one,
    train_binary,
    train_multiclass,
    train_regression,
)

__all__ = [
    "FeatureSpec",
    "TrainingResult",
    "build_pipeline",
    "load_model",
    "predict_one",
    "train_binary",
    "train_multiclass",
    "train_regression",
]
