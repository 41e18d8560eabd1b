"""Trainers: pluggable learning algorithms behind one fit/predict surface."""

from mlpipe.trainers.base import (
    PREDICTED_LABEL_COLUMN,
    PROBABILITY_COLUMN,
    SCORE_COLUMN,
    BaseTrainer,
    FittedBinaryTrainer,
    FittedMulticlassTrainer,
    FittedRegressionTrainer,
    FittedTrainer,
    TaskKind,
    TrainedParameters,
)
from mlpipe.trainers.factory import TrainerFactory, TrainerType

__all__ = [
    "PREDICTED_LABEL_COLUMN",
    "PROBABILITY_COLUMN",
    "SCORE_COLUMN",
    "BaseTrainer",
    "FittedBinaryTrainer",
    "FittedMulticlassTrainer",
    "FittedRegressionTrainer",
    "FittedTrainer",
    "TaskKind",
    "TrainedParameters",
    "TrainerFactory",
    "TrainerType",
]
