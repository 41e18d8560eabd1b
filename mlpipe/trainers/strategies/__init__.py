"""Trainer strategies module.

Importing this module registers all available trainer strategies with the TrainerFactory.
"""

from mlpipe.trainers.strategies.binary import FastTreeBinaryStrategy, LogisticRegressionStrategy
from mlpipe.trainers.strategies.multiclass import LightGbmStrategy, MaximumEntropyStrategy
from mlpipe.trainers.strategies.regression import (
    FastTreeRegressionStrategy,
    LinearRegressionStrategy,
    SdcaRegressionStrategy,
)

__all__ = [
    "LogisticRegressionStrategy",
    "FastTreeBinaryStrategy",
    "MaximumEntropyStrategy",
    "LightGbmStrategy",
    "FastTreeRegressionStrategy",
    "SdcaRegressionStrategy",
    "LinearRegressionStrategy",
]
