"""Multiclass classification strategies.

Both strategies train on dense integer label keys produced by a
``ValueToKeyMapper`` stage.
"""

from typing import Any

from sklearn.ensemble import HistGradientBoostingClassifier
from sklearn.linear_model import LogisticRegression

from mlpipe.trainers.base import BaseTrainer, TaskKind
from mlpipe.trainers.factory import TrainerFactory, TrainerType


@TrainerFactory.register(TrainerType.MAXIMUM_ENTROPY)
class MaximumEntropyStrategy(BaseTrainer):
    """Multinomial logistic regression (maximum entropy classifier).

    Scores are the softmax class probabilities.
    """

    task = TaskKind.MULTICLASS

    @property
    def name(self) -> str:
        return "maximum_entropy"

    @property
    def default_params(self) -> dict[str, Any]:
        return {
            "C": 1.0,
            "max_iter": 200,
            "tol": 1e-4,
            "solver": "lbfgs",
            "random_state": 1,
        }

    def _create_model(self, **params: Any) -> LogisticRegression:
        return LogisticRegression(**params)


@TrainerFactory.register(TrainerType.LIGHT_GBM)
class LightGbmStrategy(BaseTrainer):
    """Histogram-based gradient boosting.

    Leaf-wise boosted trees in the LightGBM style. Minimum leaf size is kept
    small because the target datasets are small.
    """

    task = TaskKind.MULTICLASS

    @property
    def name(self) -> str:
        return "light_gbm"

    @property
    def default_params(self) -> dict[str, Any]:
        return {
            "max_iter": 50,
            "learning_rate": 0.2,
            "max_leaf_nodes": 20,
            "min_samples_leaf": 2,
            "early_stopping": False,
            "random_state": 1,
        }

    def _create_model(self, **params: Any) -> HistGradientBoostingClassifier:
        return HistGradientBoostingClassifier(**params)
