"""Binary classification strategies."""

from typing import Any

from sklearn.ensemble import GradientBoostingClassifier
from sklearn.linear_model import LogisticRegression

from mlpipe.trainers.base import BaseTrainer, TaskKind
from mlpipe.trainers.factory import TrainerFactory, TrainerType


@TrainerFactory.register(TrainerType.LOGISTIC_REGRESSION)
class LogisticRegressionStrategy(BaseTrainer):
    """L2-regularized logistic regression.

    Linear baseline for sparse text features. The decision score is the
    margin; its logistic transform is the calibrated probability.
    """

    task = TaskKind.BINARY

    @property
    def name(self) -> str:
        return "logistic_regression"

    @property
    def default_params(self) -> dict[str, Any]:
        return {
            "C": 1.0,
            "max_iter": 100,
            "tol": 1e-4,
            "solver": "lbfgs",
            "random_state": 1,
        }

    def _create_model(self, **params: Any) -> LogisticRegression:
        return LogisticRegression(**params)


@TrainerFactory.register(TrainerType.FAST_TREE_BINARY)
class FastTreeBinaryStrategy(BaseTrainer):
    """Gradient-boosted decision trees with log-loss.

    Captures non-linear feature interactions; the raw boosted score is a
    log-odds, so the same logistic calibration applies.
    """

    task = TaskKind.BINARY

    @property
    def name(self) -> str:
        return "fast_tree_binary"

    @property
    def default_params(self) -> dict[str, Any]:
        return {
            "n_estimators": 100,
            "learning_rate": 0.2,
            "max_leaf_nodes": 20,
            "min_samples_leaf": 10,
            "random_state": 1,
        }

    def _create_model(self, **params: Any) -> GradientBoostingClassifier:
        return GradientBoostingClassifier(**params)
