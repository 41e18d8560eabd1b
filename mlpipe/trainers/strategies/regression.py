"""Regression strategies."""

from typing import Any

from sklearn.ensemble import GradientBoostingRegressor
from sklearn.linear_model import Ridge, SGDRegressor

from mlpipe.trainers.base import BaseTrainer, TaskKind
from mlpipe.trainers.factory import TrainerFactory, TrainerType


@TrainerFactory.register(TrainerType.FAST_TREE)
class FastTreeRegressionStrategy(BaseTrainer):
    """Gradient-boosted regression trees (least squares)."""

    task = TaskKind.REGRESSION

    @property
    def name(self) -> str:
        return "fast_tree"

    @property
    def default_params(self) -> dict[str, Any]:
        return {
            "n_estimators": 100,
            "learning_rate": 0.2,
            "max_leaf_nodes": 20,
            "min_samples_leaf": 2,
            "random_state": 1,
        }

    def _create_model(self, **params: Any) -> GradientBoostingRegressor:
        return GradientBoostingRegressor(**params)


@TrainerFactory.register(TrainerType.SDCA)
class SdcaRegressionStrategy(BaseTrainer):
    """Linear regression fitted by stochastic gradient descent.

    Expects normalized features. Stops on ``tol`` or after ``max_iter``
    epochs, in which case the fit is flagged as not converged.
    """

    task = TaskKind.REGRESSION

    @property
    def name(self) -> str:
        return "sdca"

    @property
    def default_params(self) -> dict[str, Any]:
        return {
            "max_iter": 1000,
            "tol": 1e-3,
            "alpha": 1e-4,
            "random_state": 1,
        }

    def _create_model(self, **params: Any) -> SGDRegressor:
        return SGDRegressor(**params)


@TrainerFactory.register(TrainerType.LINEAR)
class LinearRegressionStrategy(BaseTrainer):
    """Linear Regression strategy using Ridge regularization.

    Closed-form baseline; always converges.
    """

    task = TaskKind.REGRESSION

    @property
    def name(self) -> str:
        return "linear"

    @property
    def default_params(self) -> dict[str, Any]:
        return {
            "alpha": 1.0,
        }

    def _create_model(self, **params: Any) -> Ridge:
        return Ridge(**params)
