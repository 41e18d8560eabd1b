"""Tests for trainer strategies and their fitted predictors.

Justification: the trainer is the only stage that learns from labels. Its
output columns feed evaluation and serving, so their shape and meaning must
hold for every task kind.
"""

import numpy as np
import pytest

from mlpipe.errors import TrainingDidNotConverge, UnsupportedConversion
from mlpipe.pipeline import Pipeline
from mlpipe.trainers.base import FittedBinaryTrainer, FittedMulticlassTrainer, FittedRegressionTrainer
from mlpipe.trainers.factory import TrainerFactory
from mlpipe.transforms import Concatenator

from helpers import house_pipeline, iris_pipeline, sentiment_pipeline


class TestBinaryTrainers:
    """Tests for binary classification trainers."""

    def test_output_columns(self, sentiment_model, sentiment_dataset):
        scored = sentiment_model.transform(sentiment_dataset)

        assert {"Score", "Probability", "PredictedLabel"} <= set(scored.schema.names)
        assert isinstance(sentiment_model.trainer, FittedBinaryTrainer)

    def test_probability_is_logistic_of_score(self, sentiment_model, sentiment_dataset):
        scored = sentiment_model.transform(sentiment_dataset)
        score = scored.column("Score").astype(np.float64)

        np.testing.assert_allclose(scored.column("Probability"), 1.0 / (1.0 + np.exp(-score)), rtol=1e-5)

    def test_predicted_label_follows_threshold(self, sentiment_model, sentiment_dataset):
        scored = sentiment_model.transform(sentiment_dataset)

        np.testing.assert_array_equal(scored.column("PredictedLabel"), scored.column("Probability") >= 0.5)

    @pytest.mark.parametrize(("threshold", "expected"), [(0.0, True), (1.0, False)])
    def test_threshold_extremes(self, sentiment_dataset, threshold, expected):
        model = sentiment_pipeline(threshold=threshold).fit(sentiment_dataset)

        predicted = model.transform(sentiment_dataset).column("PredictedLabel")

        assert predicted.tolist() == [expected] * len(sentiment_dataset)

    def test_separates_training_data(self, sentiment_model, sentiment_dataset):
        scored = sentiment_model.transform(sentiment_dataset)

        accuracy = np.mean(scored.column("PredictedLabel") == scored.column("Label"))

        assert accuracy >= 0.875

    def test_fast_tree_binary_fits(self, sentiment_dataset):
        featurizer = sentiment_pipeline().steps[0]
        model = (
            Pipeline()
            .append(featurizer)
            .append(TrainerFactory.create("fast_tree_binary", label_column="Label", min_samples_leaf=2))
            .fit(sentiment_dataset)
        )

        probability = model.transform(sentiment_dataset).column("Probability")

        assert ((probability >= 0.0) & (probability <= 1.0)).all()
        assert model.trainer.name == "fast_tree_binary"

    def test_label_type_checked_before_fit(self, house_dataset):
        """A binary trainer cannot learn from a float label."""
        pipeline = (
            Pipeline()
            .append(Concatenator("Features", ["SizeM2", "Bedrooms", "AgeYears"]))
            .append(TrainerFactory.create("logistic_regression", label_column="PriceEur"))
        )

        with pytest.raises(UnsupportedConversion):
            pipeline.fit(house_dataset)


class TestMulticlassTrainers:
    """Tests for multiclass classification trainers."""

    def test_scores_are_class_probabilities(self, iris_model, iris_dataset):
        scored = iris_model.transform(iris_dataset)
        scores = scored.column("Score")

        assert scores.shape == (len(iris_dataset), 3)
        np.testing.assert_allclose(scores.sum(axis=1), 1.0, rtol=1e-5)
        assert isinstance(iris_model.trainer, FittedMulticlassTrainer)

    def test_predicted_key_is_argmax(self, iris_model, iris_dataset):
        scored = iris_model.transform(iris_dataset)

        np.testing.assert_array_equal(scored.column("PredictedLabel"), scored.column("Score").argmax(axis=1))

    def test_predicted_value_column(self, iris_model, iris_dataset):
        """The predicted key is mapped back to the original label value."""
        scored = iris_model.transform(iris_dataset)

        assert set(scored.column("PredictedLabelValue").tolist()) <= {"setosa", "versicolor", "virginica"}
        assert scored.column("PredictedLabelValue").tolist() == iris_dataset.column("Label").tolist()

    def test_light_gbm_fits(self, iris_dataset):
        model = iris_pipeline("light_gbm").fit(iris_dataset)

        scored = model.transform(iris_dataset)
        accuracy = np.mean(scored.column("PredictedLabelValue") == iris_dataset.column("Label"))

        assert accuracy > 0.9

    def test_requires_key_label(self, iris_dataset):
        """Multiclass trainers read a key column, not raw string labels."""
        pipeline = (
            Pipeline()
            .append(Concatenator("Features", ["SepalLength", "SepalWidth", "PetalLength", "PetalWidth"]))
            .append(TrainerFactory.create("maximum_entropy", label_column="Label"))
        )

        with pytest.raises(UnsupportedConversion):
            pipeline.fit(iris_dataset)


class TestRegressionTrainers:
    """Tests for regression trainers."""

    def test_score_column(self, house_model, house_dataset):
        scored = house_model.transform(house_dataset)

        assert scored.schema["Score"].type.value == "float32"
        assert isinstance(house_model.trainer, FittedRegressionTrainer)

    def test_linear_recovers_linear_relationship(self, house_dataset):
        model = house_pipeline("linear", alpha=1e-6).fit(house_dataset)

        estimator = model.trainer.estimator

        np.testing.assert_allclose(estimator.coef_, [2000.0, 10000.0, -800.0], rtol=0.1)

    @pytest.mark.parametrize("trainer", ["fast_tree", "linear"])
    def test_fits_training_data(self, house_dataset, trainer):
        model = house_pipeline(trainer).fit(house_dataset)

        scored = model.transform(house_dataset)
        error = np.abs(scored.column("Score") - house_dataset.column("PriceEur"))

        assert np.median(error) < 20000.0


class TestConvergence:
    """Tests for non-convergence reporting."""

    def test_iteration_budget_warns(self, sentiment_dataset):
        """Hitting max_iter yields a usable model flagged as not converged."""
        with pytest.warns(TrainingDidNotConverge):
            model = sentiment_pipeline(max_iter=1).fit(sentiment_dataset)

        assert model.converged is False
        assert len(model.transform(sentiment_dataset)) == len(sentiment_dataset)

    def test_converged_by_default(self, sentiment_model):
        assert sentiment_model.converged is True

    def test_train_on_arrays(self):
        trainer = TrainerFactory.create("linear", alpha=1e-6)
        X = np.arange(10, dtype=np.float64).reshape(-1, 1)

        trained = trainer.train(X, 3.0 * X[:, 0] + 1.0)

        assert trained.converged
        assert trained.estimator.coef_[0] == pytest.approx(3.0, rel=1e-4)
        assert trained.params == {"alpha": 1e-6}
