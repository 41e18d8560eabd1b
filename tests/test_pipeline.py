"""Tests for Pipeline fitting and the fitted Model.

Justification: the pipeline engine decides what data each stage sees. A
column dependency error must surface before any fitting, and a fitted model
must depend on the training partition only.
"""

import dataclasses

import numpy as np
import pandas as pd
import pytest

from mlpipe.data import Dataset, Schema
from mlpipe.errors import EmptyDataset, MissingColumn, SchemaIncompatible
from mlpipe.evaluation import evaluate
from mlpipe.pipeline import Pipeline
from mlpipe.trainers.factory import TrainerFactory
from mlpipe.transforms import Concatenator, MeanVarianceNormalizer, TextFeaturizer

from helpers import house_pipeline, iris_pipeline, make_house_rows, sentiment_pipeline, to_records


class TestPipelineDeclaration:
    """Tests for building and validating pipelines."""

    def test_append_returns_new_pipeline(self):
        base = Pipeline()
        extended = base.append(TextFeaturizer("Features", "Text"))

        assert base.steps == ()
        assert len(extended.steps) == 1

    def test_requires_a_trainer(self, sentiment_dataset):
        pipeline = Pipeline().append(TextFeaturizer("Features", "Text"))

        with pytest.raises(ValueError, match="exactly one trainer"):
            pipeline.fit(sentiment_dataset)

    def test_rejects_two_trainers(self, sentiment_dataset):
        pipeline = sentiment_pipeline().append(TrainerFactory.create("logistic_regression"))

        with pytest.raises(ValueError, match="exactly one trainer"):
            pipeline.fit(sentiment_dataset)

    def test_validate_returns_output_schema(self, iris_schema):
        schema = iris_pipeline().validate(iris_schema)

        assert {"LabelKey", "Features", "Score", "PredictedLabel", "PredictedLabelValue"} <= set(schema.names)

    def test_missing_column_reported_before_empty_data(self, sentiment_schema):
        """Static column checks run before any row is read."""
        pipeline = (
            Pipeline()
            .append(TextFeaturizer("Features", "Body"))
            .append(TrainerFactory.create("logistic_regression", label_column="Label"))
        )
        empty = Dataset.from_records([], sentiment_schema)

        with pytest.raises(MissingColumn) as exc_info:
            pipeline.fit(empty)
        assert exc_info.value.column == "Body"

    def test_stage_cannot_read_later_output(self, house_dataset):
        """A stage only sees columns produced by earlier stages."""
        pipeline = (
            Pipeline()
            .append(MeanVarianceNormalizer("Features", "Features"))
            .append(Concatenator("Features", ["SizeM2", "Bedrooms", "AgeYears"]))
            .append(TrainerFactory.create("fast_tree", label_column="PriceEur"))
        )

        with pytest.raises(MissingColumn):
            pipeline.fit(house_dataset)

    def test_empty_training_data(self, sentiment_schema):
        with pytest.raises(EmptyDataset):
            sentiment_pipeline().fit(Dataset.from_records([], sentiment_schema))


class TestPipelineFit:
    """Tests for fitting and the resulting Model."""

    def test_fit_does_not_mutate_training_data(self, house_dataset):
        before = house_dataset.to_frame()

        house_pipeline().fit(house_dataset)

        pd.testing.assert_frame_equal(house_dataset.to_frame(), before)

    def test_model_is_immutable(self, house_model):
        with pytest.raises(dataclasses.FrozenInstanceError):
            house_model.steps = ()  # type: ignore[misc]

    def test_stage_names(self, iris_model):
        assert [step.name for step in iris_model.steps] == [
            "value_to_key",
            "concatenator",
            "maximum_entropy",
            "key_to_value",
        ]

    def test_fit_sees_training_partition_only(self, house_schema):
        """Changing held-out rows never changes the fitted state."""
        rows = make_house_rows(n=40)
        altered = rows[:]
        first = Dataset.from_records(to_records(house_schema, rows), house_schema)
        split = first.split(0.25, seed=3)
        for index in split.test_indices:
            altered[index] = (999.0, 9.0, 99.0, 1.0)
        second = Dataset.from_records(to_records(house_schema, altered), house_schema)

        pipeline = (
            Pipeline()
            .append(Concatenator("Features", ["SizeM2", "Bedrooms", "AgeYears"]))
            .append(MeanVarianceNormalizer("Features", "Features"))
            .append(TrainerFactory.create("linear", label_column="PriceEur"))
        )
        model_a = pipeline.fit(split.train)
        model_b = pipeline.fit(second.split(0.25, seed=3).train)

        np.testing.assert_array_equal(model_a.steps[1].mean, model_b.steps[1].mean)
        np.testing.assert_array_equal(model_a.trainer.estimator.coef_, model_b.trainer.estimator.coef_)

    def test_transform_without_label(self, house_model, house_dataset):
        """Inference data may omit the label column."""
        unlabeled = Dataset.from_records(
            [{k: v for k, v in r.items() if k != "PriceEur"} for r in house_dataset.records()],
            house_model.inference_schema,
        )

        scored = house_model.transform(unlabeled)
        labeled = house_model.transform(house_dataset)

        np.testing.assert_array_equal(scored.column("Score"), labeled.column("Score"))

    def test_transform_rejects_other_schema(self, house_model, sentiment_dataset):
        with pytest.raises(SchemaIncompatible):
            house_model.transform(sentiment_dataset)

    def test_apply_matches_transform(self, iris_model, iris_dataset):
        batch = iris_model.transform(iris_dataset)

        record = iris_model.apply(iris_dataset.row(4))

        assert record["PredictedLabelValue"] == batch.row(4)["PredictedLabelValue"]
        np.testing.assert_allclose(record["Score"], batch.row(4)["Score"], rtol=1e-6)


class TestScenarios:
    """End-to-end scenarios for each task kind."""

    def test_sentiment_from_four_rows(self, sentiment_schema):
        """A tiny binary corpus still separates clearly positive text."""
        dataset = Dataset.from_records(
            [
                {"Label": True, "Text": "great product"},
                {"Label": False, "Text": "bad product"},
                {"Label": True, "Text": "excellent"},
                {"Label": False, "Text": "terrible"},
            ],
            sentiment_schema,
        )

        model = sentiment_pipeline().fit(dataset)
        prediction = model.apply({"Text": "great and excellent"})

        assert prediction["PredictedLabel"] is True
        assert prediction["Probability"] > 0.5

    def test_iris_train_and_evaluate(self, iris_dataset):
        split = iris_dataset.split(0.25, seed=1)

        model = iris_pipeline().fit(split.train)
        metrics = evaluate(model, split.test)

        assert len(split.test) == 8
        assert 0.0 <= metrics.micro_accuracy <= 1.0
        assert 0.0 <= metrics.macro_accuracy <= 1.0

        row = split.train.row(0)
        features = {k: v for k, v in row.items() if k != "Label"}
        assert model.apply(features)["PredictedLabelValue"] == row["Label"]

    def test_house_price_prediction_in_range(self, house_dataset):
        split = house_dataset.split(0.2, seed=1)
        model = house_pipeline().fit(split.train)

        prediction = model.apply({"SizeM2": 100.0, "Bedrooms": 3.0, "AgeYears": 10.0})
        prices = split.train.column("PriceEur")

        assert prices.min() <= prediction["Score"] <= prices.max()

    def test_schema_only_pipeline(self):
        """Pipelines work over any schema, not just the bundled tasks."""
        schema = Schema.build([("Good", "bool", "label"), ("X", "float32")])
        dataset = Dataset.from_records(
            [{"Good": x > 0, "X": float(x)} for x in range(-10, 10) if x != 0],
            schema,
        )
        pipeline = (
            Pipeline()
            .append(Concatenator("Features", ["X"]))
            .append(TrainerFactory.create("logistic_regression", label_column="Good"))
        )

        model = pipeline.fit(dataset)

        assert model.apply({"X": 5.0})["PredictedLabel"] is True
        assert model.apply({"X": -5.0})["PredictedLabel"] is False
