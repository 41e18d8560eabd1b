"""Tests for the train/evaluate/save workflow.

Justification: these operations are what the CLI and library callers run.
They must wire loading, splitting, fitting, evaluation and saving together
without leaking test rows into training.
"""

import pytest
from pydantic import ValidationError

from mlpipe.data import Schema
from mlpipe.errors import (
    InvalidFraction,
    MalformedRow,
    MissingColumn,
    SchemaIncompatible,
    UnsupportedConversion,
)
from mlpipe.evaluation import BinaryMetrics, MulticlassMetrics, RegressionMetrics
from mlpipe.trainers.base import TaskKind
from mlpipe.training import (
    FeatureSpec,
    build_pipeline,
    load_model,
    predict_one,
    train_binary,
    train_multiclass,
    train_regression,
)
from mlpipe.transforms import Concatenator, MeanVarianceNormalizer, TextFeaturizer, TypeConverter


@pytest.fixture
def house_csv(write_csv, house_schema, house_rows):
    return write_csv("house.csv", house_schema.names, house_rows)


@pytest.fixture
def iris_csv(write_csv, iris_schema, iris_rows):
    return write_csv("iris.csv", iris_schema.names, iris_rows)


@pytest.fixture
def sentiment_csv(write_csv, sentiment_schema, sentiment_rows):
    return write_csv("sentiment.csv", sentiment_schema.names, sentiment_rows)


class TestFeatureSpec:
    """Tests for FeatureSpec validation."""

    def test_defaults(self):
        spec = FeatureSpec(trainer="linear")

        assert spec.features is None
        assert spec.normalize is False
        assert spec.test_fraction is None

    @pytest.mark.parametrize("fraction", [0.0, 1.0, 1.5])
    def test_invalid_fraction(self, fraction):
        with pytest.raises(ValidationError):
            FeatureSpec(trainer="linear", test_fraction=fraction)

    def test_invalid_threshold(self):
        with pytest.raises(ValidationError):
            FeatureSpec(trainer="logistic_regression", threshold=2.0)


class TestBuildPipeline:
    """Tests for the default pipeline built from a FeatureSpec."""

    def test_text_features(self, sentiment_schema):
        pipeline = build_pipeline(TaskKind.BINARY, sentiment_schema, FeatureSpec(trainer="logistic_regression"))

        assert isinstance(pipeline.steps[0], TextFeaturizer)
        assert isinstance(pipeline.steps[1], Concatenator)
        assert pipeline.steps[1].input_columns == ("TextFeaturized",)
        assert pipeline.trainer.name == "logistic_regression"

    def test_bool_features_converted(self):
        schema = Schema.build([("Price", "float32", "label"), ("Garden", "bool"), ("Size", "float32")])

        pipeline = build_pipeline(TaskKind.REGRESSION, schema, FeatureSpec(trainer="linear"))

        assert isinstance(pipeline.steps[0], TypeConverter)
        assert pipeline.steps[1].input_columns == ("GardenFloat", "Size")

    def test_multiclass_keys_label(self, iris_schema):
        pipeline = build_pipeline(TaskKind.MULTICLASS, iris_schema, FeatureSpec(trainer="maximum_entropy"))

        assert pipeline.trainer.label_column == "LabelKey"
        assert "PredictedLabelValue" in pipeline.validate(iris_schema).names

    def test_normalize_and_feature_subset(self, house_schema):
        spec = FeatureSpec(trainer="sdca", features=["SizeM2", "AgeYears"], normalize=True)

        pipeline = build_pipeline(TaskKind.REGRESSION, house_schema, spec)

        assert pipeline.steps[0].input_columns == ("SizeM2", "AgeYears")
        assert isinstance(pipeline.steps[1], MeanVarianceNormalizer)

    def test_threshold_passed_to_trainer(self, sentiment_schema):
        spec = FeatureSpec(trainer="logistic_regression", threshold=0.7)

        pipeline = build_pipeline(TaskKind.BINARY, sentiment_schema, spec)

        assert pipeline.trainer.threshold == 0.7

    def test_trainer_of_other_task(self, house_schema):
        with pytest.raises(ValueError, match="regression trainer"):
            build_pipeline(TaskKind.BINARY, house_schema, FeatureSpec(trainer="fast_tree"))

    def test_unknown_trainer(self, house_schema):
        with pytest.raises(ValueError, match="Unknown trainer type"):
            build_pipeline(TaskKind.REGRESSION, house_schema, FeatureSpec(trainer="random_forest"))

    def test_unknown_feature(self, house_schema):
        spec = FeatureSpec(trainer="linear", features=["SizeM2", "Garden"])

        with pytest.raises(MissingColumn):
            build_pipeline(TaskKind.REGRESSION, house_schema, spec)

    def test_key_feature_unsupported(self):
        schema = Schema.build([("Price", "float32", "label"), ("Zone", "key")])

        with pytest.raises(UnsupportedConversion):
            build_pipeline(TaskKind.REGRESSION, schema, FeatureSpec(trainer="linear"))


class TestTrainOperations:
    """Tests for train_binary, train_multiclass and train_regression."""

    def test_train_regression(self, house_csv, house_schema, tmp_path):
        output = tmp_path / "models" / "house.zip"

        result = train_regression(house_csv, house_schema, FeatureSpec(trainer="fast_tree", seed=1), output)

        assert isinstance(result.metrics, RegressionMetrics)
        assert result.training_samples == 90
        assert result.test_samples == 30
        assert result.metrics.n_samples == 30
        assert result.artifact_path == output
        assert output.exists()
        assert len(result.dataset_hash) == 12
        assert result.converged

    def test_train_multiclass(self, iris_csv, iris_schema):
        result = train_multiclass(iris_csv, iris_schema, FeatureSpec(trainer="maximum_entropy"))

        assert isinstance(result.metrics, MulticlassMetrics)
        assert result.metrics.micro_accuracy >= 0.75
        assert result.artifact_path is None

    def test_train_binary(self, sentiment_csv, sentiment_schema):
        result = train_binary(
            sentiment_csv,
            sentiment_schema,
            FeatureSpec(trainer="logistic_regression", test_fraction=0.25, seed=7),
        )

        assert isinstance(result.metrics, BinaryMetrics)
        assert result.test_samples == 4

    def test_same_seed_same_result(self, house_csv, house_schema):
        spec = FeatureSpec(trainer="linear", seed=5)

        first = train_regression(house_csv, house_schema, spec)
        second = train_regression(house_csv, house_schema, spec)

        assert first.metrics == second.metrics

    def test_zero_fraction_is_not_treated_as_unset(self, house_csv, house_schema):
        """A zero fraction that bypassed validation reaches the split and fails there."""
        spec = FeatureSpec.model_construct(trainer="linear", test_fraction=0.0)

        with pytest.raises(InvalidFraction):
            train_regression(house_csv, house_schema, spec)

    def test_invalid_pipeline_fails_before_reading(self, tmp_path, house_schema):
        """Column errors surface even when the data file does not exist."""
        spec = FeatureSpec(trainer="linear", features=["Garden"])

        with pytest.raises(MissingColumn):
            train_regression(tmp_path / "missing.csv", house_schema, spec)

    def test_missing_file(self, tmp_path, house_schema):
        with pytest.raises(FileNotFoundError):
            train_regression(tmp_path / "missing.csv", house_schema, FeatureSpec(trainer="linear"))

    def test_malformed_file(self, tmp_path, house_schema):
        path = tmp_path / "bad.csv"
        path.write_text("SizeM2,Bedrooms,AgeYears,PriceEur\n100,three,10,250000\n")

        with pytest.raises(MalformedRow):
            train_regression(path, house_schema, FeatureSpec(trainer="linear"))


class TestLoadAndPredict:
    """Tests for load_model and predict_one."""

    def test_saved_model_predicts(self, house_csv, house_schema, tmp_path):
        output = tmp_path / "house.zip"
        result = train_regression(house_csv, house_schema, FeatureSpec(trainer="fast_tree"), output)

        model = load_model(output, TaskKind.REGRESSION)
        record = {"SizeM2": 100.0, "Bedrooms": 3.0, "AgeYears": 10.0}

        assert predict_one(model, record)["Score"] == pytest.approx(predict_one(result.model, record)["Score"])

    def test_load_wrong_task(self, house_csv, house_schema, tmp_path):
        output = tmp_path / "house.zip"
        train_regression(house_csv, house_schema, FeatureSpec(trainer="linear"), output)

        with pytest.raises(SchemaIncompatible):
            load_model(output, "multiclass")
