"""Data generators and pipeline builders shared by tests."""

from collections.abc import Sequence

import numpy as np

from mlpipe.data import Schema
from mlpipe.pipeline import Pipeline
from mlpipe.trainers.factory import TrainerFactory
from mlpipe.transforms import Concatenator, KeyToValueMapper, TextFeaturizer, ValueToKeyMapper

IRIS_CENTERS = {
    "setosa": (5.0, 3.4, 1.5, 0.2),
    "versicolor": (5.9, 2.8, 4.3, 1.3),
    "virginica": (6.6, 3.0, 5.6, 2.1),
}


def make_iris_rows(per_class: int = 10, seed: int = 0) -> list[tuple[float, float, float, float, str]]:
    rng = np.random.default_rng(seed)
    rows = []
    for _ in range(per_class):
        for label, center in IRIS_CENTERS.items():
            values = np.round(np.asarray(center) + rng.normal(0.0, 0.05, size=4), 2)
            rows.append((*(float(v) for v in values), label))
    return rows


def make_house_rows(n: int = 120, seed: int = 0) -> list[tuple[float, float, float, float]]:
    rng = np.random.default_rng(seed)
    rows = []
    for _ in range(n):
        size = float(rng.integers(40, 200))
        bedrooms = float(rng.integers(1, 6))
        age = float(rng.integers(0, 50))
        price = 2000.0 * size + 10000.0 * bedrooms - 800.0 * age + 50000.0 + float(rng.normal(0, 5000))
        rows.append((size, bedrooms, age, round(price, 0)))
    return rows


def to_records(schema: Schema, rows: Sequence[Sequence[object]]) -> list[dict[str, object]]:
    return [dict(zip(schema.names, row, strict=True)) for row in rows]


def sentiment_pipeline(**params) -> Pipeline:
    return (
        Pipeline()
        .append(TextFeaturizer("Features", "Text"))
        .append(TrainerFactory.create("logistic_regression", label_column="Label", **params))
    )


def iris_pipeline(trainer: str = "maximum_entropy", **params) -> Pipeline:
    return (
        Pipeline()
        .append(ValueToKeyMapper("LabelKey", "Label"))
        .append(Concatenator("Features", ["SepalLength", "SepalWidth", "PetalLength", "PetalWidth"]))
        .append(TrainerFactory.create(trainer, label_column="LabelKey", **params))
        .append(KeyToValueMapper("PredictedLabelValue", "PredictedLabel"))
    )


def house_pipeline(trainer: str = "fast_tree", **params) -> Pipeline:
    return (
        Pipeline()
        .append(Concatenator("Features", ["SizeM2", "Bedrooms", "AgeYears"]))
        .append(TrainerFactory.create(trainer, label_column="PriceEur", **params))
    )
