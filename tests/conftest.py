"""Shared test fixtures."""

import csv
from collections.abc import Callable, Sequence
from pathlib import Path

import pytest

# Import strategies to register them with the factory
import mlpipe.trainers.strategies  # noqa: F401
from mlpipe.data import Dataset, Schema
from mlpipe.pipeline import Model

from helpers import (
    house_pipeline,
    iris_pipeline,
    make_house_rows,
    make_iris_rows,
    sentiment_pipeline,
    to_records,
)


@pytest.fixture
def sentiment_schema() -> Schema:
    return Schema.build([("Label", "bool", "label"), ("Text", "string")])


@pytest.fixture
def iris_schema() -> Schema:
    return Schema.build(
        [
            ("SepalLength", "float32"),
            ("SepalWidth", "float32"),
            ("PetalLength", "float32"),
            ("PetalWidth", "float32"),
            ("Label", "string", "label"),
        ]
    )


@pytest.fixture
def house_schema() -> Schema:
    return Schema.build(
        [
            ("SizeM2", "float32"),
            ("Bedrooms", "float32"),
            ("AgeYears", "float32"),
            ("PriceEur", "float32", "label"),
        ]
    )


@pytest.fixture
def sentiment_rows() -> list[tuple[bool, str]]:
    """Small, clearly separable sentiment corpus."""
    positive = [
        "great product",
        "excellent quality",
        "really great experience",
        "excellent service and great value",
        "great, works perfectly",
        "excellent purchase",
        "I love it, great",
        "excellent and reliable",
    ]
    negative = [
        "bad product",
        "terrible quality",
        "really bad experience",
        "terrible service and poor value",
        "bad, broke immediately",
        "terrible purchase",
        "I hate it, bad",
        "terrible and unreliable",
    ]
    rows = []
    for good, bad in zip(positive, negative, strict=True):
        rows.append((True, good))
        rows.append((False, bad))
    return rows


@pytest.fixture
def iris_rows() -> list[tuple[float, float, float, float, str]]:
    return make_iris_rows()


@pytest.fixture
def house_rows() -> list[tuple[float, float, float, float]]:
    return make_house_rows()


@pytest.fixture
def write_csv(tmp_path: Path) -> Callable[..., Path]:
    """Write a header plus rows as a CSV file under tmp_path."""

    def _write(name: str, header: Sequence[str], rows: Sequence[Sequence[object]]) -> Path:
        path = tmp_path / name
        with open(path, "w", newline="", encoding="utf-8") as f:
            writer = csv.writer(f)
            writer.writerow(header)
            for row in rows:
                writer.writerow(["true" if v is True else "false" if v is False else v for v in row])
        return path

    return _write


@pytest.fixture
def sentiment_dataset(sentiment_schema, sentiment_rows) -> Dataset:
    return Dataset.from_records(to_records(sentiment_schema, sentiment_rows), sentiment_schema)


@pytest.fixture
def iris_dataset(iris_schema, iris_rows) -> Dataset:
    return Dataset.from_records(to_records(iris_schema, iris_rows), iris_schema)


@pytest.fixture
def house_dataset(house_schema, house_rows) -> Dataset:
    return Dataset.from_records(to_records(house_schema, house_rows), house_schema)


@pytest.fixture
def sentiment_model(sentiment_dataset) -> Model:
    return sentiment_pipeline().fit(sentiment_dataset)


@pytest.fixture
def iris_model(iris_dataset) -> Model:
    return iris_pipeline().fit(iris_dataset)


@pytest.fixture
def house_model(house_dataset) -> Model:
    return house_pipeline().fit(house_dataset)
