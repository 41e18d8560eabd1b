"""Text featurization: string column -> fixed-width TF-IDF vector."""

from dataclasses import dataclass

import numpy as np
import pandas as pd
from sklearn.feature_extraction.text import TfidfVectorizer
from sklearn.pipeline import FeatureUnion, Pipeline
from sklearn.preprocessing import Normalizer

from mlpipe.data.schema import ColumnRole, ColumnSpec, ColumnType, Schema, require_column
from mlpipe.transforms.base import FittedTransform, Transform, vector_series


@dataclass(frozen=True)
class TextFeaturizer(Transform):
    """Turn free text into a numeric vector.

    Pipeline:
        1. Word n-gram TF-IDF (unigrams and bigrams by default)
        2. Character n-gram TF-IDF within word boundaries (trigrams)
        3. L2 normalization of the concatenated vector

    The vocabularies and IDF weights are learned from the training column
    only. Tokens never seen while fitting contribute zero weight.
    """

    output_column: str
    input_column: str
    word_ngrams: tuple[int, int] = (1, 2)
    char_ngrams: tuple[int, int] | None = (3, 3)
    lowercase: bool = True

    @property
    def inputs(self) -> tuple[str, ...]:
        return (self.input_column,)

    def declared_outputs(self, schema: Schema) -> Schema:
        require_column(schema, self.input_column, [ColumnType.STRING], stage="TextFeaturizer")
        return schema.with_column(
            ColumnSpec(name=self.output_column, type=ColumnType.VECTOR, role=ColumnRole.DERIVED)
        )

    def _build_pipeline(self) -> Pipeline:
        analyzers = [
            (
                "words",
                TfidfVectorizer(
                    analyzer="word",
                    ngram_range=self.word_ngrams,
                    lowercase=self.lowercase,
                    token_pattern=r"(?u)\b\w+\b",
                ),
            )
        ]
        if self.char_ngrams is not None:
            analyzers.append(
                (
                    "chars",
                    TfidfVectorizer(
                        analyzer="char_wb",
                        ngram_range=self.char_ngrams,
                        lowercase=self.lowercase,
                    ),
                )
            )
        return Pipeline(
            [
                ("features", FeatureUnion(analyzers)),
                ("normalize", Normalizer(norm="l2")),
            ]
        )

    def fit(self, frame: pd.DataFrame, schema: Schema) -> "FittedTextFeaturizer":
        self.declared_outputs(schema)
        pipeline = self._build_pipeline()
        pipeline.fit(frame[self.input_column].tolist())
        size = int(pipeline.transform([""]).shape[1])
        output_schema = schema.with_column(
            ColumnSpec(
                name=self.output_column,
                type=ColumnType.VECTOR,
                role=ColumnRole.DERIVED,
                size=size,
            )
        )
        return FittedTextFeaturizer(
            input_schema=schema,
            output_schema=output_schema,
            input_column=self.input_column,
            output_column=self.output_column,
            pipeline=pipeline,
        )


@dataclass(frozen=True)
class FittedTextFeaturizer(FittedTransform):
    """Text featurizer with frozen vocabularies and IDF weights."""

    input_schema: Schema
    output_schema: Schema
    input_column: str
    output_column: str
    pipeline: Pipeline

    @property
    def name(self) -> str:
        return "text_featurizer"

    @property
    def size(self) -> int:
        return int(self.output_schema[self.output_column].size)

    def transform(self, frame: pd.DataFrame) -> pd.DataFrame:
        out = frame.copy()
        if len(frame):
            matrix = self.pipeline.transform(frame[self.input_column].tolist()).toarray()
        else:
            matrix = np.empty((0, self.size), dtype=np.float32)
        out[self.output_column] = vector_series(matrix, out.index)
        return out
