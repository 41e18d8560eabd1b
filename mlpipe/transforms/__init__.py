"""Feature transforms.

Each transform is an immutable declaration whose ``fit`` returns a separate
fitted stage.
"""

from mlpipe.transforms.base import FittedTransform, Transform
from mlpipe.transforms.concat import Concatenator, FittedConcatenator
from mlpipe.transforms.conversion import (
    UNKNOWN_KEY,
    FittedKeyToValueMapper,
    FittedTypeConverter,
    FittedValueToKeyMapper,
    KeyToValueMapper,
    TypeConverter,
    ValueToKeyMapper,
)
from mlpipe.transforms.normalize import FittedMeanVarianceNormalizer, MeanVarianceNormalizer
from mlpipe.transforms.text import FittedTextFeaturizer, TextFeaturizer

__all__ = [
    "UNKNOWN_KEY",
    "Concatenator",
    "FittedConcatenator",
    "FittedKeyToValueMapper",
    "FittedMeanVarianceNormalizer",
    "FittedTextFeaturizer",
    "FittedTransform",
    "FittedTypeConverter",
    "FittedValueToKeyMapper",
    "KeyToValueMapper",
    "MeanVarianceNormalizer",
    "TextFeaturizer",
    "Transform",
    "TypeConverter",
    "ValueToKeyMapper",
]
