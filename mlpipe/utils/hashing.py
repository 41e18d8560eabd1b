"""Hashing utilities for data versioning."""

import hashlib

import numpy as np
import pandas as pd


def _hashable(value: object) -> object:
    if isinstance(value, np.ndarray):
        return tuple(value.tolist())
    return value


def compute_dataset_hash(df: pd.DataFrame) -> str:
    """Compute a hash of the dataset for versioning.

    Vector cells are hashed by value.

    Args:
        df: DataFrame to hash.

    Returns:
        12-character hexadecimal hash string.
    """
    hashable = df.map(_hashable)
    return hashlib.md5(pd.util.hash_pandas_object(hashable, index=False).values).hexdigest()[:12]
