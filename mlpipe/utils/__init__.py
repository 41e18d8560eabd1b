"""Utility functions shared across mlpipe."""

from mlpipe.utils.hashing import compute_dataset_hash

__all__ = ["compute_dataset_hash"]
