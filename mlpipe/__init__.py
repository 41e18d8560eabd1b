"""mlpipe: declarative tabular ML pipelines.

Fit heterogeneous feature transforms and a swappable trainer into one
immutable Model, evaluate it, persist it as an artifact, and replay it on a
single record through the same code path used for batch inference.
"""

__version__ = "0.1.0"
