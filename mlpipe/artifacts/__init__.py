"""Artifacts module for model persistence."""

from mlpipe.artifacts.bundle import ModelArtifact, load_model, save_model
from mlpipe.artifacts.metadata import ArtifactMetadata

__all__ = [
    "ArtifactMetadata",
    "ModelArtifact",
    "load_model",
    "save_model",
]
