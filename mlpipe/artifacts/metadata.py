"""Artifact metadata schema for model artifacts."""

from datetime import UTC, datetime
from typing import Any

from pydantic import BaseModel, Field

from mlpipe.data.schema import Schema
from mlpipe.trainers.base import TaskKind

ARTIFACT_FORMAT_VERSION = "1.0.0"


class ArtifactMetadata(BaseModel):
    """Header of a model artifact.

    Contains everything needed to check that an artifact fits the caller's
    task and schema before the fitted stages are deserialized.
    """

    # Identifiers
    artifact_id: str = Field(description="Unique artifact identifier (UUID)")
    created_at: datetime = Field(
        default_factory=lambda: datetime.now(UTC),
        description="Timestamp when artifact was created",
    )
    artifact_version: str = Field(
        default=ARTIFACT_FORMAT_VERSION,
        description="Version of the artifact format",
    )

    # Task and schemas
    task: TaskKind = Field(description="Task kind of the model's trainer")
    input_schema: Schema = Field(description="Schema of the records the model was fitted on")
    output_schema: Schema = Field(description="Schema after every fitted stage is applied")

    # Model information
    trainer: str = Field(description="Trainer strategy name (e.g. 'logistic_regression')")
    trainer_params: dict[str, Any] = Field(
        default_factory=dict,
        description="Hyperparameters used for training",
    )
    stages: list[str] = Field(
        default_factory=list,
        description="Fitted stage names in order",
    )
    converged: bool = Field(
        default=True,
        description="False if the trainer stopped on its iteration budget",
    )

    # Training information
    dataset_hash: str | None = Field(
        default=None,
        description="Content hash of the training data",
    )
    metrics: dict[str, Any] = Field(
        default_factory=dict,
        description="Metrics on held-out data",
    )
    framework_versions: dict[str, str] = Field(
        default_factory=dict,
        description="Versions of key frameworks (scikit-learn, python, etc.)",
    )
