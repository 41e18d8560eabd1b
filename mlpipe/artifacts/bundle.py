"""Model artifact: a fitted Model plus its header, packaged as one file."""

import io
import json
import pickle
import sys
import uuid
import zipfile
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

import joblib
import sklearn
from pydantic import ValidationError

from mlpipe.artifacts.metadata import ARTIFACT_FORMAT_VERSION, ArtifactMetadata
from mlpipe.data.schema import Schema
from mlpipe.errors import CorruptArtifact, SchemaIncompatible
from mlpipe.evaluation.metrics import Metrics
from mlpipe.logging_config import get_logger
from mlpipe.pipeline import Model
from mlpipe.trainers.base import TaskKind
from mlpipe.transforms.base import FittedTransform

logger = get_logger()

_UNPICKLE_ERRORS = (
    pickle.UnpicklingError,
    EOFError,
    AttributeError,
    ImportError,
    IndexError,
    TypeError,
    ValueError,
)


class ModelArtifact:
    """Manages saving and loading of a fitted Model as a single zip file.

    The archive contains:
        - metadata.json: Header (format version, task, input/output schema, ...)
        - model.joblib: The fitted stages, serialized with joblib

    The header is validated against what the caller expects before the
    fitted stages are deserialized.
    """

    METADATA_FILE = "metadata.json"
    MODEL_FILE = "model.joblib"

    def __init__(self, model: Model, metadata: ArtifactMetadata):
        self.model = model
        self.metadata = metadata

    @classmethod
    def create(
        cls,
        model: Model,
        metrics: Metrics | dict[str, Any] | None = None,
        dataset_hash: str | None = None,
    ) -> "ModelArtifact":
        """Create a new artifact from a fitted model.

        Args:
            model: Fitted model.
            metrics: Held-out metrics to record in the header.
            dataset_hash: Content hash of the training data.

        Returns:
            A new ModelArtifact instance.
        """
        if metrics is not None and not isinstance(metrics, dict):
            metrics = metrics.to_dict()
        trainer = model.trainer
        metadata = ArtifactMetadata(
            artifact_id=str(uuid.uuid4()),
            created_at=datetime.now(UTC),
            task=model.task,
            input_schema=model.input_schema,
            output_schema=model.output_schema,
            trainer=trainer.name,
            trainer_params=trainer.params,
            stages=[step.name for step in model.steps],
            converged=model.converged,
            dataset_hash=dataset_hash,
            metrics=metrics or {},
            framework_versions={
                "scikit-learn": sklearn.__version__,
                "python": f"{sys.version_info.major}.{sys.version_info.minor}.{sys.version_info.micro}",
            },
        )
        return cls(model, metadata)

    def save(self, path: Path | str) -> Path:
        """Write the artifact to ``path``.

        Args:
            path: Destination file; parent directories are created.

        Returns:
            Path to the saved artifact.
        """
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)

        payload = io.BytesIO()
        joblib.dump(self.model.steps, payload)

        with zipfile.ZipFile(path, "w", compression=zipfile.ZIP_DEFLATED) as archive:
            archive.writestr(
                self.METADATA_FILE,
                json.dumps(self.metadata.model_dump(mode="json"), indent=2),
            )
            archive.writestr(self.MODEL_FILE, payload.getvalue())

        logger.info(
            "artifact_saved",
            path=str(path),
            task=self.metadata.task.value,
            artifact_id=self.metadata.artifact_id,
        )
        return path

    @classmethod
    def read_metadata(cls, path: Path | str) -> ArtifactMetadata:
        """Read and validate only the artifact header.

        Raises:
            FileNotFoundError: If the file doesn't exist.
            CorruptArtifact: Not a zip archive, missing header, or invalid header.
        """
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Model artifact not found: {path}")
        try:
            with zipfile.ZipFile(path) as archive:
                raw = archive.read(cls.METADATA_FILE)
            metadata = ArtifactMetadata.model_validate(json.loads(raw))
        except zipfile.BadZipFile as exc:
            raise CorruptArtifact(f"Not a model artifact: {exc}", actual=str(path)) from None
        except KeyError:
            raise CorruptArtifact("Artifact has no header", expected=cls.METADATA_FILE) from None
        except (json.JSONDecodeError, UnicodeDecodeError, ValidationError) as exc:
            raise CorruptArtifact(f"Invalid artifact header: {exc}") from None

        major = metadata.artifact_version.split(".")[0]
        if major != ARTIFACT_FORMAT_VERSION.split(".")[0]:
            raise CorruptArtifact(
                "Unsupported artifact format version",
                expected=ARTIFACT_FORMAT_VERSION,
                actual=metadata.artifact_version,
            )
        return metadata

    @classmethod
    def load(
        cls,
        path: Path | str,
        task: TaskKind | str | None = None,
        schema: Schema | None = None,
    ) -> "ModelArtifact":
        """Load an artifact, checking its header against the caller's expectations.

        Args:
            path: Artifact file.
            task: Expected task kind, or None to accept any.
            schema: Expected input schema, or None to accept any.

        Returns:
            Loaded ModelArtifact instance.

        Raises:
            FileNotFoundError: If the file doesn't exist.
            CorruptArtifact: The archive, header or payload cannot be decoded.
            SchemaIncompatible: Task kind or input schema differ from the expected ones.
        """
        path = Path(path)
        metadata = cls.read_metadata(path)

        if task is not None and TaskKind(task) != metadata.task:
            raise SchemaIncompatible(
                "Artifact task kind differs from the expected one",
                expected=TaskKind(task).value,
                actual=metadata.task.value,
            )
        if schema is not None and not schema.is_compatible(metadata.input_schema):
            raise SchemaIncompatible(
                "Artifact input schema differs from the expected one",
                expected=schema.describe(),
                actual=metadata.input_schema.describe(),
            )

        try:
            with zipfile.ZipFile(path) as archive:
                payload = archive.read(cls.MODEL_FILE)
            steps = joblib.load(io.BytesIO(payload))
        except KeyError:
            raise CorruptArtifact("Artifact has no model payload", expected=cls.MODEL_FILE) from None
        except (zipfile.BadZipFile, *_UNPICKLE_ERRORS) as exc:
            raise CorruptArtifact(f"Model payload cannot be decoded: {exc}") from None

        if not (isinstance(steps, tuple) and steps and all(isinstance(s, FittedTransform) for s in steps)):
            raise CorruptArtifact("Model payload is not a sequence of fitted stages")
        if not steps[-1].output_schema.is_compatible(metadata.output_schema):
            raise CorruptArtifact(
                "Model payload does not match the artifact header",
                expected=metadata.output_schema.describe(),
                actual=steps[-1].output_schema.describe(),
            )

        model = Model(
            input_schema=metadata.input_schema,
            steps=steps,
            output_schema=steps[-1].output_schema,
            task=metadata.task,
        )
        logger.info("artifact_loaded", path=str(path), task=metadata.task.value, artifact_id=metadata.artifact_id)
        return cls(model, metadata)

    def __repr__(self) -> str:
        return (
            f"ModelArtifact("
            f"task={self.metadata.task.value}, "
            f"trainer={self.metadata.trainer}, "
            f"id={self.metadata.artifact_id[:8]}...)"
        )


def save_model(
    model: Model,
    path: Path | str,
    metrics: Metrics | dict[str, Any] | None = None,
    dataset_hash: str | None = None,
) -> Path:
    """Save ``model`` as an artifact file."""
    return ModelArtifact.create(model, metrics=metrics, dataset_hash=dataset_hash).save(path)


def load_model(
    path: Path | str,
    task: TaskKind | str | None = None,
    schema: Schema | None = None,
) -> Model:
    """Load a model artifact, rejecting a mismatched task kind or input schema."""
    return ModelArtifact.load(path, task=task, schema=schema).model
