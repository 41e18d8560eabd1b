"""Centralized application settings using pydantic-settings."""

from functools import lru_cache
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables (``MLPIPE_*``)."""

    model_config = SettingsConfigDict(
        env_prefix="MLPIPE_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Storage roots
    data_dir: Path = Path("data")
    model_dir: Path = Path("models")

    # Training defaults
    seed: int = 1
    test_fraction: float = Field(default=0.25, gt=0.0, lt=1.0)
    binary_threshold: float = Field(default=0.5, ge=0.0, le=1.0)

    # Logging
    log_level: str = "INFO"
    log_json: bool = True

    def data_path(self, file_name: str) -> Path:
        """Path to a dataset file under the data root."""
        return self.data_dir / file_name

    def model_path(self, file_name: str) -> Path:
        """Path to a model artifact under the model root."""
        return self.model_dir / file_name


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
