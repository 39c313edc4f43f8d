"""Application configuration."""

import os
from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict

_ENVIRONMENT = os.getenv("ENVIRONMENT", "local")

FILE_BACKEND = "file"
LOCAL_BACKEND = "local"


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    storage_backend: str = FILE_BACKEND
    data_dir: Path = Path("data")
    local_store_path: Path = Path("bodytracker.db")
    log_level: str = "INFO"
    environment: str = _ENVIRONMENT

    model_config = SettingsConfigDict(
        env_file=(f".env.{_ENVIRONMENT}", ".env"),
        extra="ignore",
    )


def parse_storage_backend(raw: str | None) -> str:
    """Normalize the configured storage backend name."""
    cleaned = (raw or FILE_BACKEND).strip().lower()
    if cleaned not in {FILE_BACKEND, LOCAL_BACKEND}:
        raise ValueError(f"Unknown storage backend: {raw!r}")
    return cleaned
