"""Configuration management for the textile try-on service."""

from pathlib import Path
from typing import Literal

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class GeminiConfig(BaseModel):
    """Gemini generateContent API settings."""
    api_key: str = ""
    api_base_url: str = "https://generativelanguage.googleapis.com/v1beta"
    image_model: str = "gemini-2.5-flash-image-preview"
    text_model: str = "gemini-2.5-flash"  # used by the enhanced prompt strategy
    request_timeout_seconds: float = 120.0

    def endpoint(self, model_name: str) -> str:
        return f"{self.api_base_url.rstrip('/')}/models/{model_name}:generateContent"


class StorageConfig(BaseModel):
    """Where generated images are written."""
    backend: Literal["local", "s3"] = "local"

    # Local disk, served by the API under /files
    local_path: Path = Path("uploads")
    public_base_url: str = "http://localhost:8000/files"

    # S3
    s3_bucket: str | None = None
    s3_region: str = "ap-south-1"
    s3_base_url: str | None = None  # None = https://{bucket}.s3.{region}.amazonaws.com


class TryOnConfig(BaseSettings):
    """Main service configuration."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="",
        env_nested_delimiter="__",
        extra="ignore",
    )

    # Sub-configs
    gemini: GeminiConfig = Field(default_factory=GeminiConfig)
    storage: StorageConfig = Field(default_factory=StorageConfig)

    fetch_timeout_seconds: float = 30.0
    default_model: str = "gemini-tryon"

    # Placeholder returned as a DEGRADED outcome when generation fails.
    # None disables the fallback and failures are reported as FAILED.
    fallback_image_url: str | None = None

    # JSON catalogue loaded into the in-memory repository at startup
    seed_file: Path | None = None

    log_level: str = "INFO"
    cors_allowed_origins: list[str] = Field(default_factory=lambda: ["*"])


def load_config() -> TryOnConfig:
    """Load configuration from environment and defaults."""
    return TryOnConfig()
