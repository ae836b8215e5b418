"""Application configuration."""

import os
from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict

_ENVIRONMENT = os.getenv("ENVIRONMENT", "local")


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    host: str = "0.0.0.0"
    port: int = 4000
    client_origin: str = "http://localhost:5173"
    upload_dir: Path = Path("uploads")
    audio_dir: Path = Path("audio")
    manifest_path: Path | None = None
    public_base_url: str | None = None
    openai_api_key: str | None = None
    openai_model: str = "gpt-5.2"
    openai_reasoning_effort: str | None = None
    openai_store: bool = False
    openai_tts_model: str = "gpt-4o-mini-tts"
    openai_voice: str | None = None
    narrate_stories: bool = False
    max_upload_files: int = 20
    max_upload_bytes: int = 10 * 1024 * 1024
    webp_quality: int = 82
    environment: str = _ENVIRONMENT

    model_config = SettingsConfigDict(
        env_file=(f".env.{_ENVIRONMENT}", ".env"),
        extra="ignore",
    )

    @property
    def resolved_manifest_path(self) -> Path:
        """Return the manifest location, defaulting to the upload directory."""
        return self.manifest_path or self.upload_dir / "manifest.json"


def parse_allowed_origins(raw: str | None) -> list[str]:
    """Parse a comma separated list of allowed client origins."""
    if raw is None:
        return []
    return [origin.strip() for origin in raw.split(",") if origin.strip()]
