import json
import tempfile
from functools import lru_cache
from typing import Literal

from pydantic import computed_field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # Application
    app_name: str = "Text Overlay Renderer"
    app_version: str = "0.1.0"
    git_hash: str = "unknown"  # Set via GIT_HASH env var at build time
    environment: Literal["development", "staging", "production"] = "development"
    debug: bool = False
    log_level: str = "INFO"

    # Google Cloud Storage
    gcs_bucket_name: str = "ssm-renders-8822"
    gcs_project_id: str = ""
    storage_public_base_url: str = "https://storage.googleapis.com"

    # Local storage for development (when GCS is not configured)
    use_local_storage: bool = True  # Set to False in production
    local_storage_path: str = "/tmp/overlay-storage"

    # CORS - stored as string, parsed via computed property
    cors_origins_raw: str = "*"

    @computed_field
    @property
    def cors_origins(self) -> list[str]:
        """Parse CORS origins from pipe/comma-separated string or JSON array."""
        v = self.cors_origins_raw
        if v.startswith("["):
            try:
                return json.loads(v)
            except json.JSONDecodeError:
                pass
        # Pipe-separated (for Cloud Run compatibility)
        if "|" in v:
            return [origin.strip() for origin in v.split("|") if origin.strip()]
        return [origin.strip() for origin in v.split(",") if origin.strip()]

    # FFmpeg (falls back to the binary on PATH)
    ffmpeg_path: str = "ffmpeg"
    # None = wait for ffmpeg to exit however long it takes
    ffmpeg_timeout_s: float | None = None

    # Shared font for every drawtext stage
    font_path: str = "/usr/share/fonts/truetype/roboto/unhinted/RobotoTTF/Roboto-Bold.ttf"

    # Per-run workspaces are created under this directory
    work_dir: str = tempfile.gettempdir()

    # Caption layout
    caption_wrap_width: int = 25
    caption_line_spacing: int = 20
    # Stock FFmpeg drawtext has no kerning option; enable only for builds that add one
    drawtext_kerning: bool = False
    render_video_codec: str = "libx264"

    # Source download
    fetch_user_agent: str = "Mozilla/5.0"
    fetch_timeout_s: float = 120.0

    # Request limits
    max_overlays: int = 100
    max_caption_length: int = 500
    max_source_bytes: int = 500 * 1024 * 1024


@lru_cache
def get_settings() -> Settings:
    return Settings()
