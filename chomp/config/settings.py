"""
Application configuration using Pydantic settings.

Configuration is loaded from environment variables with sensible defaults.
Using Pydantic's BaseSettings means we get:
- Type validation at startup (fail fast if config is wrong)
- Documentation of what's required vs optional
- Easy testing with different configurations

Mock mode enables local development without yt-dlp installed.
"""

import os
import tempfile
from functools import lru_cache
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


DEFAULT_FORMAT_FILTER = (
    "bestvideo[height<=720]+bestaudio"
    "/bestvideo[width<=720]+bestaudio"
    "/best[height<=720]"
    "/best[width<=720]"
    "/best"
)


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    All settings can be overridden via environment variables.
    For lists (like cors_origins), use comma-separated values in env.
    """

    # API Configuration
    api_title: str = "Chomp API"
    api_version: str = "v1"

    # Limits
    max_filesize_mb: int = Field(
        default=100,
        description="Largest video (in MiB) the service will download, as reported by yt-dlp."
    )
    video_ttl_seconds: int = Field(
        default=600,
        description="How long an unclaimed video stays in memory before eviction."
    )
    cleanup_interval_seconds: int = Field(
        default=60,
        description="How often the evictor sweeps the store for expired videos."
    )

    # yt-dlp Configuration
    ytdlp_path: str = Field(
        default="yt-dlp",
        description="Path to the yt-dlp binary (default assumes it's in PATH)"
    )
    format_filter: str = Field(
        default=DEFAULT_FORMAT_FILTER,
        description="yt-dlp format selection. Caps at 720p for landscape or portrait video."
    )
    merge_output_format: str = Field(
        default="mp4",
        description="Container yt-dlp merges video and audio streams into."
    )
    subprocess_timeout_seconds: int = Field(
        default=600,
        description="Upper bound on a single yt-dlp invocation. A hung process is killed after this."
    )
    temp_dir: Optional[str] = Field(
        default=None,
        description="Base directory for per-request scratch workspaces. System temp dir when unset."
    )
    fetcher_mock_mode: bool = Field(
        default=False,
        description="Use a fake fetcher instead of yt-dlp. Enables local dev without the binary."
    )

    # Logging
    log_level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)"
    )

    # CORS
    cors_origins: str = Field(
        default="http://localhost:3000",
        description="Comma-separated list of allowed CORS origins. Use * for development only."
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    @property
    def max_filesize_bytes(self) -> int:
        return self.max_filesize_mb * 1024 * 1024

    @property
    def scratch_base_dir(self) -> str:
        """Base directory for scratch workspaces."""
        return self.temp_dir or tempfile.gettempdir()

    @property
    def cors_origins_list(self) -> list[str]:
        """Parse comma-separated CORS origins into a list."""
        if self.cors_origins == "*":
            return ["*"]
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]

    def validate_required_fields(self) -> list[str]:
        """
        Validate settings that Pydantic's type checks can't express.

        Returns a list of problems. Empty means the configuration is usable.
        """
        problems = []

        if self.max_filesize_mb <= 0:
            problems.append("MAX_FILESIZE_MB must be positive")
        if self.video_ttl_seconds <= 0:
            problems.append("VIDEO_TTL_SECONDS must be positive")
        if self.cleanup_interval_seconds <= 0:
            problems.append("CLEANUP_INTERVAL_SECONDS must be positive")
        if self.subprocess_timeout_seconds <= 0:
            problems.append("SUBPROCESS_TIMEOUT_SECONDS must be positive")
        if not self.format_filter.strip():
            problems.append("FORMAT_FILTER must not be empty")
        if self.temp_dir and not os.path.isdir(self.temp_dir):
            problems.append(f"TEMP_DIR is not a directory: {self.temp_dir}")

        return problems


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Using lru_cache means we only load settings once per process.
    This is safe because settings don't change during runtime.
    For tests, you can call get_settings.cache_clear() to reset.
    """
    return Settings()
