"""Configuration management using Pydantic Settings."""

from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_CREDENTIALS_FILE = Path("~/.config/vframes/credentials.json")


class Settings(BaseSettings):
    """Client settings from environment variables."""

    model_config = SettingsConfigDict(
        case_sensitive=False,
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="VFRAMES_",
        env_nested_delimiter="__",
        extra="ignore",
    )

    # Remote service
    api_url: str = Field(
        default="http://localhost:8080",
        description="Base URL of the video platform API gateway",
    )
    timeout: float = Field(
        default=30.0,
        description="Upper bound in seconds for every network call",
    )

    # Job tracking
    poll_interval: float = Field(
        default=3.0,
        description="Seconds between status queries while a job is not terminal",
    )

    # Uploads
    max_upload_size: int = Field(
        default=500 * 1024 * 1024,
        description="Largest accepted upload in bytes (500MB)",
    )
    allowed_video_extensions: list[str] = Field(
        default_factory=lambda: [".mp4", ".avi", ".mov", ".mkv", ".webm"],
        description="File extensions accepted by the upload endpoint",
    )

    # Credentials persistence
    credentials_file: Path = Field(
        default=DEFAULT_CREDENTIALS_FILE,
        description="JSON file holding the access/refresh tokens and identity",
    )

    # Job listing cache
    list_cache_ttl: int = Field(
        default=60,
        description="Job listing cache TTL in seconds",
    )
    list_cache_max_size: int = Field(
        default=128,
        description="Max cached job listing pages. Set to 0 to disable the cache.",
    )

    # Logging
    log_level: str = Field(default="INFO", description="Logging level")
    log_format_json: bool = Field(
        default=False,
        description="Use JSON logging format (False for human-readable logs)",
    )
    log_exclude_loggers: str = Field(
        default="httpx,httpcore",
        description="Comma-separated list of logger names to exclude from DEBUG logging",
    )


settings = Settings()
