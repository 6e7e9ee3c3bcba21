"""Tests for configuration settings."""
# ruff: noqa: FBT001 - Boolean positional args acceptable in parametrized tests

from pathlib import Path

import pytest

from vframes_client.config import Settings


def test_settings_defaults() -> None:
    """Test Settings defaults match the service's limits."""
    settings = Settings(_env_file=None)  # type: ignore[call-arg]

    assert settings.api_url == "http://localhost:8080"
    assert settings.poll_interval == 3.0
    assert settings.max_upload_size == 500 * 1024 * 1024
    assert settings.allowed_video_extensions == [
        ".mp4",
        ".avi",
        ".mov",
        ".mkv",
        ".webm",
    ]
    assert settings.list_cache_max_size == 128


@pytest.mark.parametrize(
    ("field", "value"),
    [
        ("api_url", "https://videos.example.com"),
        ("timeout", 5.0),
        ("poll_interval", 0.5),
        ("max_upload_size", 1024),
        ("credentials_file", Path("/tmp/creds.json")),
        ("list_cache_ttl", 10),
        ("list_cache_max_size", 0),
        ("log_level", "DEBUG"),
        ("log_format_json", True),
        ("log_exclude_loggers", "foo,bar"),
    ],
)
def test_settings_custom_values(field: str, value: str | bool | int | Path) -> None:
    """Test Settings accepts custom values for all fields."""
    settings = Settings(**{field: value})  # type: ignore[arg-type]
    assert getattr(settings, field) == value


def test_settings_from_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    """Test Settings reads VFRAMES_ prefixed variables, case-insensitively."""
    monkeypatch.setenv("VFRAMES_API_URL", "https://videos.example.com")
    monkeypatch.setenv("vframes_poll_interval", "1.5")
    monkeypatch.setenv("VFRAMES_ALLOWED_VIDEO_EXTENSIONS", '[".mp4"]')

    settings = Settings()

    assert settings.api_url == "https://videos.example.com"
    assert settings.poll_interval == 1.5
    assert settings.allowed_video_extensions == [".mp4"]


def test_settings_model_config_env_prefix() -> None:
    """Test Settings model_config has VFRAMES_ prefix."""
    assert Settings.model_config["env_prefix"] == "VFRAMES_"


def test_settings_model_config_case_insensitive() -> None:
    """Test Settings model_config has case_sensitive=False."""
    assert Settings.model_config["case_sensitive"] is False
