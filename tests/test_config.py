"""Tests for application settings parsing."""

import pytest

from api.config import Settings


def test_cors_origins_from_comma_separated_env(monkeypatch):
    """Parse CORS origins from comma-separated env var."""
    monkeypatch.setenv(
        "CORS_ORIGINS",
        "https://a.example, https://b.example",
    )
    settings = Settings()
    assert settings.cors_origins == ["https://a.example", "https://b.example"]


def test_cors_origins_from_json_env(monkeypatch):
    """Parse CORS origins from JSON array env var."""
    monkeypatch.setenv(
        "CORS_ORIGINS",
        '["https://a.example", "https://b.example"]',
    )
    settings = Settings()
    assert settings.cors_origins == ["https://a.example", "https://b.example"]


def test_cors_origins_invalid_json_env_raises(monkeypatch):
    """Reject invalid JSON that starts with [ but is not valid."""
    monkeypatch.setenv("CORS_ORIGINS", "[not json]")
    with pytest.raises(ValueError):
        Settings()


def test_gemini_key_from_file(monkeypatch, tmp_path):
    """Read the API key from a mounted secret file."""
    secret = tmp_path / "gemini_key"
    secret.write_text("  file-key\n", encoding="utf-8")
    monkeypatch.setenv("GEMINI_API_KEY_FILE", str(secret))
    settings = Settings()
    assert settings.gemini_api_key == "file-key"


def test_gemini_key_file_empty_raises(monkeypatch, tmp_path):
    """Reject an empty secret file."""
    secret = tmp_path / "gemini_key"
    secret.write_text("", encoding="utf-8")
    monkeypatch.setenv("GEMINI_API_KEY_FILE", str(secret))
    with pytest.raises(ValueError):
        Settings()


def test_production_requires_api_key(monkeypatch):
    """Refuse to start in production without a Gemini key."""
    monkeypatch.setenv("ENV", "prod")
    monkeypatch.setenv("GEMINI_API_KEY", "")
    with pytest.raises(ValueError):
        Settings()


def test_production_rejects_debug(monkeypatch):
    """Refuse debug mode in production."""
    monkeypatch.setenv("ENV", "production")
    monkeypatch.setenv("GEMINI_API_KEY", "key")
    monkeypatch.setenv("DEBUG", "true")
    with pytest.raises(ValueError):
        Settings()


def test_invalid_aspect_ratio(monkeypatch):
    """Only aspect ratios supported by the image models are accepted."""
    monkeypatch.setenv("IMAGE_ASPECT_RATIO", "21:9")
    with pytest.raises(ValueError):
        Settings()


def test_log_level_normalized(monkeypatch):
    """Log level is upper-cased."""
    monkeypatch.setenv("LOG_LEVEL", "debug")
    assert Settings().log_level == "DEBUG"
