"""Application configuration using Pydantic Settings."""

import json
from functools import lru_cache
from pathlib import Path
from typing import Annotated, Any

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict

_SAMPLE_SCRIPT_PATH = (
    Path(__file__).resolve().parent.parent / "config" / "samples" / "sample_script.md"
)


def _read_secret_file(path: str, env_name: str) -> str:
    """Read a secret value from file and return stripped content."""
    try:
        value = Path(path).read_text(encoding="utf-8").strip()
    except OSError as exc:
        raise ValueError(f"{env_name} points to unreadable file: {path}") from exc

    if not value:
        raise ValueError(f"{env_name} points to empty file: {path}")

    return value


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Environment
    env: str = Field(default="development", description="Environment: development, stage, prod")
    debug: bool = Field(default=False, description="Debug mode")

    # API Configuration
    cors_origins: Annotated[list[str], NoDecode] = Field(
        default=["http://localhost:3000", "http://localhost:5173"],
        description="Allowed CORS origins",
    )
    max_script_length: int = Field(
        default=200_000, description="Maximum accepted script length in characters"
    )
    sample_script_path: str = Field(
        default=str(_SAMPLE_SCRIPT_PATH), description="Path of the bundled sample screenplay"
    )

    # Generative provider
    llm_provider: str = Field(default="gemini", description="Image provider: gemini")
    gemini_api_key: str = Field(default="", description="Google AI Studio API key")
    gemini_api_key_file: str | None = Field(
        default=None,
        description="Optional file path containing the Gemini API key (Docker secret pattern)",
    )
    gemini_base_url: str = Field(
        default="https://generativelanguage.googleapis.com/v1beta",
        description="Generative Language API base URL",
    )
    gemini_text_model: str = Field(
        default="gemini-2.5-flash", description="Model used to enhance image prompts"
    )
    gemini_image_model: str = Field(
        default="imagen-4.0-generate-001", description="Model used to generate images"
    )
    gemini_timeout: int = Field(default=120, description="Gemini request timeout in seconds")
    image_aspect_ratio: str = Field(default="16:9", description="Aspect ratio of storyboard frames")

    # Logging
    log_level: str = Field(default="INFO", description="Logging level")

    @field_validator("cors_origins", mode="before")
    @classmethod
    def parse_cors_origins(cls, v: Any) -> list[str]:
        """Parse CORS origins from string or list."""
        if isinstance(v, str):
            value = v.strip()
            if not value:
                return []
            if value.startswith("["):
                parsed = json.loads(value)
                if not isinstance(parsed, list):
                    raise ValueError("CORS_ORIGINS JSON value must be a list")
                return [str(origin).strip() for origin in parsed if str(origin).strip()]
            return [origin.strip() for origin in value.split(",") if origin.strip()]
        if isinstance(v, list):
            return [str(origin).strip() for origin in v if str(origin).strip()]
        return v

    @field_validator("image_aspect_ratio")
    @classmethod
    def validate_aspect_ratio(cls, v: str) -> str:
        allowed = {"1:1", "3:4", "4:3", "9:16", "16:9"}
        if v not in allowed:
            raise ValueError(f"IMAGE_ASPECT_RATIO must be one of {', '.join(sorted(allowed))}")
        return v

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        level = v.upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Invalid LOG_LEVEL: {v}")
        return level

    @model_validator(mode="before")
    @classmethod
    def load_secrets_from_files(cls, data: Any) -> Any:
        """Allow *_FILE settings to populate sensitive values from mounted secrets."""
        if not isinstance(data, dict):
            return data

        settings = dict(data)
        file_mapping = {
            "gemini_api_key_file": "gemini_api_key",
        }

        for file_field, target_field in file_mapping.items():
            file_path = settings.get(file_field)
            if file_path:
                settings[target_field] = _read_secret_file(file_path, file_field.upper())

        return settings

    @property
    def is_production(self) -> bool:
        """Check if running in production."""
        return self.env in {"prod", "production"}

    @model_validator(mode="after")
    def validate_production_security(self) -> "Settings":
        """Enforce usable settings when running in production."""
        if not self.is_production:
            return self

        if not self.gemini_api_key:
            raise ValueError("GEMINI_API_KEY (or GEMINI_API_KEY_FILE) is required in production")

        if self.debug:
            raise ValueError("DEBUG must be false in production")

        return self


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
