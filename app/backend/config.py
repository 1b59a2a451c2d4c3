"""
Application configuration using Pydantic Settings.

Automatically loads environment variables from .env files.
"""

from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Extraction provider
    ai_provider: Literal["gemini", "openai"] = "gemini"
    gemini_api_key: str | None = None
    openai_api_key: str | None = None
    gemini_model: str = "gemini-2.5-flash"
    openai_model: str = "gpt-4.1"
    extraction_temperature: float = Field(default=0.1, ge=0.0, le=2.0)

    # Serve canned data instead of calling the provider
    mock_mode: bool = False

    # Upload handling
    max_upload_bytes: int = Field(default=10 * 1024 * 1024, gt=0)
    max_image_dimension: int = Field(default=2048, gt=0)
    max_pdf_pages: int = Field(default=3, ge=1)

    # Browser front end origins
    cors_origins: list[str] = [
        "http://localhost:3000",
        "http://127.0.0.1:3000",
        "http://localhost:5173",  # Vite development server
        "http://127.0.0.1:5173",
    ]

    # Debug flags
    log_level: str = "INFO"
    debug: bool = False

    model_config = SettingsConfigDict(
        # Load from .env file in the backend directory
        env_file=Path(__file__).parent / ".env",
        env_file_encoding="utf-8",
        extra="ignore",
        # Case insensitive environment variable names
        case_sensitive=False,
    )


@lru_cache
def get_settings() -> Settings:
    """
    Get cached application settings.

    Returns:
        Settings: Application configuration loaded from environment.
    """
    return Settings()
