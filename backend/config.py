"""
Configuration management for the solver front-end.

Uses Pydantic Settings for environment variable management and validation.
"""

from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import Literal, Optional


class Settings(BaseSettings):
    """Application configuration loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    # API Keys
    google_api_key: str = ""

    # Application
    environment: Literal["development", "staging", "production"] = "development"

    # Solver backend (Google Gemini handles both text and vision input)
    solver_model: str = "gemini-2.5-flash"
    solver_temperature: float = 0.2
    solve_timeout_seconds: Optional[float] = 60.0  # None disables the deadline

    # Precision (decimal places requested from the backend)
    default_precision: int = 4

    # Drawing surface
    canvas_width: int = 800
    canvas_height: int = 300
    stroke_width: int = 4

    # Voice input
    speech_language: str = "en-US"

    # Logging
    log_level: str = "INFO"


# Global settings instance
settings = Settings()
