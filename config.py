"""
Configuration settings for the Koda practice engine.

Uses Pydantic Settings for environment variable management with .env file support.
Scoring settings and reward rules are NOT configured here: they are owned by the
platform's settings store (see src.practice.stores.SettingsStore).
"""
from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ========================================
    # AI Question Generation (Gemini)
    # ========================================
    gemini_api_key: str | None = Field(
        default=None,
        description="Google Generative AI (Gemini) API key",
    )
    gemini_model: str = Field(
        default="gemini-2.0-flash",
        description="Gemini model used for on-demand question generation",
    )
    gemini_api_url: str = Field(
        default="https://generativelanguage.googleapis.com/v1beta",
        description="Base URL of the Generative Language REST API",
    )
    gemini_timeout_ms: int = Field(
        default=30000,
        description="Request timeout for question generation (milliseconds)",
    )
    default_ai_instruction: str = Field(
        default="Ensure questions are age-appropriate, encouraging, and free of bias.",
        description="Instruction hint appended to every generation prompt",
    )
    student_token_budget: int = Field(
        default=1024,
        description="Max output tokens for a single student question",
    )

    # ========================================
    # Practice Loop Timing
    # ========================================
    auto_advance_correct_ms: int = Field(
        default=1200,
        description="Delay before advancing after a correct answer",
    )
    auto_advance_incorrect_ms: int = Field(
        default=4500,
        description="Delay before advancing after an incorrect answer",
    )
    mastery_celebration_delay_ms: int = Field(
        default=800,
        description="Delay before the mastery celebration is signalled",
    )

    # ========================================
    # Mastery
    # ========================================
    mastery_threshold: int | None = Field(
        default=None,
        description="Override for the mastery threshold (defaults to the top rank threshold)",
    )

    # ========================================
    # Storage
    # ========================================
    data_dir: Path = Field(
        default=Path.home() / ".koda",
        description="Directory for settings and result files",
    )

    # ========================================
    # Logging
    # ========================================
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="WARNING",
        description="Logging verbosity level",
    )

    # ========================================
    # Helper Methods
    # ========================================
    def has_ai_configured(self) -> bool:
        """Check if the question generator can be used."""
        return bool(self.gemini_api_key)

    @property
    def settings_file(self) -> Path:
        """Scoring settings / reward rules document."""
        return self.data_dir / "settings.json"

    @property
    def results_file(self) -> Path:
        """Append-only student result log."""
        return self.data_dir / "results.jsonl"

    def get_timing_config(self) -> dict[str, float]:
        """Get practice loop delays in seconds."""
        return {
            "correct_delay": self.auto_advance_correct_ms / 1000.0,
            "incorrect_delay": self.auto_advance_incorrect_ms / 1000.0,
            "celebration_delay": self.mastery_celebration_delay_ms / 1000.0,
        }


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
