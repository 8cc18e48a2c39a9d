"""
Configuration management for the music grading system.

Uses Pydantic Settings for type-safe configuration loading from environment variables.
All configuration is validated at startup to fail fast on misconfiguration.
"""

from functools import lru_cache
from pathlib import Path

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    Every variable is prefixed with ``MUSIC_GRADING_`` (for example
    ``MUSIC_GRADING_STEP_TOLERANCE_RATIO``).
    """

    model_config = SettingsConfigDict(
        env_prefix="MUSIC_GRADING_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ==========================================================================
    # Grade Application
    # ==========================================================================
    step_tolerance_ratio: float = Field(
        default=1e-6,
        gt=0.0,
        lt=0.5,
        description="Allowed distance from the step lattice, as a fraction of the step",
    )

    # ==========================================================================
    # Normalization
    # ==========================================================================
    normalized_min: float = Field(
        default=0.0,
        description="Lower end of the canonical normalized scale",
    )

    normalized_max: float = Field(
        default=1.0,
        description="Upper end of the canonical normalized scale",
    )

    display_scale_min: float = Field(
        default=1.0,
        description="Lower end of the user-facing display scale",
    )

    display_scale_max: float = Field(
        default=10.0,
        description="Upper end of the user-facing display scale",
    )

    display_scale_step: float = Field(
        default=1.0,
        gt=0.0,
        description="Rounding step of the user-facing display scale",
    )

    # ==========================================================================
    # Simple (single grade) Ratings
    # ==========================================================================
    basic_grade_min: float = Field(default=1.0)
    basic_grade_max: float = Field(default=10.0)
    basic_grade_step: float = Field(default=1.0, gt=0.0)

    # ==========================================================================
    # Logging
    # ==========================================================================
    log_level: str = Field(
        default="INFO",
        description="Log level for the stderr sink",
    )

    log_file: Path | None = Field(
        default=None,
        description="Optional file receiving DEBUG logs",
    )

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Normalize and check the log level name."""
        level = v.upper()
        if level not in {"TRACE", "DEBUG", "INFO", "SUCCESS", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Unknown log level: {v}")
        return level

    @model_validator(mode="after")
    def validate_scales(self) -> "Settings":
        """Ensure every configured scale is a non-empty interval."""
        if self.normalized_min >= self.normalized_max:
            raise ValueError("normalized_min must be lower than normalized_max")
        if self.display_scale_min >= self.display_scale_max:
            raise ValueError("display_scale_min must be lower than display_scale_max")
        if self.basic_grade_min >= self.basic_grade_max:
            raise ValueError("basic_grade_min must be lower than basic_grade_max")
        return self


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Uses LRU cache to ensure settings are only loaded once.
    """
    return Settings()
