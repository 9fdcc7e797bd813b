"""
Configuration management using Pydantic Settings.

Values come from RELIEF_* environment variables or a .env file in the
working directory.
"""

from functools import lru_cache
from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Relief kernel settings."""

    model_config = SettingsConfigDict(
        env_prefix="RELIEF_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Decisioning
    event_window_days: int = Field(
        default=90, ge=0, description="How far back an event date may lie"
    )
    adjudication_timeout_seconds: float = Field(
        default=30.0, gt=0, description="Single bounded wait for the secondary adjudicator"
    )

    # Logging
    log_level: str = Field(default="INFO", description="Logging level")
    log_format: str = Field(
        default="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        description="Format string for log records",
    )
    log_file: Optional[str] = Field(default=None, description="Optional log file path")

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        valid = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        if v.upper() not in valid:
            raise ValueError(f"log_level must be one of {sorted(valid)}")
        return v.upper()


@lru_cache()
def get_settings() -> Settings:
    """Process-wide settings, read once."""
    return Settings()
