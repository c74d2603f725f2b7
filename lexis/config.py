"""
Configuration settings for the Lexis review service.

Uses Pydantic Settings for environment variable management with .env file support.
All variables are read with the ``LEXIS_`` prefix, e.g. ``LEXIS_DATABASE_URL``.
"""
from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_DATA_DIR = Path.home() / ".lexis"


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="LEXIS_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ========================================
    # Database
    # ========================================
    database_url: str = Field(
        default=f"sqlite:///{DEFAULT_DATA_DIR / 'lexis.db'}",
        description="SQLAlchemy connection string for the schedule store",
    )
    database_echo: bool = Field(
        default=False,
        description="Echo SQL statements (debugging only)",
    )

    # ========================================
    # Review Sessions
    # ========================================
    default_user_id: str = Field(
        default="local",
        description="User id used when the CLI is run without --user",
    )
    session_limit: int = Field(
        default=50,
        ge=1,
        description="Maximum due items pulled into one review session",
    )
    requeue_policy: Literal["never", "again_to_end"] = Field(
        default="never",
        description="Whether an Again-graded item is re-presented later in the same session",
    )
    max_requeues_per_item: int = Field(
        default=1,
        ge=0,
        description="Upper bound on re-presentations of one item per session",
    )
    persistence_flush_timeout: float = Field(
        default=5.0,
        gt=0,
        description="Seconds to wait for pending schedule writes when a session ends",
    )

    # ========================================
    # Content
    # ========================================
    vocabulary_dir: Path = Field(
        default=Path("data"),
        description="Directory scanned for vocabulary JSON decks",
    )

    # ========================================
    # Logging
    # ========================================
    log_level: Literal["TRACE", "DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="WARNING",
        description="Logging verbosity level",
    )
    log_file: str | None = Field(
        default=None,
        description="Log file path (None for stderr only)",
    )

    @field_validator("log_level", mode="before")
    @classmethod
    def _upper_log_level(cls, value: str) -> str:
        return value.upper() if isinstance(value, str) else value


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
