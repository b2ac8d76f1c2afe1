"""
Configuration Management for the Recurrence Engine

Uses pydantic-settings for type-safe configuration from environment variables.

DESIGN DECISION: All tunables live here. The engine itself never reads
the environment; callers obtain settings once and pass them down.
"""

from functools import lru_cache
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class EngineSettings(BaseSettings):
    """
    Expansion and mutation settings.

    Loads configuration from RECURRENCE_* environment variables and .env file.
    """

    model_config = SettingsConfigDict(
        env_prefix="RECURRENCE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    # Environment
    app_environment: str = Field(
        default="development",
        description="Application environment"
    )

    # Paid status resolution
    default_timezone: str = Field(
        default="UTC",
        description="IANA timezone used when the caller supplies none"
    )
    autopay_cutoff_hour: int = Field(
        default=0,
        ge=0,
        le=23,
        description="Local hour from which today's autopay occurrences count as paid"
    )
    income_counts_as_autopay: bool = Field(
        default=False,
        description="Treat recurring income as paid once its date has passed"
    )

    # Consistency checks
    validate_after_mutation: bool = Field(
        default=True,
        description="Run the pairing validator after every mutation"
    )

    # Expansion cache
    cache_max_entries: int = Field(
        default=512,
        ge=1,
        description="Maximum number of cached expansions"
    )

    # Logging
    log_json: bool = Field(
        default=True,
        description="Render log lines as JSON (console renderer otherwise)"
    )

    @field_validator('default_timezone')
    @classmethod
    def validate_timezone(cls, v: str) -> str:
        """Reject timezone names the tz database doesn't know."""
        try:
            ZoneInfo(v)
        except (ZoneInfoNotFoundError, ValueError) as e:
            raise ValueError(f"Unknown timezone: {v}") from e
        return v

    @property
    def is_production(self) -> bool:
        return self.app_environment.lower() == "production"


class Settings(BaseSettings):
    """
    Root settings container.

    Aggregates all sub-settings for easy access.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    @property
    def engine(self) -> EngineSettings:
        return EngineSettings()


@lru_cache()
def get_settings() -> Settings:
    """
    Get application settings (cached).

    Uses LRU cache to ensure settings are only loaded once.
    Call get_settings.cache_clear() to reload if needed.
    """
    return Settings()
