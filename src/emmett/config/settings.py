"""Library settings using Pydantic Settings."""

from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Settings loaded from ``EMMETT_*`` environment variables.

    Only logging is configurable; dispatch semantics are fixed.
    """

    model_config = SettingsConfigDict(
        env_prefix="EMMETT_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Logging
    log_level: str = "WARNING"
    log_json: bool = False

    @property
    def is_debug(self) -> bool:
        return self.log_level.upper() == "DEBUG"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
