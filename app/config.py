"""Centralized configuration from environment variables.

All configuration that varies between environments (local dev, CI, production)
is read from environment variables here. Import from this module instead of
reading os.environ directly in service code.
"""
import os
from functools import lru_cache


def _env_bool(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "on")


class Settings:
    """Application settings loaded from environment variables."""

    # Database
    DATABASE_URL: str = os.getenv("DATABASE_URL", "")
    DB_HOST: str = os.getenv("DB_HOST", "localhost")
    DB_PORT: str = os.getenv("DB_PORT", "5432")
    DB_NAME: str = os.getenv("DB_NAME", "recipe_costing")
    DB_USER: str = os.getenv("DB_USER", "costing_app")
    DB_PASSWORD: str = os.getenv("DB_PASSWORD", "")

    # CORS
    CORS_ORIGINS: list[str] = os.getenv(
        "CORS_ORIGINS", "http://localhost:5173,http://localhost:3000"
    ).split(",")

    # Logging
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")

    # Costing
    DEFAULT_YIELD_PERCENT: int = int(os.getenv("DEFAULT_YIELD_PERCENT", "95"))
    THEORETICAL_USAGE_APPLY_YIELD: bool = _env_bool("THEORETICAL_USAGE_APPLY_YIELD")
    VARIANCE_PERCENT_PLACES: int = int(os.getenv("VARIANCE_PERCENT_PLACES", "2"))


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
