"""Settings for the timber marketplace, read from the environment and an optional .env file."""
from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import List

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

PROJECT_ROOT = Path(__file__).resolve().parents[2]
ENV_FILE = PROJECT_ROOT / ".env"

DATABASE_FILE = PROJECT_ROOT / "timber_market.db"
ABSOLUTE_DATABASE_URL = f"sqlite:///{DATABASE_FILE.as_posix()}"

DEFAULT_JWT_SECRET = "change-me-in-production"

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")
LOG_FORMATS = ("text", "json")

SQLITE_PREFIX = "sqlite:///"


def _resolve_database_url(url: str) -> str:
    """Anchor a relative SQLite file path at PROJECT_ROOT so the working directory does not matter."""
    if not url.startswith(SQLITE_PREFIX):
        return url

    path = url[len(SQLITE_PREFIX):]
    # Absolute paths, ":memory:" and drive letters stay as given
    if path.startswith("/") or ":" in path:
        return url

    if path.startswith("./"):
        path = path[2:]
    return f"{SQLITE_PREFIX}{(PROJECT_ROOT / path).as_posix()}"


class Settings(BaseSettings):
    """
    Service settings.

    Environment variables win over the project's .env file, which wins over
    the defaults below. Field names are matched case-insensitively against
    their upper-case aliases.
    """

    model_config = SettingsConfigDict(
        env_file=ENV_FILE if ENV_FILE.exists() else None,
        env_file_encoding="utf-8",
        extra="ignore",
        case_sensitive=False,
    )

    # Document store
    database_url: str = Field(
        default=ABSOLUTE_DATABASE_URL,
        alias="DATABASE_URL",
        description="SQLAlchemy URL of the database holding the document table.",
    )
    db_pool_size: int = Field(default=5, alias="DB_POOL_SIZE", ge=1)
    db_max_overflow: int = Field(default=10, alias="DB_MAX_OVERFLOW", ge=0)
    db_pool_timeout: int = Field(default=30, alias="DB_POOL_TIMEOUT", ge=1)

    # Bearer tokens
    jwt_secret_key: str = Field(default=DEFAULT_JWT_SECRET, alias="JWT_SECRET_KEY")
    jwt_access_token_expire_minutes: int = Field(
        default=60, alias="JWT_ACCESS_TOKEN_EXPIRE_MINUTES", ge=1
    )

    # Marketplace
    activity_feed_limit: int = Field(
        default=50,
        alias="ACTIVITY_FEED_LIMIT",
        ge=1,
        le=500,
        description="Most activity entries returned for one project.",
    )

    # HTTP and logging
    allowed_origins: str = Field(default="*", alias="ALLOWED_ORIGINS")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")
    log_format: str = Field(default="text", alias="LOG_FORMAT")
    environment: str = Field(default="local", alias="ENVIRONMENT")

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        level = v.upper()
        if level not in LOG_LEVELS:
            raise ValueError(f"LOG_LEVEL must be one of {', '.join(LOG_LEVELS)}")
        return level

    @field_validator("log_format")
    @classmethod
    def validate_log_format(cls, v: str) -> str:
        fmt = v.lower()
        if fmt not in LOG_FORMATS:
            raise ValueError(f"LOG_FORMAT must be one of {', '.join(LOG_FORMATS)}")
        return fmt

    @model_validator(mode="after")
    def check_production_secret(self) -> "Settings":
        """Production must sign tokens with its own secret."""
        if self.environment == "production" and self.jwt_secret_key == DEFAULT_JWT_SECRET:
            raise ValueError("JWT_SECRET_KEY must be set in production mode")
        self.database_url = _resolve_database_url(self.database_url)
        return self

    def get_allowed_origins(self) -> List[str]:
        """ALLOWED_ORIGINS as a list for the CORS middleware."""
        return [origin.strip() for origin in self.allowed_origins.split(",") if origin.strip()]

    @property
    def is_sqlite(self) -> bool:
        return self.database_url.startswith("sqlite")


@lru_cache
def get_settings() -> Settings:
    """Process-wide settings, built on first use. See :func:`reload_settings`."""
    return Settings()


def reload_settings() -> Settings:
    """Drop the cached settings and read the environment again."""
    get_settings.cache_clear()
    return get_settings()
