"""
Configuration management for Callboard.

This module centralizes environment-driven configuration using Pydantic's
`BaseSettings`. Every store consumes the shared `settings` instance unless a
caller injects explicit values, which keeps tests independent of the
environment.
"""

from __future__ import annotations

from functools import lru_cache

from pydantic import AnyUrl, Field, PositiveInt, field_validator
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application configuration sourced from environment variables."""

    # General application settings
    PROJECT_NAME: str = "callboard"
    ENVIRONMENT: str = Field("development", pattern=r"^(development|staging|production)$")
    LOG_LEVEL: str = "INFO"

    # Document store
    MONGODB_URL: AnyUrl = Field("mongodb://localhost:27017")
    MONGODB_DATABASE: str = "callboard"
    MONGODB_TIMEOUT_MS: PositiveInt = 5000

    # Session tokens issued by the identity provider
    SECRET_KEY: str = "changeme"
    JWT_ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60
    PROFILE_CACHE_TTL_SECONDS: int = 300

    # Membership & roster behaviour
    ADMIN_WRITE_MAX_ATTEMPTS: PositiveInt = 5
    ROSTER_DELETION_POLICY: str = Field("hard", pattern=r"^(hard|soft)$")

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = False
        extra = "ignore"

    @field_validator("ROSTER_DELETION_POLICY", mode="before")
    def _normalise_policy(cls, value: str) -> str:
        if isinstance(value, str):
            return value.strip().lower()
        return value

    @field_validator("LOG_LEVEL", mode="before")
    def _upper_level(cls, value: str) -> str:
        if isinstance(value, str):
            return value.strip().upper()
        return value


@lru_cache()
def get_settings() -> Settings:
    """Return a cached `Settings` instance."""

    return Settings()


# Singleton-style settings instance for modules that prefer direct access.
settings = get_settings()
