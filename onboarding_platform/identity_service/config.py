"""
Configuration management for the identity service
"""
from functools import lru_cache
from typing import List, Optional

from pydantic_settings import BaseSettings, SettingsConfigDict

from .exceptions import ConfigurationError


class Settings(BaseSettings):
    """Identity service configuration loaded from environment variables"""

    # Database Configuration
    DATABASE_URL: str = "sqlite:///./identity.db"

    # Session tokens
    JWT_SECRET: Optional[str] = None
    JWT_ALGORITHM: str = "HS256"
    SESSION_TOKEN_TTL_HOURS: int = 24

    # Password reset
    RESET_TOKEN_TTL_MINUTES: int = 10
    RESET_URL_BASE: str = "http://localhost:5173/reset-password"

    # Password hashing work factor (pbkdf2_sha256 rounds)
    PASSWORD_HASH_ROUNDS: int = 29000

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_DIR: Optional[str] = None

    # CORS Configuration
    CORS_ORIGINS: List[str] = ["*"]

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore"
    )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return the cached Settings instance for the running process."""
    return Settings()


def require_signing_key(settings: Settings) -> str:
    """
    Return the session signing key or fail startup.

    Raises:
        ConfigurationError: If JWT_SECRET is missing or blank
    """
    key = settings.JWT_SECRET
    if not key or not key.strip():
        raise ConfigurationError("JWT_SECRET must be set before the identity service can start")
    return key
