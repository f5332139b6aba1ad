"""
authgate Configuration
Environment-driven settings (pydantic-settings), loaded once per process.

All variables use the AUTHGATE_ prefix, e.g. AUTHGATE_USER_JWT_SECRET.
A local .env file is read if present.
"""

from datetime import timedelta
from functools import lru_cache
from typing import Literal, Optional

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from authgate.core.constants import (
    DEFAULT_TOKEN_TTL,
    RATE_AUTH,
    RATE_GENERAL,
    RATE_STRICT,
)
from authgate.core.errors import ConfigError


# Development fallbacks. Refused when environment == "production".
DEV_USER_JWT_SECRET = "dev-user-jwt-secret-change-me-in-prod"
DEV_ADMIN_JWT_SECRET = "dev-admin-jwt-secret-change-me-in-prod"


class Settings(BaseSettings):
    """Runtime settings for the access-control layer."""

    model_config = SettingsConfigDict(
        env_prefix="AUTHGATE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # -----------------
    # App
    # -----------------
    app_name: str = "authgate"
    app_version: str = "1.0.0"
    environment: Literal["development", "test", "production"] = "development"
    debug: bool = False
    host: str = "127.0.0.1"
    port: int = 6060

    # -----------------
    # Database
    # -----------------
    database_url: str = "sqlite+aiosqlite:///./authgate.db"

    # -----------------
    # Tokens
    # -----------------
    user_jwt_secret: Optional[str] = DEV_USER_JWT_SECRET
    admin_jwt_secret: Optional[str] = DEV_ADMIN_JWT_SECRET
    # Shared by the user and admin issuers. Accepts seconds or ISO 8601 ("P5D").
    token_ttl: timedelta = DEFAULT_TOKEN_TTL

    # -----------------
    # Rate limiting
    # -----------------
    rate_limit_enabled: bool = True
    rate_limit_general: str = RATE_GENERAL
    rate_limit_auth: str = RATE_AUTH
    rate_limit_strict: str = RATE_STRICT
    trust_proxy_headers: bool = False

    # -----------------
    # Logging
    # -----------------
    log_level: str = "INFO"
    log_json: bool = False
    log_file: Optional[str] = None

    # -----------------
    # Default accounts (seeded on startup when absent)
    # -----------------
    seed_defaults: bool = True
    default_user_username: str = "bird_user"
    default_user_password: str = "Bird!2021pass"
    default_user_email: str = "bird@example.com"
    super_admin_username: str = "peanut"
    super_admin_password: str = "Peanut!2021pass"
    basic_admin_username: str = "ben_admin"
    basic_admin_password: str = "Ben!2021pass"

    @field_validator("token_ttl")
    @classmethod
    def _positive_ttl(cls, value: timedelta) -> timedelta:
        if value.total_seconds() <= 0:
            raise ValueError("token_ttl must be positive")
        return value

    @property
    def is_production(self) -> bool:
        return self.environment == "production"

    def ensure_startup_safe(self) -> None:
        """
        Refuse to start with unusable secrets.

        Raises ConfigError when the two signing secrets are identical, and in
        production when either secret is missing or still the dev fallback.
        """
        problems = []

        if self.is_production:
            if not self.user_jwt_secret:
                problems.append("AUTHGATE_USER_JWT_SECRET is required in production")
            elif self.user_jwt_secret == DEV_USER_JWT_SECRET:
                problems.append("AUTHGATE_USER_JWT_SECRET must not use the development default")
            if not self.admin_jwt_secret:
                problems.append("AUTHGATE_ADMIN_JWT_SECRET is required in production")
            elif self.admin_jwt_secret == DEV_ADMIN_JWT_SECRET:
                problems.append("AUTHGATE_ADMIN_JWT_SECRET must not use the development default")
        elif not self.user_jwt_secret or not self.admin_jwt_secret:
            problems.append("both AUTHGATE_USER_JWT_SECRET and AUTHGATE_ADMIN_JWT_SECRET must be set")

        if self.user_jwt_secret and self.user_jwt_secret == self.admin_jwt_secret:
            problems.append("user and admin JWT secrets must differ")

        if problems:
            raise ConfigError("; ".join(problems))


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
