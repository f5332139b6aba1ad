"""
authgate - Configuration Tests
Startup refuses unusable signing secrets.
"""

from datetime import timedelta

import pytest

from authgate.core.config import DEV_ADMIN_JWT_SECRET, DEV_USER_JWT_SECRET, Settings
from authgate.core.errors import ConfigError
from authgate.main import create_app


STRONG_USER = "prod-user-secret-aaaaaaaaaaaaaaaaaaaaaaaa"
STRONG_ADMIN = "prod-admin-secret-bbbbbbbbbbbbbbbbbbbbbbb"


def settings_for(**overrides) -> Settings:
    return Settings(_env_file=None, **overrides)


class TestProductionGuard:
    """Production refuses missing, default or shared secrets."""

    def test_dev_defaults_refused(self):
        with pytest.raises(ConfigError, match="development default"):
            settings_for(environment="production").ensure_startup_safe()

    def test_missing_secret_refused(self):
        settings = settings_for(environment="production", user_jwt_secret=None, admin_jwt_secret=STRONG_ADMIN)
        with pytest.raises(ConfigError, match="USER_JWT_SECRET is required"):
            settings.ensure_startup_safe()

    def test_identical_secrets_refused(self):
        settings = settings_for(environment="production", user_jwt_secret=STRONG_USER, admin_jwt_secret=STRONG_USER)
        with pytest.raises(ConfigError, match="must differ"):
            settings.ensure_startup_safe()

    def test_strong_distinct_secrets_accepted(self):
        settings_for(
            environment="production", user_jwt_secret=STRONG_USER, admin_jwt_secret=STRONG_ADMIN
        ).ensure_startup_safe()

    def test_create_app_refuses_to_start(self):
        with pytest.raises(ConfigError):
            create_app(settings_for(environment="production"))


class TestDevelopment:

    def test_dev_defaults_allowed(self):
        settings = settings_for(environment="development")
        assert settings.user_jwt_secret == DEV_USER_JWT_SECRET
        assert settings.admin_jwt_secret == DEV_ADMIN_JWT_SECRET
        settings.ensure_startup_safe()

    def test_identical_secrets_refused_everywhere(self):
        settings = settings_for(environment="development", user_jwt_secret=STRONG_USER, admin_jwt_secret=STRONG_USER)
        with pytest.raises(ConfigError):
            settings.ensure_startup_safe()

    def test_blank_secret_refused(self):
        with pytest.raises(ConfigError):
            settings_for(user_jwt_secret="").ensure_startup_safe()


def test_env_prefix(monkeypatch):
    monkeypatch.setenv("AUTHGATE_RATE_LIMIT_AUTH", "3/minute")
    monkeypatch.setenv("AUTHGATE_TOKEN_TTL", "PT1H")
    settings = settings_for()
    assert settings.rate_limit_auth == "3/minute"
    assert settings.token_ttl == timedelta(hours=1)


def test_default_ttl_is_five_days():
    assert settings_for().token_ttl == timedelta(days=5)


def test_non_positive_ttl_rejected():
    with pytest.raises(ValueError):
        settings_for(token_ttl=0)
