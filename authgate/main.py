"""
authgate - FastAPI application.

Access-control layer: user and admin authentication with separate token
secrets, role-gated admin routes and tiered rate limiting.

Request pipeline (outermost first):
    RequestLoggingMiddleware -> RateLimitMiddleware (general tier) -> router
    -> route tier / identity resolver / permission gate dependencies -> handler
"""

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI

from authgate.core.config import Settings, get_settings
from authgate.core.database import close_db, configure_database, get_db_session, init_db
from authgate.core.errors import setup_exception_handlers
from authgate.core.logging_config import setup_logging
from authgate.core.logging_middleware import RequestLoggingMiddleware
from authgate.core.principal import PrincipalVariant
from authgate.core.rate_limit import RateLimiter, RateLimitMiddleware
from authgate.core.tokens import TokenIssuer
from authgate.routers import admin_users, health, roles, users
from authgate.services.accounts import seed_defaults

logger = logging.getLogger(__name__)


def build_token_issuers(settings: Settings) -> dict[PrincipalVariant, TokenIssuer]:
    """One issuer per variant, each with its own secret and the shared ttl."""
    return {
        PrincipalVariant.USER: TokenIssuer(
            settings.user_jwt_secret, audience=PrincipalVariant.USER.value, ttl=settings.token_ttl
        ),
        PrincipalVariant.ADMIN: TokenIssuer(
            settings.admin_jwt_secret, audience=PrincipalVariant.ADMIN.value, ttl=settings.token_ttl
        ),
    }


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """
    Build the application.

    Raises ConfigError before anything is wired up if the signing secrets
    are unusable.
    """
    settings = settings or get_settings()
    settings.ensure_startup_safe()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        setup_logging(settings.log_level, json_format=settings.log_json, log_file=settings.log_file)
        logger.info("Starting %s v%s (%s)", settings.app_name, settings.app_version, settings.environment)

        configure_database(settings.database_url, echo=False)
        await init_db()

        if settings.seed_defaults:
            if settings.is_production:
                logger.warning("Seeding default accounts in production; change their passwords")
            async with get_db_session() as db:
                await seed_defaults(db, settings)

        if not settings.rate_limit_enabled:
            logger.warning("Rate limiting is disabled")

        try:
            yield
        finally:
            await close_db()
            logger.info("Shutdown complete")

    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        lifespan=lifespan,
    )

    app.state.settings = settings
    app.state.token_issuers = build_token_issuers(settings)
    app.state.rate_limiter = RateLimiter.from_settings(settings)

    # Added in reverse: the last middleware added runs first.
    app.add_middleware(RateLimitMiddleware)
    app.add_middleware(RequestLoggingMiddleware, trust_proxy_headers=settings.trust_proxy_headers)

    setup_exception_handlers(app)

    app.include_router(health.router, tags=["Health"])
    app.include_router(users.router, prefix="/api/users", tags=["Users"])
    app.include_router(admin_users.router, prefix="/api/admin/users", tags=["Admin Users"])
    app.include_router(roles.router, prefix="/api/admin/roles", tags=["Admin Roles"])

    return app
