"""
Identity Resolver - turns a bearer token into a loaded principal.

One IdentityResolver class, instantiated once per principal variant. Use the
instances as FastAPI dependencies:

    @router.get("/me")
    async def me(user: User = Depends(resolve_user)):
        ...

Every failure is a 401 with WWW-Authenticate: Bearer, raised before the
handler runs. The token issuer for each variant is read from
app.state.token_issuers, which create_app() fills from settings.
"""

import logging
from typing import Awaitable, Callable, Optional

from fastapi import Depends, Request
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from authgate.core.database import get_db
from authgate.core.errors import AuthenticationError, InternalError
from authgate.core.principal import PrincipalVariant
from authgate.core.tokens import TokenIssuer
from authgate.services.principal_store import Principal, find_principal_by_id

logger = logging.getLogger(__name__)


MISSING_HEADER = "Authorization header must be provided"
MALFORMED_HEADER = "Authorization token must be 'Bearer [token]'"
INVALID_TOKEN = "Invalid/Expired token"

PrincipalLookup = Callable[[AsyncSession, PrincipalVariant, int], Awaitable[Optional[Principal]]]


def parse_bearer(header: str) -> Optional[str]:
    """Token from 'Bearer <token>' (scheme case-insensitive), else None."""
    scheme, _, token = header.strip().partition(" ")
    token = token.strip()
    if scheme.lower() != "bearer" or not token or " " in token:
        return None
    return token


class IdentityResolver:
    """Resolve the principal of one variant from the Authorization header."""

    def __init__(
        self,
        variant: PrincipalVariant,
        context_slot: str,
        lookup: PrincipalLookup = find_principal_by_id,
    ):
        self.variant = variant
        self.context_slot = context_slot
        self.lookup = lookup
        self.not_found_message = f"No such {variant.value}"

    def _issuer(self, request: Request) -> TokenIssuer:
        return request.app.state.token_issuers[self.variant]

    async def __call__(self, request: Request, db: AsyncSession = Depends(get_db)) -> Principal:
        header = request.headers.get("Authorization")
        if header is None:
            raise AuthenticationError(MISSING_HEADER)

        token = parse_bearer(header)
        if token is None:
            raise AuthenticationError(MALFORMED_HEADER)

        claims = self._issuer(request).validate(token)
        if claims is None:
            raise AuthenticationError(INVALID_TOKEN)

        try:
            principal = await self.lookup(db, self.variant, claims.principal_id)
        except SQLAlchemyError as e:
            logger.error("%s lookup failed for id=%s: %s", self.variant.value, claims.principal_id, e)
            raise InternalError() from e

        if principal is None:
            logger.info("Token for vanished %s id=%s", self.variant.value, claims.principal_id)
            raise AuthenticationError(self.not_found_message)

        setattr(request.state, self.context_slot, principal)
        return principal


resolve_user = IdentityResolver(PrincipalVariant.USER, context_slot="current_user")
resolve_admin = IdentityResolver(PrincipalVariant.ADMIN, context_slot="current_admin")
