"""
Bearer token issuing and validation (HS256 JWT via PyJWT).

Each principal variant gets its own TokenIssuer with its own secret, and the
variant name is also written to the "aud" claim, so a user token never
validates as an admin token and vice versa.

validate() fails closed with a single outcome (None) for every kind of
failure. Only the DEBUG log says whether the token was expired, forged or
malformed.
"""

import logging
import time
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional

import jwt

from authgate.core.constants import DEFAULT_TOKEN_TTL, TOKEN_ALGORITHM

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TokenClaims:
    """Identity carried by a valid token."""
    principal_id: int
    username: str
    expires_at: datetime


class TokenIssuer:
    """Mints and verifies time-bound tokens for one principal variant."""

    def __init__(
        self,
        secret: str,
        audience: str,
        ttl: timedelta = DEFAULT_TOKEN_TTL,
        clock: Callable[[], float] = time.time,
    ):
        if not secret:
            raise ValueError("jwt_secret_blank")
        if ttl.total_seconds() <= 0:
            raise ValueError("token_ttl_not_positive")
        self._secret = secret
        self.audience = audience
        self.ttl = ttl
        self._clock = clock

    def issue(self, principal_id: int, username: str) -> str:
        now = int(self._clock())
        payload = {
            "sub": str(principal_id),
            "username": username,
            "aud": self.audience,
            "iat": now,
            "exp": now + int(self.ttl.total_seconds()),
        }
        return jwt.encode(payload, self._secret, algorithm=TOKEN_ALGORITHM)

    def validate(self, token: str) -> Optional[TokenClaims]:
        """Return the token's claims, or None if it is invalid for any reason."""
        if not token:
            return None

        try:
            payload = jwt.decode(
                token,
                self._secret,
                algorithms=[TOKEN_ALGORITHM],
                audience=self.audience,
                # Time checks run against self._clock below.
                options={
                    "verify_exp": False,
                    "verify_iat": False,
                    "require": ["sub", "exp", "iat", "aud"],
                },
            )
        except jwt.InvalidSignatureError:
            logger.debug("Token rejected (%s): bad signature", self.audience)
            return None
        except jwt.InvalidAudienceError:
            logger.debug("Token rejected (%s): wrong audience", self.audience)
            return None
        except jwt.InvalidTokenError as e:
            logger.debug("Token rejected (%s): malformed (%s)", self.audience, type(e).__name__)
            return None

        exp = payload.get("exp")
        if not isinstance(exp, (int, float)):
            logger.debug("Token rejected (%s): non-numeric exp", self.audience)
            return None
        if exp <= self._clock():
            logger.debug("Token rejected (%s): expired", self.audience)
            return None

        username = payload.get("username")
        try:
            principal_id = int(payload["sub"])
        except (TypeError, ValueError):
            logger.debug("Token rejected (%s): non-integer sub", self.audience)
            return None
        if not isinstance(username, str) or not username:
            logger.debug("Token rejected (%s): missing username", self.audience)
            return None

        return TokenClaims(
            principal_id=principal_id,
            username=username,
            expires_at=datetime.fromtimestamp(exp, tz=timezone.utc),
        )
