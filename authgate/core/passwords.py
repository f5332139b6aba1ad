"""
Password hashing and verification (bcrypt).

All hashes are created with BCRYPT_ROUNDS, so a digest produced by any
creation path (registration, admin creation, seeding) verifies the same way.
"""

import logging
from functools import lru_cache

import bcrypt

from authgate.core.constants import BCRYPT_ROUNDS

logger = logging.getLogger(__name__)


def hash_password(password: str) -> str:
    """Hash a password using bcrypt at the fixed cost factor."""
    if not password:
        raise ValueError("password_blank")
    salt = bcrypt.gensalt(rounds=BCRYPT_ROUNDS)
    return bcrypt.hashpw(password.encode("utf-8"), salt).decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    """
    Verify a password against its hash.

    bcrypt.checkpw compares in constant time. A malformed or empty digest
    returns False instead of raising.
    """
    if not password or not password_hash:
        return False
    try:
        return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
    except (ValueError, TypeError) as e:
        logger.debug("Password verification rejected digest: %s", type(e).__name__)
        return False


@lru_cache(maxsize=1)
def _dummy_hash() -> str:
    return hash_password("authgate-dummy-password")


def burn_verification_time(password: str) -> None:
    """
    Spend one bcrypt verification on a throwaway digest.

    Login calls this when the handle is unknown so both failure paths cost
    the same.
    """
    verify_password(password or "x", _dummy_hash())
