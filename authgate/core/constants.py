"""
Shared constants for authgate.

Values that more than one module depends on live here so that creation and
verification paths can never disagree (hash cost, token lifetime, field bounds).
"""

from datetime import timedelta


# =============================================================================
# Password Hashing
# =============================================================================

# bcrypt cost factor. Every hashing call site reads this constant.
BCRYPT_ROUNDS = 10

# bcrypt only consumes the first 72 bytes of its input.
BCRYPT_MAX_PASSWORD_BYTES = 72


# =============================================================================
# Tokens
# =============================================================================

DEFAULT_TOKEN_TTL = timedelta(days=5)
TOKEN_ALGORITHM = "HS256"


# =============================================================================
# Input Bounds
# =============================================================================

USERNAME_MIN_LENGTH = 6
USERNAME_MAX_LENGTH = 30
EMAIL_MAX_LENGTH = 255
PASSWORD_MIN_LENGTH = 8
ROLE_NAME_MAX_LENGTH = 50


# =============================================================================
# Rate Limit Tiers (limits notation: "<amount>/<multiple> <granularity>")
# =============================================================================

RATE_GENERAL = "100/15 minutes"
RATE_AUTH = "5/15 minutes"
RATE_STRICT = "10/hour"
