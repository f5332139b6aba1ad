"""
Principal variants.

Users and admins live in separate namespaces, sign their tokens with
separate secrets and resolve into separate request-context slots.
"""

from enum import Enum


class PrincipalVariant(str, Enum):
    """The two classes of authenticated identity."""
    USER = "user"
    ADMIN = "admin"
