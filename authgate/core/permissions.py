"""
Permission Gate - role checks for admin routes.

    @router.post("/users", dependencies=[Depends(permit("admin"))])

Super-admins pass every gate. Anyone else passes when their role's name is
in the allow-list. An empty allow-list admits super-admins only; routes open
to every authenticated admin depend on resolve_admin directly instead.
"""

import logging
from typing import Iterable

from fastapi import Depends, Request

from authgate.core.errors import AuthorizationError
from authgate.core.identity import resolve_admin
from authgate.models.models import Admin

logger = logging.getLogger(__name__)


def is_permitted(admin: Admin, allowed_roles: Iterable[str]) -> bool:
    if admin.is_super:
        return True
    role_name = admin.role_name
    return role_name is not None and role_name in set(allowed_roles)


def permit(*roles: str):
    """
    Dependency factory: require a super-admin or one of the given role names.

    The 403 never says which roles would have been accepted.
    """
    allowed = frozenset(roles)

    async def check_permission(
        request: Request,
        admin: Admin = Depends(resolve_admin),
    ) -> Admin:
        if not is_permitted(admin, allowed):
            logger.warning(
                "Permission denied: admin=%s role=%s on %s %s",
                admin.id, admin.role_name, request.method, request.url.path,
            )
            raise AuthorizationError()
        return admin

    return check_permission
