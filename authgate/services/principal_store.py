"""
Principal Store - storage contract for users, admins and roles.

Thin async functions over an AsyncSession. Lookups return None when the row
is absent; save_principal / save_role translate unique-constraint violations
into ConflictError so callers never see SQLAlchemy exceptions for duplicates.
"""

import logging
from typing import Optional, Union

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from authgate.core.errors import ConflictError
from authgate.core.principal import PrincipalVariant
from authgate.models.models import Admin, Role, User

logger = logging.getLogger(__name__)

Principal = Union[User, Admin]

_MODELS = {
    PrincipalVariant.USER: User,
    PrincipalVariant.ADMIN: Admin,
}


def _model_for(variant: PrincipalVariant):
    return _MODELS[PrincipalVariant(variant)]


# =============================================================================
# Principals
# =============================================================================

async def find_principal_by_id(
    db: AsyncSession, variant: PrincipalVariant, principal_id: int
) -> Optional[Principal]:
    return await db.get(_model_for(variant), principal_id)


async def find_principal_by_handle(
    db: AsyncSession, variant: PrincipalVariant, handle: str
) -> Optional[Principal]:
    model = _model_for(variant)
    result = await db.execute(select(model).where(model.username == handle))
    return result.scalar_one_or_none()


async def find_principal_by_email(db: AsyncSession, email: str) -> Optional[User]:
    """Only users carry an email."""
    result = await db.execute(select(User).where(User.email == email))
    return result.scalar_one_or_none()


def _conflict_errors(principal: Principal, exc: IntegrityError) -> dict[str, str]:
    detail = str(exc.orig).lower()
    if "email" in detail:
        return {"email": "Email is taken"}
    if "username" in detail:
        return {"username": "Username is taken"}
    if isinstance(principal, User):
        return {"general": "Username or email is taken"}
    return {"username": "Username is taken"}


async def save_principal(db: AsyncSession, principal: Principal) -> Principal:
    """
    Insert or update a principal and commit.

    Raises ConflictError when the handle (or a user's email) is already used
    by another principal of the same variant.
    """
    db.add(principal)
    try:
        await db.commit()
    except IntegrityError as e:
        await db.rollback()
        errors = _conflict_errors(principal, e)
        logger.info("Principal save rejected as duplicate: %s", ", ".join(errors))
        raise ConflictError(next(iter(errors.values())), errors=errors) from e
    await db.refresh(principal)
    return principal


async def list_admins(db: AsyncSession) -> list[Admin]:
    result = await db.execute(select(Admin).order_by(Admin.id))
    return list(result.scalars().all())


# =============================================================================
# Roles
# =============================================================================

async def find_role_by_id(db: AsyncSession, role_id: int) -> Optional[Role]:
    return await db.get(Role, role_id)


async def find_role_by_name(db: AsyncSession, name: str) -> Optional[Role]:
    result = await db.execute(select(Role).where(Role.name == name))
    return result.scalar_one_or_none()


async def list_roles(db: AsyncSession) -> list[Role]:
    result = await db.execute(select(Role).order_by(Role.id))
    return list(result.scalars().all())


async def save_role(db: AsyncSession, role: Role) -> Role:
    """Insert or update a role and commit. Raises ConflictError on a duplicate name."""
    db.add(role)
    try:
        await db.commit()
    except IntegrityError as e:
        await db.rollback()
        logger.info("Role save rejected as duplicate name")
        raise ConflictError("Role name is taken", errors={"name": "Role name is taken"}) from e
    await db.refresh(role)
    return role
