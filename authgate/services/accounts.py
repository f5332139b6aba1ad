"""
Account operations: registration, login, admin and role management, seeding.

Each operation validates its input first (every field error in one
ValidationError), checks uniqueness up front for field-specific messages and
relies on save_principal / save_role to catch races at the constraint level.
bcrypt work runs in the threadpool.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession
from starlette.concurrency import run_in_threadpool

from authgate.core.config import Settings
from authgate.core.errors import ConflictError, InvalidCredentialsError, NotFoundError
from authgate.core.passwords import burn_verification_time, hash_password, verify_password
from authgate.core.principal import PrincipalVariant
from authgate.core.tokens import TokenIssuer
from authgate.core.validation import (
    validate_admin_input,
    validate_login_input,
    validate_register_input,
    validate_role_input,
)
from authgate.models.models import Admin, Role, User
from authgate.services.principal_store import (
    Principal,
    find_principal_by_email,
    find_principal_by_handle,
    find_principal_by_id,
    find_role_by_id,
    find_role_by_name,
    save_principal,
    save_role,
)

logger = logging.getLogger(__name__)


DEFAULT_ROLES = (
    ("admin", "Administrator"),
    ("basic", "Basic"),
    ("common", "Common"),
)


@dataclass(frozen=True)
class AuthResult:
    """What login and registration hand back to the client."""
    id: int
    username: str
    token: str


# =============================================================================
# Users
# =============================================================================

async def register_user(
    db: AsyncSession,
    issuer: TokenIssuer,
    username: Optional[str],
    password: Optional[str],
    confirm_password: Optional[str],
    email: Optional[str],
) -> AuthResult:
    validate_register_input(username, password, confirm_password, email).raise_for_errors(
        "User register input error"
    )
    username = username.strip()
    email = email.strip()

    if await find_principal_by_handle(db, PrincipalVariant.USER, username) is not None:
        raise ConflictError("Username is taken", errors={"username": "Username is taken"})
    if await find_principal_by_email(db, email) is not None:
        raise ConflictError("Email is taken", errors={"email": "Email is taken"})

    password_hash = await run_in_threadpool(hash_password, password)
    user = await save_principal(db, User(username=username, email=email, password_hash=password_hash))

    logger.info("User registered: id=%s username=%s", user.id, user.username)
    return AuthResult(id=user.id, username=user.username, token=issuer.issue(user.id, user.username))


async def _authenticate(
    db: AsyncSession,
    variant: PrincipalVariant,
    username: Optional[str],
    password: Optional[str],
) -> Principal:
    validate_login_input(username, password).raise_for_errors("Login input error")

    principal = await find_principal_by_handle(db, variant, username.strip())
    if principal is None:
        await run_in_threadpool(burn_verification_time, password)
        logger.warning("Failed %s login for %r: unknown username", variant.value, username)
        raise InvalidCredentialsError()

    if not await run_in_threadpool(verify_password, password, principal.password_hash):
        logger.warning("Failed %s login for %r: wrong password", variant.value, username)
        raise InvalidCredentialsError()

    return principal


async def login_user(
    db: AsyncSession, issuer: TokenIssuer, username: Optional[str], password: Optional[str]
) -> AuthResult:
    user = await _authenticate(db, PrincipalVariant.USER, username, password)
    logger.info("User logged in: id=%s", user.id)
    return AuthResult(id=user.id, username=user.username, token=issuer.issue(user.id, user.username))


# =============================================================================
# Admins
# =============================================================================

async def login_admin(
    db: AsyncSession, issuer: TokenIssuer, username: Optional[str], password: Optional[str]
) -> AuthResult:
    admin = await _authenticate(db, PrincipalVariant.ADMIN, username, password)
    logger.info("Admin logged in: id=%s", admin.id)
    return AuthResult(id=admin.id, username=admin.username, token=issuer.issue(admin.id, admin.username))


async def _require_role(db: AsyncSession, role_id: int) -> Role:
    role = await find_role_by_id(db, role_id)
    if role is None:
        raise NotFoundError("Role")
    return role


async def _require_admin(db: AsyncSession, admin_id: int) -> Admin:
    admin = await find_principal_by_id(db, PrincipalVariant.ADMIN, admin_id)
    if admin is None:
        raise NotFoundError("Admin")
    return admin


async def create_admin(
    db: AsyncSession,
    username: Optional[str],
    password: Optional[str],
    is_super: bool = False,
    role_id: Optional[int] = None,
) -> Admin:
    validate_admin_input(username, password).raise_for_errors("Admin input error")
    username = username.strip()

    role = await _require_role(db, role_id) if role_id is not None else None
    if await find_principal_by_handle(db, PrincipalVariant.ADMIN, username) is not None:
        raise ConflictError("Username is taken", errors={"username": "Username is taken"})

    password_hash = await run_in_threadpool(hash_password, password)
    admin = await save_principal(
        db, Admin(username=username, password_hash=password_hash, is_super=is_super, role=role)
    )
    logger.info("Admin created: id=%s username=%s super=%s", admin.id, admin.username, admin.is_super)
    return admin


async def update_admin(
    db: AsyncSession,
    admin_id: int,
    username: Optional[str],
    password: Optional[str],
    is_super: Optional[bool] = None,
    role_id: Optional[int] = None,
    clear_role: bool = False,
) -> Admin:
    """
    Replace an admin's credentials.

    is_super and the role change only when given; role_id=None means
    "unchanged", so removing the role takes clear_role=True.
    """
    validate_admin_input(username, password).raise_for_errors("Admin input error")
    username = username.strip()

    admin = await _require_admin(db, admin_id)
    role = await _require_role(db, role_id) if role_id is not None else None

    if username != admin.username:
        existing = await find_principal_by_handle(db, PrincipalVariant.ADMIN, username)
        if existing is not None:
            raise ConflictError("Username is taken", errors={"username": "Username is taken"})

    admin.username = username
    admin.password_hash = await run_in_threadpool(hash_password, password)
    if is_super is not None:
        admin.is_super = is_super
    if role is not None:
        admin.role = role
    elif clear_role:
        admin.role = None

    admin = await save_principal(db, admin)
    logger.info("Admin updated: id=%s", admin.id)
    return admin


async def assign_role(db: AsyncSession, admin_id: int, role_id: int) -> Admin:
    admin = await _require_admin(db, admin_id)
    role = await _require_role(db, role_id)
    admin.role = role
    admin = await save_principal(db, admin)
    logger.info("Role %s assigned to admin %s", role.name, admin.id)
    return admin


# =============================================================================
# Roles
# =============================================================================

async def create_role(db: AsyncSession, name: Optional[str], display_name: Optional[str] = None) -> Role:
    validate_role_input(name).raise_for_errors("Role input error")
    name = name.strip()
    if await find_role_by_name(db, name) is not None:
        raise ConflictError("Role name is taken", errors={"name": "Role name is taken"})
    role = await save_role(db, Role(name=name, display_name=display_name))
    logger.info("Role created: id=%s name=%s", role.id, role.name)
    return role


async def update_role(
    db: AsyncSession, role_id: int, name: Optional[str], display_name: Optional[str] = None
) -> Role:
    validate_role_input(name).raise_for_errors("Role input error")
    name = name.strip()

    role = await _require_role(db, role_id)
    if name != role.name and await find_role_by_name(db, name) is not None:
        raise ConflictError("Role name is taken", errors={"name": "Role name is taken"})

    role.name = name
    role.display_name = display_name
    role = await save_role(db, role)
    logger.info("Role updated: id=%s name=%s", role.id, role.name)
    return role


# =============================================================================
# Seeding
# =============================================================================

async def seed_defaults(db: AsyncSession, settings: Settings) -> None:
    """Create the default roles and accounts that are missing. Idempotent."""
    roles: dict[str, Role] = {}
    for name, display_name in DEFAULT_ROLES:
        role = await find_role_by_name(db, name)
        if role is None:
            role = await save_role(db, Role(name=name, display_name=display_name))
            logger.info("Seeded role: %s", name)
        roles[name] = role

    if await find_principal_by_handle(db, PrincipalVariant.USER, settings.default_user_username) is None:
        await save_principal(
            db,
            User(
                username=settings.default_user_username,
                email=settings.default_user_email,
                password_hash=await run_in_threadpool(hash_password, settings.default_user_password),
            ),
        )
        logger.info("Seeded default user: %s", settings.default_user_username)

    seeded_admins = (
        (settings.super_admin_username, settings.super_admin_password, True, None),
        (settings.basic_admin_username, settings.basic_admin_password, False, roles["basic"]),
    )
    for username, password, is_super, role in seeded_admins:
        if await find_principal_by_handle(db, PrincipalVariant.ADMIN, username) is not None:
            continue
        await save_principal(
            db,
            Admin(
                username=username,
                password_hash=await run_in_threadpool(hash_password, password),
                is_super=is_super,
                role=role,
            ),
        )
        logger.info("Seeded admin: %s (super=%s)", username, is_super)
