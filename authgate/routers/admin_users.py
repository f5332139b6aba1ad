"""
Admin Users Router
Admin login and profile, plus admin account management behind role gates.

    POST /login                  auth tier, public
    GET  /me                     any authenticated admin
    GET  /                       admin, basic, common
    POST /                       admin (strict tier)
    PUT  /{admin_id}             super-admins only (strict tier)
    POST /{admin_id}/role/{id}   admin (strict tier)
"""

from fastapi import APIRouter, Depends, Request
from pydantic import BaseModel, ConfigDict
from sqlalchemy.ext.asyncio import AsyncSession

from authgate.core.database import get_db
from authgate.core.identity import resolve_admin
from authgate.core.permissions import permit
from authgate.core.principal import PrincipalVariant
from authgate.core.rate_limit import TIER_AUTH, TIER_STRICT, rate_limit
from authgate.models.models import Admin
from authgate.routers.roles import RoleOut
from authgate.routers.users import LoginRequest, auth_payload
from authgate.services import accounts
from authgate.services.principal_store import list_admins


router = APIRouter()


# =============================================================================
# Schemas
# =============================================================================

class AdminCreateRequest(BaseModel):
    username: str | None = None
    password: str | None = None
    is_super: bool = False
    role_id: int | None = None


class AdminUpdateRequest(BaseModel):
    username: str | None = None
    password: str | None = None
    is_super: bool | None = None
    role_id: int | None = None


class AdminOut(BaseModel):
    """Public admin record. Never includes the password hash."""
    model_config = ConfigDict(from_attributes=True)

    id: int
    username: str
    is_super: bool
    role: RoleOut | None = None


def admin_json(admin: Admin) -> dict:
    return AdminOut.model_validate(admin).model_dump(mode="json")


# =============================================================================
# Endpoints
# =============================================================================

@router.post("/login", dependencies=[Depends(rate_limit(TIER_AUTH))])
async def login(
    body: LoginRequest,
    request: Request,
    db: AsyncSession = Depends(get_db),
):
    result = await accounts.login_admin(
        db,
        request.app.state.token_issuers[PrincipalVariant.ADMIN],
        body.username,
        body.password,
    )
    return auth_payload(result)


@router.get("/me")
async def me(admin: Admin = Depends(resolve_admin)):
    return {"success": True, "data": {"admin": admin_json(admin)}}


@router.get("", dependencies=[Depends(permit("admin", "basic", "common"))])
async def index(db: AsyncSession = Depends(get_db)):
    admins = await list_admins(db)
    return {"success": True, "data": {"admins": [admin_json(admin) for admin in admins]}}


@router.post("", dependencies=[Depends(rate_limit(TIER_STRICT)), Depends(permit("admin"))])
async def add_admin(body: AdminCreateRequest, db: AsyncSession = Depends(get_db)):
    admin = await accounts.create_admin(db, body.username, body.password, body.is_super, body.role_id)
    return {"success": True, "data": {"admin": admin_json(admin), "message": "created successfully"}}


@router.put("/{admin_id}", dependencies=[Depends(rate_limit(TIER_STRICT)), Depends(permit())])
async def update_admin(admin_id: int, body: AdminUpdateRequest, db: AsyncSession = Depends(get_db)):
    """
    Replace an admin's username and password. Super-admins only.

    is_super and role_id are left alone when omitted. An explicit
    "role_id": null removes the admin's role.
    """
    admin = await accounts.update_admin(
        db,
        admin_id,
        body.username,
        body.password,
        is_super=body.is_super,
        role_id=body.role_id,
        clear_role="role_id" in body.model_fields_set and body.role_id is None,
    )
    return {"success": True, "data": {"admin": admin_json(admin), "message": "updated successfully"}}


@router.post(
    "/{admin_id}/role/{role_id}",
    dependencies=[Depends(rate_limit(TIER_STRICT)), Depends(permit("admin"))],
)
async def assign_role(admin_id: int, role_id: int, db: AsyncSession = Depends(get_db)):
    admin = await accounts.assign_role(db, admin_id, role_id)
    return {"success": True, "data": {"admin": admin_json(admin)}}
