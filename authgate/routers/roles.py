"""
Admin Roles Router
List, create and update the role labels the permission gate checks against.
"""

from fastapi import APIRouter, Depends
from pydantic import BaseModel, ConfigDict
from sqlalchemy.ext.asyncio import AsyncSession

from authgate.core.database import get_db
from authgate.core.identity import resolve_admin
from authgate.core.permissions import permit
from authgate.core.rate_limit import TIER_STRICT, rate_limit
from authgate.services import accounts
from authgate.services.principal_store import list_roles


router = APIRouter()


class RoleRequest(BaseModel):
    name: str | None = None
    display_name: str | None = None


class RoleOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    display_name: str | None = None


def role_json(role) -> dict:
    return RoleOut.model_validate(role).model_dump(mode="json")


@router.get("", dependencies=[Depends(permit("admin", "basic"))])
async def index(db: AsyncSession = Depends(get_db)):
    roles = await list_roles(db)
    return {"success": True, "data": {"roles": [role_json(role) for role in roles]}}


@router.post("", dependencies=[Depends(rate_limit(TIER_STRICT)), Depends(permit("admin", "basic"))])
async def add_role(body: RoleRequest, db: AsyncSession = Depends(get_db)):
    role = await accounts.create_role(db, body.name, body.display_name)
    return {"success": True, "data": {"role": role_json(role), "message": "created successfully"}}


@router.put("/{role_id}", dependencies=[Depends(rate_limit(TIER_STRICT)), Depends(resolve_admin)])
async def update_role(role_id: int, body: RoleRequest, db: AsyncSession = Depends(get_db)):
    """Any authenticated admin may rename a role."""
    role = await accounts.update_role(db, role_id, body.name, body.display_name)
    return {"success": True, "data": {"role": role_json(role), "message": "updated successfully"}}
