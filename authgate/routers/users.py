"""
Users Router
Registration, login and profile for end users.

POST /register and /login are in the auth rate-limit tier: only failed
attempts count against it.
"""

from datetime import datetime

from fastapi import APIRouter, Depends, Request
from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy.ext.asyncio import AsyncSession

from authgate.core.database import get_db
from authgate.core.identity import resolve_user
from authgate.core.principal import PrincipalVariant
from authgate.core.rate_limit import TIER_AUTH, rate_limit
from authgate.models.models import User
from authgate.services import accounts


router = APIRouter()


# =============================================================================
# Schemas
# =============================================================================

class RegisterRequest(BaseModel):
    """Fields are optional here so missing ones are reported by the validators, all at once."""
    model_config = ConfigDict(populate_by_name=True)

    username: str | None = None
    password: str | None = None
    confirm_password: str | None = Field(default=None, alias="confirmPassword")
    email: str | None = None


class LoginRequest(BaseModel):
    username: str | None = None
    password: str | None = None


class UserOut(BaseModel):
    """Public user profile. Never includes the password hash."""
    model_config = ConfigDict(from_attributes=True)

    id: int
    username: str
    email: str
    created_at: datetime


def auth_payload(result: accounts.AuthResult) -> dict:
    return {
        "success": True,
        "data": {"id": result.id, "username": result.username, "token": result.token},
    }


# =============================================================================
# Endpoints
# =============================================================================

@router.post("/register", dependencies=[Depends(rate_limit(TIER_AUTH))])
async def register(
    body: RegisterRequest,
    request: Request,
    db: AsyncSession = Depends(get_db),
):
    """Create a user account and return a token for it."""
    result = await accounts.register_user(
        db,
        request.app.state.token_issuers[PrincipalVariant.USER],
        body.username,
        body.password,
        body.confirm_password,
        body.email,
    )
    return auth_payload(result)


@router.post("/login", dependencies=[Depends(rate_limit(TIER_AUTH))])
async def login(
    body: LoginRequest,
    request: Request,
    db: AsyncSession = Depends(get_db),
):
    result = await accounts.login_user(
        db,
        request.app.state.token_issuers[PrincipalVariant.USER],
        body.username,
        body.password,
    )
    return auth_payload(result)


@router.get("/me")
async def me(user: User = Depends(resolve_user)):
    """The user the bearer token belongs to."""
    return {"success": True, "data": {"user": UserOut.model_validate(user).model_dump(mode="json")}}
