"""
authgate - Identity Resolver Tests
Every credential failure is a 401 with WWW-Authenticate: Bearer; a storage
failure during the lookup is a sanitized 500.
"""

import pytest
from fastapi import Depends
from httpx import AsyncClient, ASGITransport
from sqlalchemy.exc import OperationalError

from authgate.core.database import get_db_session
from authgate.core.identity import IdentityResolver, parse_bearer
from authgate.core.principal import PrincipalVariant
from authgate.main import create_app
from authgate.models.models import User
from tests.conftest import DEFAULT_USER, SUPER_ADMIN, admin_headers, login, make_settings


# =============================================================================
# Header Parsing
# =============================================================================

@pytest.mark.parametrize(
    "header, expected",
    [
        ("Bearer abc.def.ghi", "abc.def.ghi"),
        ("bearer abc", "abc"),
        ("Bearer   abc  ", "abc"),
        ("Bearer", None),
        ("Bearer ", None),
        ("Token abc", None),
        ("abc", None),
        ("Bearer a b", None),
    ],
)
def test_parse_bearer(header, expected):
    assert parse_bearer(header) == expected


# =============================================================================
# Resolver Failures
# =============================================================================

async def assert_unauthenticated(response, message: str) -> None:
    assert response.status_code == 401
    assert response.json() == {"success": False, "message": message}
    assert response.headers["WWW-Authenticate"] == "Bearer"


@pytest.mark.anyio
async def test_missing_header(client: AsyncClient):
    response = await client.get("/api/users/me")
    await assert_unauthenticated(response, "Authorization header must be provided")


@pytest.mark.anyio
@pytest.mark.parametrize("header", ["Token abc", "Bearer", "Basic dXNlcjpwYXNz"])
async def test_malformed_header(client: AsyncClient, header):
    response = await client.get("/api/users/me", headers={"Authorization": header})
    await assert_unauthenticated(response, "Authorization token must be 'Bearer [token]'")


@pytest.mark.anyio
async def test_invalid_token(client: AsyncClient):
    response = await client.get("/api/users/me", headers={"Authorization": "Bearer not.a.token"})
    await assert_unauthenticated(response, "Invalid/Expired token")


@pytest.mark.anyio
async def test_admin_token_rejected_on_user_route(client: AsyncClient):
    headers = await admin_headers(client, SUPER_ADMIN)
    response = await client.get("/api/users/me", headers=headers)
    await assert_unauthenticated(response, "Invalid/Expired token")


@pytest.mark.anyio
async def test_user_token_rejected_on_admin_route(client: AsyncClient):
    token = await login(client, "/api/users/login", DEFAULT_USER)
    response = await client.get("/api/admin/users/me", headers={"Authorization": f"Bearer {token}"})
    await assert_unauthenticated(response, "Invalid/Expired token")


@pytest.mark.anyio
async def test_vanished_principal(app, client: AsyncClient):
    token = await login(client, "/api/users/login", DEFAULT_USER)
    claims = app.state.token_issuers[PrincipalVariant.USER].validate(token)

    async with get_db_session() as db:
        await db.delete(await db.get(User, claims.principal_id))

    response = await client.get("/api/users/me", headers={"Authorization": f"Bearer {token}"})
    await assert_unauthenticated(response, "No such user")


# =============================================================================
# Resolver Success
# =============================================================================

@pytest.mark.anyio
async def test_user_me(client: AsyncClient):
    token = await login(client, "/api/users/login", DEFAULT_USER)
    response = await client.get("/api/users/me", headers={"Authorization": f"Bearer {token}"})
    assert response.status_code == 200
    user = response.json()["data"]["user"]
    assert user["username"] == DEFAULT_USER[0]
    assert "password" not in response.text
    assert "password_hash" not in user


@pytest.mark.anyio
async def test_admin_me(client: AsyncClient):
    response = await client.get("/api/admin/users/me", headers=await admin_headers(client, SUPER_ADMIN))
    assert response.status_code == 200
    admin = response.json()["data"]["admin"]
    assert admin["username"] == SUPER_ADMIN[0]
    assert admin["is_super"] is True
    assert "password" not in response.text


# =============================================================================
# Storage Failure
# =============================================================================

@pytest.mark.anyio
async def test_lookup_failure_is_sanitized_500(tmp_path):
    calls = []

    async def failing_lookup(db, variant, principal_id):
        calls.append(principal_id)
        raise OperationalError("SELECT users", {}, Exception("database is locked"))

    broken_resolver = IdentityResolver(PrincipalVariant.USER, "current_user", lookup=failing_lookup)
    app = create_app(make_settings(tmp_path))

    @app.get("/api/users/me-unavailable")
    async def me_unavailable(user: User = Depends(broken_resolver)):
        return {"success": True}

    async with app.router.lifespan_context(app):
        async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
            token = await login(client, "/api/users/login", DEFAULT_USER)
            response = await client.get(
                "/api/users/me-unavailable", headers={"Authorization": f"Bearer {token}"}
            )

    assert response.status_code == 500
    assert response.json() == {"success": False, "message": "Internal server error"}
    assert "database is locked" not in response.text
    # Surfaced at once, never retried.
    assert len(calls) == 1
