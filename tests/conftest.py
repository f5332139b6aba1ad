"""
authgate - Shared test fixtures.

Each test gets its own SQLite database under tmp_path and an app built by
create_app() and started through its lifespan, so tables exist and the
default roles and accounts are seeded.
"""

import pytest
from httpx import AsyncClient, ASGITransport

from authgate.core.config import Settings
from authgate.main import create_app


USER_SECRET = "test-user-secret-0123456789abcdef01234"
ADMIN_SECRET = "test-admin-secret-0123456789abcdef0123"

SUPER_ADMIN = ("peanut", "Peanut!2021pass")
BASIC_ADMIN = ("ben_admin", "Ben!2021pass")
DEFAULT_USER = ("bird_user", "Bird!2021pass")


def make_settings(tmp_path, **overrides) -> Settings:
    values = {
        "environment": "test",
        "database_url": f"sqlite+aiosqlite:///{tmp_path / 'authgate.db'}",
        "user_jwt_secret": USER_SECRET,
        "admin_jwt_secret": ADMIN_SECRET,
        "log_level": "WARNING",
    }
    values.update(overrides)
    return Settings(_env_file=None, **values)


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture
def settings(tmp_path) -> Settings:
    return make_settings(tmp_path)


@pytest.fixture
async def app(settings):
    """Application with its lifespan running."""
    application = create_app(settings)
    async with application.router.lifespan_context(application):
        yield application


@pytest.fixture
async def client(app):
    """Create test client."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


async def login(client: AsyncClient, path: str, credentials: tuple[str, str]) -> str:
    username, password = credentials
    response = await client.post(path, json={"username": username, "password": password})
    assert response.status_code == 200, response.text
    return response.json()["data"]["token"]


async def admin_headers(client: AsyncClient, credentials: tuple[str, str] = SUPER_ADMIN) -> dict:
    token = await login(client, "/api/admin/users/login", credentials)
    return {"Authorization": f"Bearer {token}"}
