import os
import uuid

TEST_DB_URL = "sqlite://:memory:"
os.environ["DATABASE_URL"] = TEST_DB_URL
os.environ.setdefault("ENV", "development")
os.environ.setdefault("JWT_SECRET", "test-secret")

import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from tortoise import Tortoise

from forum.core import db as db_module
from forum.core.security import hash_password
from forum.main import app
from forum.models.category import Category
from forum.models.user import User

db_module.DB_URL = TEST_DB_URL
db_module.TORTOISE_ORM["connections"]["default"] = TEST_DB_URL


async def _init_test_db() -> None:
    """
    Initialize a clean in-memory SQLite database for every test.
    Ensures tables are recreated from scratch.
    """
    if Tortoise._inited:
        await Tortoise.close_connections()
    await db_module.init_db(create_schemas=True)


@pytest_asyncio.fixture
async def db():
    """Fresh schema for tests that talk to the ORM without HTTP."""
    await _init_test_db()
    yield
    await db_module.close_db()


@pytest_asyncio.fixture
async def client(db):
    """
    Provide an HTTPX AsyncClient bound to the FastAPI app with a fresh DB.
    Start-up hooks are not run; the fixtures create whatever rows a test needs.
    """
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://testserver") as async_client:
        yield async_client


@pytest_asyncio.fixture
async def create_admin(db):
    """
    Factory fixture to create admin users directly via ORM for privileged endpoints.
    """

    async def _create_admin(password: str = "AdminPass!23") -> tuple[User, str]:
        suffix = uuid.uuid4().hex[:6]
        user = await User.create(
            username=f"admin_{suffix}",
            email=f"admin_{suffix}@example.com",
            password_hash=hash_password(password),
            role="admin",
        )
        return user, password

    return _create_admin


@pytest_asyncio.fixture
async def create_user(db):
    """
    Factory fixture to create regular users directly.
    """

    async def _create_user(password: str = "UserPass!23", **fields) -> tuple[User, str]:
        suffix = uuid.uuid4().hex[:6]
        data = {
            "username": f"user_{suffix}",
            "email": f"user_{suffix}@example.com",
            "password_hash": hash_password(password),
            "role": "user",
        }
        data.update(fields)
        user = await User.create(**data)
        return user, password

    return _create_user


@pytest_asyncio.fixture
async def create_category(db):
    """Factory fixture for categories (slug derived from the name)."""

    async def _create_category(name: str | None = None, **fields) -> Category:
        name = name or f"Category {uuid.uuid4().hex[:6]}"
        slug = name.lower().replace(" ", "-")
        return await Category.create(name=name, slug=slug, **fields)

    return _create_category


@pytest_asyncio.fixture
async def auth_header_factory(client):
    """
    Helper fixture to obtain Authorization headers via the login endpoint.
    """

    async def _get_headers(user: User, password: str) -> dict[str, str]:
        resp = await client.post(
            "/api/v1/auth/login",
            json={"email": user.email, "password": password},
        )
        assert resp.status_code == 200, resp.text
        token = resp.json()["token"]
        return {"Authorization": f"Bearer {token}"}

    return _get_headers
