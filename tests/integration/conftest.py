"""Integration-test fixtures.

All integration tests share a single event-loop so that the module-level
SQLAlchemy async engine pool, the Redis pool and the audit outbox worker
remain valid across the entire test session.
"""

import uuid

import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy import text

from src.main import app
from src.tp_admin.api.router import audit_outbox
from src.tp_common.database import async_session_factory
from src.tp_gateway.auth.jwt_handler import create_access_token


@pytest_asyncio.fixture(loop_scope="session", scope="session")
async def client() -> AsyncClient:  # type: ignore[override]
    """Session-scoped async HTTP client with the audit worker running.

    ASGITransport does not run the lifespan, so the outbox is started here.
    """
    await audit_outbox.start()
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
    await audit_outbox.stop()


async def _create_user(email: str, *, admin: bool, active: bool = True) -> str:
    async with async_session_factory() as db:
        result = await db.execute(
            text("INSERT INTO users (email, is_active) VALUES (:email, :active) RETURNING id"),
            {"email": email, "active": active},
        )
        user_id = str(result.scalar_one())
        if admin:
            await db.execute(
                text(
                    "INSERT INTO admin_users (user_id, email) "
                    "VALUES (CAST(:user_id AS UUID), :email)"
                ),
                {"user_id": user_id, "email": email},
            )
        await db.commit()
    return user_id


@pytest_asyncio.fixture(loop_scope="session", scope="session")
async def admin_headers() -> dict[str, str]:
    """Bearer header for a freshly provisioned admin."""
    user_id = await _create_user(f"admin_{uuid.uuid4().hex[:8]}@example.com", admin=True)
    return {"Authorization": f"Bearer {create_access_token(user_id)}"}


@pytest_asyncio.fixture(loop_scope="session", scope="session")
async def user_headers() -> dict[str, str]:
    """Bearer header for an ordinary (non-admin) user."""
    user_id = await _create_user(f"user_{uuid.uuid4().hex[:8]}@example.com", admin=False)
    return {"Authorization": f"Bearer {create_access_token(user_id)}"}
