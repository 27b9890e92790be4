"""Endpoint tests for the admin API: envelopes, auth failures, status codes.

Storage is replaced through FastAPI dependency overrides, so these run without
PostgreSQL or Redis.
"""

import uuid
from datetime import UTC, datetime
from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock

import pytest
from httpx import ASGITransport, AsyncClient

from src.main import app
from src.tp_admin.api.router import get_admin_service
from src.tp_admin.application.service import AdminService
from src.tp_admin.domain.models import AdminPrincipal
from src.tp_common.database import get_db_session
from src.tp_gateway.auth.dependencies import get_admin_directory, require_admin
from src.tp_gateway.auth.jwt_handler import create_access_token
from src.tp_portfolio.domain.models import BalanceSnapshot, PortfolioBalance

URL = "/api/v1/admin/balance-update"
ADMIN = AdminPrincipal(
    admin_id=str(uuid.uuid4()), user_id=str(uuid.uuid4()), email="ops@example.com", role="admin"
)


def _stored(user_id: str, snap: BalanceSnapshot) -> PortfolioBalance:
    return PortfolioBalance(
        user_id=user_id,
        cash_balance=snap.cash_balance,
        invested_amount=snap.invested_amount,
        free_margin=snap.free_margin,
        total_value=snap.total_value,
        version=1,
        updated_at=datetime.now(UTC),
    )


@pytest.fixture
def portfolio_repo() -> AsyncMock:
    repo = AsyncMock()
    current = PortfolioBalance(
        user_id="user-1",
        cash_balance=Decimal("100"),
        invested_amount=Decimal("0"),
        free_margin=Decimal("0"),
        total_value=Decimal("100"),
    )
    repo.lock_balance.return_value = (current, False)
    repo.upsert_balance.side_effect = lambda db, user_id, snap: _stored(user_id, snap)
    return repo


@pytest.fixture
def audit_sink() -> MagicMock:
    return MagicMock()


@pytest.fixture
def db() -> AsyncMock:
    return AsyncMock()


@pytest.fixture
def wired(portfolio_repo: AsyncMock, audit_sink: MagicMock, db: AsyncMock) -> None:
    service = AdminService(
        audit_sink=audit_sink,
        portfolio_repo=portfolio_repo,
        audit_repo=AsyncMock(),
        publisher=AsyncMock(),
    )

    async def _db_override():  # type: ignore[no-untyped-def]
        yield db

    app.dependency_overrides[get_admin_service] = lambda: service
    app.dependency_overrides[get_db_session] = _db_override


@pytest.fixture
def as_admin(wired: None) -> None:
    app.dependency_overrides[require_admin] = lambda: ADMIN


def _body(**overrides: object) -> dict[str, object]:
    body: dict[str, object] = {
        "userId": "user-1",
        "cashBalance": 50,
        "mode": "delta",
        "reason": "bonus",
    }
    body.update(overrides)
    return body


class TestBalanceUpdateSuccess:
    async def test_delta_update(
        self, client: AsyncClient, as_admin: None, audit_sink: MagicMock
    ) -> None:
        resp = await client.post(URL, json=_body())

        assert resp.status_code == 200
        body = resp.json()
        assert body["success"] is True
        assert body["code"] == 0
        assert body["message"] == "Balance updated successfully"
        assert body["data"]["userId"] == "user-1"
        assert body["data"]["cashBalance"] == 150.0
        assert body["data"]["totalValue"] == 150.0
        assert body["request_id"].startswith("req_")
        assert "error" not in body
        audit_sink.submit.assert_called_once()

    async def test_inbound_request_id_echoed(self, client: AsyncClient, as_admin: None) -> None:
        resp = await client.post(URL, json=_body(), headers={"X-Request-ID": "console-12345678"})
        assert resp.headers["X-Request-ID"] == "console-12345678"
        assert resp.json()["request_id"] == "console-12345678"

    async def test_error_envelope_carries_request_id(
        self, client: AsyncClient, wired: None
    ) -> None:
        resp = await client.post(URL, json=_body())
        assert resp.status_code == 401
        assert resp.json()["request_id"] == resp.headers["X-Request-ID"]

    async def test_audit_failure_still_succeeds(
        self, client: AsyncClient, as_admin: None, audit_sink: MagicMock
    ) -> None:
        audit_sink.submit.side_effect = RuntimeError("audit down")
        resp = await client.post(URL, json=_body())
        assert resp.status_code == 200
        assert resp.json()["success"] is True


class TestBalanceUpdateRejections:
    async def test_validation_lists_violations(
        self, client: AsyncClient, as_admin: None, portfolio_repo: AsyncMock
    ) -> None:
        resp = await client.post(URL, json={"userId": "user-1", "mode": "bogus", "reason": " "})

        assert resp.status_code == 400
        body = resp.json()
        assert body["success"] is False
        assert body["error"] == "Validation failed"
        assert 'mode must be either "delta" or "absolute"' in body["details"]
        assert "reason is required and cannot be empty" in body["details"]
        portfolio_repo.lock_balance.assert_not_awaited()

    async def test_invalid_json(
        self, client: AsyncClient, as_admin: None, portfolio_repo: AsyncMock
    ) -> None:
        resp = await client.post(
            URL, content=b"{not json", headers={"Content-Type": "application/json"}
        )
        assert resp.status_code == 400
        assert resp.json()["error"] == "Invalid JSON in request body"
        portfolio_repo.lock_balance.assert_not_awaited()

    async def test_empty_body_is_validation_error(self, client: AsyncClient, as_admin: None) -> None:
        resp = await client.post(URL)
        assert resp.status_code == 400
        assert resp.json()["error"] == "Validation failed"

    async def test_computation_error(
        self, client: AsyncClient, as_admin: None, portfolio_repo: AsyncMock, db: AsyncMock
    ) -> None:
        resp = await client.post(URL, json=_body(cashBalance="abc"))
        assert resp.status_code == 500
        assert resp.json()["error"] == "Invalid numeric values in balance calculation"
        portfolio_repo.upsert_balance.assert_not_awaited()
        db.rollback.assert_awaited_once()

    async def test_method_not_allowed(self, client: AsyncClient) -> None:
        resp = await client.get(URL)
        assert resp.status_code == 405
        body = resp.json()
        assert body["success"] is False
        assert body["error"] == "Method not allowed"


class TestBalanceUpdateAuth:
    async def test_missing_header(self, client: AsyncClient, wired: None) -> None:
        resp = await client.post(URL, json=_body())
        assert resp.status_code == 401
        assert resp.json()["error"] == "Missing authorization header"

    async def test_invalid_token(self, client: AsyncClient, wired: None) -> None:
        resp = await client.post(URL, json=_body(), headers={"Authorization": "Bearer garbage"})
        assert resp.status_code == 401
        assert resp.json()["error"] == "Invalid token"

    async def test_non_admin_no_mutation(
        self,
        client: AsyncClient,
        wired: None,
        db: AsyncMock,
        portfolio_repo: AsyncMock,
    ) -> None:
        user = MagicMock(id=uuid.uuid4(), email="user@example.com", is_active=True)
        user_result = MagicMock()
        user_result.scalar_one_or_none.return_value = user
        db.execute.return_value = user_result
        directory = AsyncMock()
        directory.find_admin.return_value = None
        app.dependency_overrides[get_admin_directory] = lambda: directory
        token = create_access_token(str(user.id))

        resp = await client.post(URL, json=_body(), headers={"Authorization": f"Bearer {token}"})

        assert resp.status_code == 403
        assert resp.json()["error"] == "Access denied - admin privileges required"
        portfolio_repo.lock_balance.assert_not_awaited()
        portfolio_repo.upsert_balance.assert_not_awaited()


class TestReadEndpoints:
    async def test_user_balances(
        self, client: AsyncClient, as_admin: None, portfolio_repo: AsyncMock
    ) -> None:
        portfolio_repo.get_balance.return_value = None
        resp = await client.get("/api/v1/admin/users/user-9/balances")
        assert resp.status_code == 200
        data = resp.json()["data"]
        assert data["user_id"] == "user-9"
        assert data["exists"] is False

    async def test_audits_limit_out_of_range(self, client: AsyncClient, as_admin: None) -> None:
        resp = await client.get("/api/v1/admin/audits", params={"limit": 0})
        assert resp.status_code == 400
        assert resp.json()["error"] == "Validation failed"


class TestUnhandledError:
    async def test_generic_envelope(self, as_admin: None, portfolio_repo: AsyncMock) -> None:
        portfolio_repo.lock_balance.side_effect = KeyError("unexpected")
        transport = ASGITransport(app=app, raise_app_exceptions=False)
        async with AsyncClient(transport=transport, base_url="http://test") as ac:
            resp = await ac.post(URL, json=_body())
        app.dependency_overrides.clear()

        assert resp.status_code == 500
        body = resp.json()
        assert body["success"] is False
        assert body["error"] == "Internal server error"
