"""Unit tests for AdminService.update_balance using mock collaborators."""

from datetime import UTC, datetime
from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock

import pytest
from sqlalchemy.exc import OperationalError

from src.tp_admin.application.service import AdminService
from src.tp_admin.domain.models import AdminPrincipal, AuditRecord
from src.tp_common.enums import AuditAction
from src.tp_common.errors import ComputationError, PayloadValidationError, StorageError
from src.tp_portfolio.domain.models import BalanceSnapshot, PortfolioBalance

ADMIN = AdminPrincipal(
    admin_id="9b2f3c1e-0000-4000-8000-000000000001",
    user_id="5d1e0a7c-0000-4000-8000-000000000002",
    email="ops@example.com",
    role="admin",
)


def _balance(
    cash: str = "0", invested: str = "0", free: str = "0", version: int = 0
) -> PortfolioBalance:
    c, i = Decimal(cash), Decimal(invested)
    return PortfolioBalance(
        user_id="user-1",
        cash_balance=c,
        invested_amount=i,
        free_margin=Decimal(free),
        total_value=c + i,
        version=version,
        updated_at=datetime.now(UTC),
    )


def _stored(user_id: str, snap: BalanceSnapshot, version: int = 1) -> PortfolioBalance:
    return PortfolioBalance(
        user_id=user_id,
        cash_balance=snap.cash_balance,
        invested_amount=snap.invested_amount,
        free_margin=snap.free_margin,
        total_value=snap.total_value,
        version=version,
        updated_at=datetime.now(UTC),
    )


def _make_service(
    current: PortfolioBalance | None = None, created: bool = False
) -> tuple[AdminService, AsyncMock, MagicMock, AsyncMock]:
    repo = AsyncMock()
    repo.lock_balance.return_value = (current or _balance(), created)
    repo.upsert_balance.side_effect = lambda db, user_id, snap: _stored(
        user_id, snap, (current.version + 1) if current else 1
    )
    sink = MagicMock()
    publisher = AsyncMock()
    svc = AdminService(
        audit_sink=sink, portfolio_repo=repo, audit_repo=AsyncMock(), publisher=publisher
    )
    return svc, repo, sink, publisher


def _payload(**overrides: object) -> dict[str, object]:
    body: dict[str, object] = {
        "userId": "user-1",
        "cashBalance": 50,
        "mode": "delta",
        "reason": "bonus",
    }
    body.update(overrides)
    return body


class TestUpdateBalanceSuccess:
    async def test_delta_scenario(self) -> None:
        svc, repo, _, _ = _make_service(_balance("100"))
        db = AsyncMock()

        result = await svc.update_balance(db, ADMIN, _payload())

        assert result.cash_balance == Decimal("150")
        assert result.invested_amount == Decimal("0")
        assert result.free_margin == Decimal("0")
        assert result.total_value == Decimal("150")
        repo.lock_balance.assert_awaited_once_with(db, "user-1")
        db.commit.assert_awaited_once()
        db.rollback.assert_not_awaited()

    async def test_absolute_seed_for_new_user(self) -> None:
        svc, _, sink, _ = _make_service(_balance(), created=True)
        db = AsyncMock()

        result = await svc.update_balance(
            db,
            ADMIN,
            _payload(
                mode="absolute", cashBalance=1000, investedAmount=0, freeMargin=0, reason="seed"
            ),
        )

        assert result.cash_balance == Decimal("1000")
        assert result.total_value == Decimal("1000")
        record: AuditRecord = sink.submit.call_args.args[0]
        assert record.meta["before"] is None

    async def test_audit_record_contents(self) -> None:
        svc, _, sink, _ = _make_service(_balance("100", version=3))
        await svc.update_balance(AsyncMock(), ADMIN, _payload(reason="  bonus  "))

        sink.submit.assert_called_once()
        record: AuditRecord = sink.submit.call_args.args[0]
        assert record.admin_user_id == ADMIN.admin_id
        assert record.action is AuditAction.BALANCE_UPDATE
        assert record.target_table == "portfolio_balances"
        assert record.target_id == "user-1"
        assert record.meta["reason"] == "bonus"
        assert record.meta["mode"] == "delta"
        assert record.meta["updates"] == {"cashBalance": 50}
        assert record.meta["before"]["cash_balance"] == "100"
        assert record.meta["before"]["version"] == 3
        assert record.meta["after"]["version"] == 4
        assert record.created_at is not None

    async def test_publishes_new_balance(self) -> None:
        svc, _, _, publisher = _make_service(_balance("100"))
        result = await svc.update_balance(AsyncMock(), ADMIN, _payload())
        publisher.publish.assert_awaited_once_with(result)


class TestAuditFailure:
    async def test_audit_sink_failure_does_not_fail_update(self) -> None:
        svc, _, sink, _ = _make_service(_balance("100"))
        sink.submit.side_effect = RuntimeError("queue gone")
        db = AsyncMock()

        result = await svc.update_balance(db, ADMIN, _payload())

        assert result.cash_balance == Decimal("150")
        db.commit.assert_awaited_once()


class TestValidationFailure:
    async def test_no_storage_access(self) -> None:
        svc, repo, sink, publisher = _make_service()
        db = AsyncMock()

        with pytest.raises(PayloadValidationError):
            await svc.update_balance(db, ADMIN, _payload(mode="bogus"))

        repo.lock_balance.assert_not_awaited()
        db.execute.assert_not_awaited()
        sink.submit.assert_not_called()
        publisher.publish.assert_not_awaited()

    async def test_missing_fields_no_storage_access(self) -> None:
        svc, repo, _, _ = _make_service()
        body = _payload()
        del body["cashBalance"]
        with pytest.raises(PayloadValidationError):
            await svc.update_balance(AsyncMock(), ADMIN, body)
        repo.lock_balance.assert_not_awaited()


class TestComputationFailure:
    async def test_no_write_performed(self) -> None:
        svc, repo, sink, publisher = _make_service(_balance("100"))
        db = AsyncMock()

        with pytest.raises(ComputationError):
            await svc.update_balance(db, ADMIN, _payload(cashBalance="abc"))

        repo.upsert_balance.assert_not_awaited()
        db.commit.assert_not_awaited()
        db.rollback.assert_awaited_once()
        sink.submit.assert_not_called()
        publisher.publish.assert_not_awaited()


class TestStorageFailure:
    async def test_read_failure(self) -> None:
        svc, repo, sink, _ = _make_service()
        repo.lock_balance.side_effect = OperationalError(
            "SELECT", {}, Exception("connection refused")
        )
        db = AsyncMock()

        with pytest.raises(StorageError) as exc_info:
            await svc.update_balance(db, ADMIN, _payload())

        assert exc_info.value.message == "Failed to fetch current balances"
        assert exc_info.value.details == ["connection refused"]
        assert exc_info.value.http_status == 500
        repo.upsert_balance.assert_not_awaited()
        db.rollback.assert_awaited_once()
        sink.submit.assert_not_called()

    async def test_write_failure(self) -> None:
        svc, repo, sink, publisher = _make_service(_balance("100"))
        repo.upsert_balance.side_effect = OperationalError(
            "INSERT", {}, Exception("disk full")
        )
        db = AsyncMock()

        with pytest.raises(StorageError) as exc_info:
            await svc.update_balance(db, ADMIN, _payload())

        assert exc_info.value.message == "Failed to update balances"
        assert exc_info.value.details == ["disk full"]
        db.commit.assert_not_awaited()
        db.rollback.assert_awaited_once()
        sink.submit.assert_not_called()
        publisher.publish.assert_not_awaited()

    async def test_commit_failure(self) -> None:
        svc, _, sink, _ = _make_service(_balance("100"))
        db = AsyncMock()
        db.commit.side_effect = OperationalError("COMMIT", {}, Exception("serialization"))

        with pytest.raises(StorageError) as exc_info:
            await svc.update_balance(db, ADMIN, _payload())

        assert exc_info.value.message == "Failed to update balances"
        db.rollback.assert_awaited_once()
        sink.submit.assert_not_called()


class TestReadViews:
    async def test_user_balance_missing_row(self) -> None:
        svc, repo, _, _ = _make_service()
        repo.get_balance.return_value = None

        view = await svc.get_user_balance(AsyncMock(), "user-new")

        assert view.exists is False
        assert view.user_id == "user-new"
        assert view.total_value == 0.0
        assert view.cash_balance_display == "$0.00"

    async def test_user_balance_existing_row(self) -> None:
        svc, repo, _, _ = _make_service()
        repo.get_balance.return_value = _balance("1234.5", "10", "3", version=7)

        view = await svc.get_user_balance(AsyncMock(), "user-1")

        assert view.exists is True
        assert view.cash_balance == 1234.5
        assert view.cash_balance_display == "$1,234.50"
        assert view.total_value_display == "$1,244.50"
        assert view.version == 7
