"""Admin application service: balance adjustment and read views.

update_balance pipeline (caller is already an authenticated admin):
  1. validate payload           -> PayloadValidationError (400), no storage access
  2. lock current row           -> StorageError (500), nothing written
  3. compute new balances       -> ComputationError (500), nothing written
  4. upsert + commit            -> StorageError (500), rolled back, no audit
  5. submit audit record        best-effort, outcome unaffected
  6. publish balance change     best-effort, outcome unaffected

Steps 2-4 share one transaction; the row lock taken in step 2 serializes
concurrent adjustments for the same user.
"""

import logging
from typing import Any

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from src.tp_admin.application.schemas import (
    AdminBalanceView,
    AuditListResponse,
    AuditRecordItem,
    cursor_decode,
    cursor_encode,
)
from src.tp_admin.domain.adjustment import parse_adjustment_request
from src.tp_admin.domain.models import (
    AdminPrincipal,
    AuditRecord,
    BalanceAdjustmentRequest,
)
from src.tp_admin.domain.repository import AuditRepositoryProtocol, AuditSinkProtocol
from src.tp_admin.infrastructure.audit_repository import AuditRepository
from src.tp_common.datetime_utils import utc_now
from src.tp_common.enums import AuditAction
from src.tp_common.errors import StorageError
from src.tp_portfolio.domain.compute import compute_new_balances
from src.tp_portfolio.domain.models import BalanceSnapshot, PortfolioBalance
from src.tp_portfolio.domain.repository import (
    BalanceChangePublisherProtocol,
    PortfolioRepositoryProtocol,
)
from src.tp_portfolio.infrastructure.notifications import BalanceChangePublisher
from src.tp_portfolio.infrastructure.persistence import PortfolioRepository

logger = logging.getLogger(__name__)

BALANCE_TABLE = "portfolio_balances"


class AdminService:
    def __init__(
        self,
        audit_sink: AuditSinkProtocol,
        portfolio_repo: PortfolioRepositoryProtocol | None = None,
        audit_repo: AuditRepositoryProtocol | None = None,
        publisher: BalanceChangePublisherProtocol | None = None,
    ) -> None:
        self._audit_sink = audit_sink
        self._portfolio_repo: PortfolioRepositoryProtocol = (
            portfolio_repo or PortfolioRepository()
        )
        self._audit_repo: AuditRepositoryProtocol = audit_repo or AuditRepository()
        self._publisher: BalanceChangePublisherProtocol = (
            publisher or BalanceChangePublisher()
        )

    async def update_balance(
        self, db: AsyncSession, admin: AdminPrincipal, payload: Any
    ) -> PortfolioBalance:
        request = parse_adjustment_request(payload)
        logger.info(
            "Balance update request: admin=%s user=%s mode=%s updates=%s",
            admin.admin_id,
            request.user_id,
            request.mode.value,
            request.updates.provided(),
        )

        try:
            current, created = await self._lock_current(db, request.user_id)
            new_balances = compute_new_balances(
                current.snapshot(), request.updates, request.mode
            )
            logger.debug(
                "Balance calculation: user=%s current=%s new=%s",
                request.user_id,
                current.snapshot(),
                new_balances,
            )
            updated = await self._persist(db, request.user_id, new_balances)
        except Exception:
            await db.rollback()
            raise

        self._record_audit(admin, request, None if created else current, updated)
        await self._publisher.publish(updated)

        logger.info(
            "Balance update successful: user=%s admin=%s total=%s version=%d",
            request.user_id,
            admin.admin_id,
            updated.total_value,
            updated.version,
        )
        return updated

    async def get_user_balance(self, db: AsyncSession, user_id: str) -> AdminBalanceView:
        balance = await self._portfolio_repo.get_balance(db, user_id)
        return AdminBalanceView.from_balance(user_id, balance)

    async def list_audits(
        self,
        db: AsyncSession,
        cursor: str | None,
        limit: int,
        target_id: str | None,
    ) -> AuditListResponse:
        cursor_id = cursor_decode(cursor)
        # Fetch limit+1 to detect has_more without a COUNT(*) query
        records = await self._audit_repo.list_audits(db, target_id, cursor_id, limit + 1)
        has_more = len(records) > limit
        page = records[:limit]

        items = [AuditRecordItem.from_record(r) for r in page]
        next_cursor = cursor_encode(page[-1].id) if has_more and page and page[-1].id else None
        return AuditListResponse(items=items, next_cursor=next_cursor, has_more=has_more)

    async def _lock_current(
        self, db: AsyncSession, user_id: str
    ) -> tuple[PortfolioBalance, bool]:
        try:
            return await self._portfolio_repo.lock_balance(db, user_id)
        except SQLAlchemyError as exc:
            logger.error("Error fetching current balances: user=%s error=%s", user_id, exc)
            raise StorageError("Failed to fetch current balances", _db_message(exc)) from exc

    async def _persist(
        self, db: AsyncSession, user_id: str, balances: BalanceSnapshot
    ) -> PortfolioBalance:
        try:
            updated = await self._portfolio_repo.upsert_balance(db, user_id, balances)
            await db.commit()
        except SQLAlchemyError as exc:
            logger.error("Error updating balances: user=%s error=%s", user_id, exc)
            raise StorageError("Failed to update balances", _db_message(exc)) from exc
        return updated

    def _record_audit(
        self,
        admin: AdminPrincipal,
        request: BalanceAdjustmentRequest,
        before: PortfolioBalance | None,
        after: PortfolioBalance,
    ) -> None:
        record = AuditRecord(
            admin_user_id=admin.admin_id,
            action=AuditAction.BALANCE_UPDATE,
            target_table=BALANCE_TABLE,
            target_id=request.user_id,
            meta={
                "before": before.to_audit_dict() if before is not None else None,
                "after": after.to_audit_dict(),
                "reason": request.reason,
                "mode": request.mode.value,
                "updates": request.updates.provided(),
            },
            created_at=utc_now(),
        )
        try:
            self._audit_sink.submit(record)
        except Exception:
            logger.exception(
                "Failed to queue audit entry: user=%s admin=%s",
                request.user_id,
                admin.admin_id,
            )


def _db_message(exc: SQLAlchemyError) -> str:
    """The driver's message without SQLAlchemy's statement/params dump."""
    orig = getattr(exc, "orig", None)
    return str(orig) if orig is not None else str(exc)
