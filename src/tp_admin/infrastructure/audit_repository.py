"""AuditRepository: append-only access to admin_audits.

Rows are never updated or deleted. Transaction ownership lies with the
caller (the audit outbox worker commits after each append).
"""

import json
import math
from typing import Any

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from src.tp_admin.domain.models import AuditRecord
from src.tp_common.enums import AuditAction

_INSERT_AUDIT_SQL = text("""
    INSERT INTO admin_audits
        (admin_user_id, action, target_table, target_id, meta, created_at)
    VALUES
        (CAST(:admin_user_id AS UUID), :action, :target_table, :target_id,
         CAST(:meta AS JSONB), COALESCE(:created_at, NOW()))
""")

_LIST_AUDITS_SQL = text("""
    SELECT id, admin_user_id, action, target_table, target_id, meta, created_at
    FROM admin_audits
    WHERE (CAST(:target_id AS VARCHAR) IS NULL OR target_id = :target_id)
      AND (CAST(:cursor_id AS BIGINT) IS NULL OR id < :cursor_id)
    ORDER BY id DESC
    LIMIT :limit
""")


def _jsonable(value: Any) -> Any:
    """Make submitted values safe for JSONB (no NaN/Infinity literals)."""
    if isinstance(value, float) and not math.isfinite(value):
        return repr(value)
    if isinstance(value, dict):
        return {k: _jsonable(v) for k, v in value.items()}
    if isinstance(value, list | tuple):
        return [_jsonable(v) for v in value]
    return value


def _row_to_audit(row: object) -> AuditRecord:
    meta = row.meta  # type: ignore[attr-defined]
    if isinstance(meta, str):
        meta = json.loads(meta)
    return AuditRecord(
        id=row.id,  # type: ignore[attr-defined]
        admin_user_id=str(row.admin_user_id),  # type: ignore[attr-defined]
        action=AuditAction(row.action),  # type: ignore[attr-defined]
        target_table=row.target_table,  # type: ignore[attr-defined]
        target_id=row.target_id,  # type: ignore[attr-defined]
        meta=meta or {},
        created_at=row.created_at,  # type: ignore[attr-defined]
    )


class AuditRepository:
    async def append_audit(self, db: AsyncSession, record: AuditRecord) -> None:
        await db.execute(
            _INSERT_AUDIT_SQL,
            {
                "admin_user_id": record.admin_user_id,
                "action": record.action.value,
                "target_table": record.target_table,
                "target_id": record.target_id,
                "meta": json.dumps(_jsonable(record.meta)),
                "created_at": record.created_at,
            },
        )

    async def list_audits(
        self,
        db: AsyncSession,
        target_id: str | None,
        cursor_id: int | None,
        limit: int,
    ) -> list[AuditRecord]:
        result = await db.execute(
            _LIST_AUDITS_SQL,
            {"target_id": target_id, "cursor_id": cursor_id, "limit": limit},
        )
        return [_row_to_audit(row) for row in result.fetchall()]
