"""Pydantic schemas and cursor utilities for the tp_admin API."""

import base64
import json
from typing import Any

from pydantic import BaseModel

from src.tp_admin.domain.models import AuditRecord
from src.tp_common.datetime_utils import to_iso
from src.tp_common.money import ZERO, money_to_display
from src.tp_portfolio.domain.models import PortfolioBalance

# ---------------------------------------------------------------------------
# Cursor-based pagination utilities
# ---------------------------------------------------------------------------


def cursor_encode(last_id: int) -> str:
    """Encode a BIGINT primary key into an opaque Base64 cursor string."""
    payload = json.dumps({"id": last_id})
    return base64.b64encode(payload.encode()).decode()


def cursor_decode(cursor: str | None) -> int | None:
    """Decode a cursor string back to the last seen id. Returns None on error."""
    if cursor is None:
        return None
    try:
        payload = json.loads(base64.b64decode(cursor.encode()).decode())
        return int(payload["id"])
    except (ValueError, KeyError, TypeError):
        return None


# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------


class AdminBalanceView(BaseModel):
    """Balances as shown next to the adjustment form."""

    user_id: str
    exists: bool
    cash_balance: float
    cash_balance_display: str
    invested_amount: float
    invested_amount_display: str
    free_margin: float
    free_margin_display: str
    total_value: float
    total_value_display: str
    version: int
    updated_at: str | None

    @classmethod
    def from_balance(cls, user_id: str, balance: PortfolioBalance | None) -> "AdminBalanceView":
        if balance is None:
            balance = PortfolioBalance(
                user_id=user_id,
                cash_balance=ZERO,
                invested_amount=ZERO,
                free_margin=ZERO,
                total_value=ZERO,
            )
            exists = False
        else:
            exists = True
        return cls(
            user_id=user_id,
            exists=exists,
            cash_balance=float(balance.cash_balance),
            cash_balance_display=money_to_display(balance.cash_balance),
            invested_amount=float(balance.invested_amount),
            invested_amount_display=money_to_display(balance.invested_amount),
            free_margin=float(balance.free_margin),
            free_margin_display=money_to_display(balance.free_margin),
            total_value=float(balance.total_value),
            total_value_display=money_to_display(balance.total_value),
            version=balance.version,
            updated_at=to_iso(balance.updated_at),
        )


class AuditRecordItem(BaseModel):
    id: int
    admin_user_id: str
    action: str
    target_table: str
    target_id: str
    meta: dict[str, Any]
    created_at: str | None  # ISO8601 string

    @classmethod
    def from_record(cls, record: AuditRecord) -> "AuditRecordItem":
        return cls(
            id=record.id or 0,
            admin_user_id=record.admin_user_id,
            action=record.action.value,
            target_table=record.target_table,
            target_id=record.target_id,
            meta=record.meta,
            created_at=to_iso(record.created_at),
        )


class AuditListResponse(BaseModel):
    items: list[AuditRecordItem]
    next_cursor: str | None
    has_more: bool
