"""Domain models for tp_admin: pure dataclasses, no SQLAlchemy dependency."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from src.tp_common.enums import AuditAction, BalanceUpdateMode
from src.tp_portfolio.domain.models import BalanceUpdates


@dataclass(frozen=True)
class AdminPrincipal:
    """An authenticated user that matched an admin_users row."""

    admin_id: str        # admin_users.id, recorded as admin_audits.admin_user_id
    user_id: str         # users.id of the caller
    email: str
    role: str


@dataclass(frozen=True)
class BalanceAdjustmentRequest:
    user_id: str
    mode: BalanceUpdateMode
    updates: BalanceUpdates
    reason: str


@dataclass
class AuditRecord:
    admin_user_id: str
    action: AuditAction
    target_table: str
    target_id: str
    meta: dict[str, Any] = field(default_factory=dict)
    created_at: datetime | None = None
    id: int | None = None            # BIGSERIAL, assigned on insert
