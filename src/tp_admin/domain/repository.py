"""Repository Protocols for tp_admin.

Unit tests inject mocks that conform to these Protocols.
"""

from typing import Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from src.tp_admin.domain.models import AdminPrincipal, AuditRecord
from src.tp_gateway.user.db_models import UserModel


class AdminDirectoryProtocol(Protocol):
    async def find_admin(
        self, db: AsyncSession, user: UserModel
    ) -> AdminPrincipal | None: ...


class AuditRepositoryProtocol(Protocol):
    async def append_audit(self, db: AsyncSession, record: AuditRecord) -> None: ...

    async def list_audits(
        self,
        db: AsyncSession,
        target_id: str | None,
        cursor_id: int | None,
        limit: int,
    ) -> list[AuditRecord]: ...


class AuditSinkProtocol(Protocol):
    """Where the balance service hands off audit records (never blocks)."""

    def submit(self, record: AuditRecord) -> None: ...
