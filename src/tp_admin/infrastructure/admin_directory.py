"""AdminDirectory: decides whether an authenticated user is an administrator.

Primary lookup is by stable identity (admin_users.user_id = users.id).
With ADMIN_EMAIL_FALLBACK enabled, a case-insensitive email match is tried
next; it exists for admin rows provisioned by email before the user account
was linked and is logged every time it is used.
"""

import logging

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from config.settings import settings
from src.tp_admin.domain.models import AdminPrincipal
from src.tp_admin.infrastructure.db_models import AdminUserModel
from src.tp_gateway.user.db_models import UserModel

logger = logging.getLogger(__name__)


def _to_principal(admin: AdminUserModel, user: UserModel) -> AdminPrincipal:
    return AdminPrincipal(
        admin_id=str(admin.id),
        user_id=str(user.id),
        email=user.email,
        role=admin.role,
    )


class AdminDirectory:
    def __init__(self, email_fallback: bool | None = None) -> None:
        self._email_fallback = (
            settings.ADMIN_EMAIL_FALLBACK if email_fallback is None else email_fallback
        )

    async def find_admin(
        self, db: AsyncSession, user: UserModel
    ) -> AdminPrincipal | None:
        result = await db.execute(
            select(AdminUserModel).where(AdminUserModel.user_id == user.id)
        )
        admin = result.scalar_one_or_none()
        if admin is not None:
            return _to_principal(admin, user)

        if not self._email_fallback or not user.email:
            return None

        result = await db.execute(
            select(AdminUserModel)
            .where(func.lower(AdminUserModel.email) == user.email.lower())
            .order_by(AdminUserModel.created_at)
            .limit(1)
        )
        admin = result.scalar_one_or_none()
        if admin is None:
            return None
        logger.warning(
            "Admin matched by email fallback: admin_id=%s user_id=%s "
            "(link admin_users.user_id to retire the fallback)",
            admin.id,
            user.id,
        )
        return _to_principal(admin, user)
