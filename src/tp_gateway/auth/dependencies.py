"""FastAPI dependencies: get_current_user, require_admin.

Usage in any protected router:
    from src.tp_gateway.auth.dependencies import get_current_user, require_admin

    @router.get("/protected")
    async def protected(user: UserModel = Depends(get_current_user)):
        ...

    @router.post("/admin-only")
    async def admin_only(admin: AdminPrincipal = Depends(require_admin)):
        ...

Both raise AppError subclasses, which the app-level handler renders as the
standard error envelope (401 for credential problems, 403 for privilege).
"""

import uuid

from fastapi import Depends
from fastapi.security import APIKeyHeader
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from src.tp_admin.domain.models import AdminPrincipal
from src.tp_admin.domain.repository import AdminDirectoryProtocol
from src.tp_admin.infrastructure.admin_directory import AdminDirectory
from src.tp_common.database import get_db_session
from src.tp_common.errors import (
    AccountDisabledError,
    AdminRequiredError,
    InvalidTokenError,
    MissingAuthorizationError,
)
from src.tp_gateway.auth.jwt_handler import decode_token
from src.tp_gateway.user.db_models import UserModel

# Raw header (not HTTPBearer) so "missing" and "malformed" stay distinguishable.
authorization_header = APIKeyHeader(
    name="Authorization",
    auto_error=False,
    description="Bearer <access token>",
)

_admin_directory = AdminDirectory()


def get_admin_directory() -> AdminDirectoryProtocol:
    return _admin_directory


def extract_bearer_token(authorization: str | None) -> str:
    """Return the token from an Authorization header value.

    Raises:
        MissingAuthorizationError: header absent or empty.
        InvalidTokenError: not of the form "Bearer <token>".
    """
    if authorization is None or not authorization.strip():
        raise MissingAuthorizationError()
    scheme, _, token = authorization.strip().partition(" ")
    token = token.strip()
    if scheme.lower() != "bearer" or not token:
        raise InvalidTokenError()
    return token


async def get_current_user(
    authorization: str | None = Depends(authorization_header),
    db: AsyncSession = Depends(get_db_session),
) -> UserModel:
    """Resolve the bearer token to an active UserModel.

    Raises HTTP 401 if the header is missing, or the token is invalid,
    expired, or names an unknown user.
    Raises HTTP 403 (AccountDisabledError) if the user account is disabled.
    """
    token = extract_bearer_token(authorization)
    payload = decode_token(token)
    try:
        user_id = uuid.UUID(payload["sub"])
    except ValueError:
        raise InvalidTokenError() from None

    result = await db.execute(select(UserModel).where(UserModel.id == user_id))
    user = result.scalar_one_or_none()
    if user is None:
        raise InvalidTokenError()

    if not user.is_active:
        raise AccountDisabledError()

    return user


async def require_admin(
    current_user: UserModel = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
    directory: AdminDirectoryProtocol = Depends(get_admin_directory),
) -> AdminPrincipal:
    """Verify the caller has an admin_users row.

    Raises HTTP 403 (AdminRequiredError) otherwise. Every admin endpoint
    depends on this, so nothing downstream runs for a non-admin.
    """
    admin = await directory.find_admin(db, current_user)
    if admin is None:
        raise AdminRequiredError()
    return admin
