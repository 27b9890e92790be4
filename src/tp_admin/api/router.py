"""Admin REST API: every endpoint requires an admin bearer token."""

import json
from typing import Annotated, Any

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from src.tp_admin.application.service import AdminService
from src.tp_admin.domain.models import AdminPrincipal
from src.tp_admin.infrastructure.audit_outbox import AuditOutbox
from src.tp_common.database import get_db_session
from src.tp_common.errors import InvalidJsonError
from src.tp_common.response import ApiResponse, success_response
from src.tp_gateway.auth.dependencies import require_admin
from src.tp_gateway.middleware.request_log import get_request_id
from src.tp_portfolio.application.schemas import PortfolioBalanceData

router = APIRouter(prefix="/admin", tags=["admin"])

audit_outbox = AuditOutbox()
_service = AdminService(audit_sink=audit_outbox)


def get_admin_service() -> AdminService:
    return _service


async def _read_json_body(request: Request) -> Any:
    """Empty body reads as {} so it fails validation instead of parsing."""
    raw = await request.body()
    if not raw.strip():
        return {}
    try:
        return json.loads(raw)
    except (ValueError, UnicodeDecodeError):
        raise InvalidJsonError() from None


@router.post("/balance-update")
async def balance_update(
    request: Request,
    admin: Annotated[AdminPrincipal, Depends(require_admin)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    service: Annotated[AdminService, Depends(get_admin_service)],
) -> ApiResponse:
    payload = await _read_json_body(request)
    balance = await service.update_balance(db, admin, payload)
    resp = success_response(
        PortfolioBalanceData.from_domain(balance).to_wire(),
        message="Balance updated successfully",
    )
    resp.request_id = get_request_id(request) or resp.request_id
    return resp


@router.get("/users/{user_id}/balances")
async def get_user_balances(
    user_id: str,
    request: Request,
    admin: Annotated[AdminPrincipal, Depends(require_admin)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    service: Annotated[AdminService, Depends(get_admin_service)],
) -> ApiResponse:
    data = await service.get_user_balance(db, user_id)
    resp = success_response(data.model_dump())
    resp.request_id = get_request_id(request) or resp.request_id
    return resp


@router.get("/audits")
async def list_audits(
    request: Request,
    admin: Annotated[AdminPrincipal, Depends(require_admin)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    service: Annotated[AdminService, Depends(get_admin_service)],
    cursor: str | None = Query(None, description="Pagination cursor (opaque Base64)"),
    limit: int = Query(20, ge=1, le=100, description="Items per page"),
    target_id: str | None = Query(None, description="Only audits for this user id"),
) -> ApiResponse:
    data = await service.list_audits(db, cursor, limit, target_id)
    resp = success_response(data.model_dump())
    resp.request_id = get_request_id(request) or resp.request_id
    return resp
