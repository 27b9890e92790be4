"""tp_portfolio REST API: the caller's own balance, JWT required."""

from typing import Annotated

from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from src.tp_common.database import get_db_session
from src.tp_common.response import ApiResponse, success_response
from src.tp_gateway.auth.dependencies import get_current_user
from src.tp_gateway.middleware.request_log import get_request_id
from src.tp_gateway.user.db_models import UserModel
from src.tp_portfolio.application.service import PortfolioApplicationService

router = APIRouter(prefix="/portfolio", tags=["portfolio"])

_service = PortfolioApplicationService()


@router.get("/balance")
async def get_balance(
    current_user: Annotated[UserModel, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    data = await _service.get_balance(db, str(current_user.id))
    resp = success_response(data.to_wire() if data is not None else None)
    resp.request_id = get_request_id(request) or resp.request_id
    return resp
