"""FastAPI application entry point.

Run with: uvicorn src.main:app --reload --port 8000
"""

# ruff: noqa: E402  -- uvloop.install() must run before other imports

import uvloop

uvloop.install()

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import text
from starlette.exceptions import HTTPException as StarletteHTTPException

from config.settings import settings
from src.tp_admin.api.router import audit_outbox
from src.tp_admin.api.router import router as admin_router
from src.tp_common.database import engine
from src.tp_common.errors import AppError
from src.tp_common.redis_client import close_redis, redis_available
from src.tp_common.response import error_response
from src.tp_gateway.middleware.request_log import RequestLogMiddleware, get_request_id
from src.tp_portfolio.api.router import router as portfolio_router

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Startup: verify DB, probe Redis, start the audit outbox. Shutdown: reverse."""
    # Startup
    async with engine.connect() as conn:
        await conn.execute(text("SELECT 1"))
    if not await redis_available():
        logger.warning("Redis unreachable at startup, balance notifications will be dropped")
    await audit_outbox.start()
    yield
    # Shutdown
    await audit_outbox.stop()
    await engine.dispose()
    await close_redis()


app = FastAPI(
    title=settings.APP_NAME,
    version="0.1.0",
    lifespan=lifespan,
)


app.add_middleware(RequestLogMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ALLOW_ORIGINS,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["authorization", "x-client-info", "apikey", "content-type"],
)


def _envelope(
    request: Request,
    status_code: int,
    code: int,
    error: str,
    details: list[str] | None = None,
    headers: dict[str, str] | None = None,
) -> JSONResponse:
    resp = error_response(code, error, details)
    resp.request_id = get_request_id(request) or resp.request_id
    return JSONResponse(status_code=status_code, content=resp.model_dump(), headers=headers)


@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    headers = {"WWW-Authenticate": "Bearer"} if exc.http_status == 401 else None
    return _envelope(request, exc.http_status, exc.code, exc.message, exc.details, headers)


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    message = "Method not allowed" if exc.status_code == 405 else str(exc.detail)
    return _envelope(
        request, exc.status_code, exc.status_code, message, headers=getattr(exc, "headers", None)
    )


@app.exception_handler(RequestValidationError)
async def request_validation_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    details = [
        f"{'.'.join(str(p) for p in err.get('loc', ()))}: {err.get('msg', 'invalid')}"
        for err in exc.errors()
    ]
    return _envelope(request, 400, 2001, "Validation failed", details)


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return _envelope(request, 500, 9002, "Internal server error")


app.include_router(admin_router, prefix="/api/v1")
app.include_router(portfolio_router, prefix="/api/v1")


@app.get("/health")
async def health() -> dict[str, str | int | bool]:
    return {
        "status": "ok",
        "version": "0.1.0",
        "redis": await redis_available(),
        "audit_worker": audit_outbox.running,
        "audit_pending": audit_outbox.pending,
    }
