"""Request logging middleware.

One log line per HTTP request: method, path, status, latency, request id.
An inbound ``X-Request-ID`` (from a proxy or the admin console) is reused
when it looks sane; otherwise a fresh ``req_<hex12>`` id is minted. The id
lives on ``request.state`` for ApiResponse.request_id and is echoed back in
the ``X-Request-ID`` response header.

Log format:
    INFO [POST] /api/v1/admin/balance-update → 200 (23ms) req_a1b2c3d4e5f6
"""

import logging
import re
import time
import uuid

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

logger = logging.getLogger("tp.request")

REQUEST_ID_HEADER = "X-Request-ID"
_INBOUND_ID = re.compile(r"^[A-Za-z0-9_.:-]{8,64}$")


def get_request_id(request: Request) -> str | None:
    """request_id set by RequestLogMiddleware, None when it did not run."""
    return getattr(request.state, "request_id", None)


def _choose_request_id(request: Request) -> str:
    inbound = request.headers.get(REQUEST_ID_HEADER)
    if inbound and _INBOUND_ID.match(inbound):
        return inbound
    return f"req_{uuid.uuid4().hex[:12]}"


class RequestLogMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        request_id = _choose_request_id(request)
        request.state.request_id = request_id

        started = time.perf_counter()
        response = await call_next(request)
        elapsed_ms = (time.perf_counter() - started) * 1000

        response.headers[REQUEST_ID_HEADER] = request_id
        logger.log(
            logging.WARNING if response.status_code >= 500 else logging.INFO,
            "[%s] %s → %d (%.0fms) %s",
            request.method,
            request.url.path,
            response.status_code,
            elapsed_ms,
            request_id,
        )
        return response
