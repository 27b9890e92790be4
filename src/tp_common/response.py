"""Unified API response wrapper.

Success:
{
    "success": true,
    "code": 0,
    "message": "Balance updated successfully",
    "data": { ... },
    "timestamp": "...",
    "request_id": "..."
}

Failure:
{
    "success": false,
    "code": 2001,
    "error": "Validation failed",
    "details": ["reason is required and cannot be empty"],   // optional
    "data": null,
    "timestamp": "...",
    "request_id": "..."
}
"""

import uuid
from datetime import datetime, timezone
from typing import Any

from pydantic import BaseModel, Field, SerializerFunctionWrapHandler, model_serializer

_OMIT_WHEN_NONE = ("message", "error", "details")


class ApiResponse(BaseModel):
    success: bool = True
    code: int = 0
    message: str | None = None
    data: Any = None
    error: str | None = None
    details: list[str] | None = None
    timestamp: str = Field(default_factory=lambda: datetime.now(timezone.utc).isoformat())
    request_id: str = Field(default_factory=lambda: f"req_{uuid.uuid4().hex[:12]}")

    @model_serializer(mode="wrap")
    def _omit_empty(self, handler: SerializerFunctionWrapHandler) -> dict[str, Any]:
        dumped: dict[str, Any] = handler(self)
        for key in _OMIT_WHEN_NONE:
            if dumped.get(key) is None:
                dumped.pop(key, None)
        return dumped


def success_response(data: Any = None, message: str = "success") -> ApiResponse:
    return ApiResponse(success=True, code=0, message=message, data=data)


def error_response(
    code: int, error: str, details: list[str] | None = None
) -> ApiResponse:
    return ApiResponse(success=False, code=code, error=error, details=details)
