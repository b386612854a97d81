"""Unified response envelope.

Every service entry point and API endpoint returns this format:
{
    "code": 0,           // 0=success, non-0=error code
    "message": "success",
    "data": { ... },     // null on error
    "retryable": false,  // true only for lock timeouts
    "timestamp": "...",
    "request_id": "..."
}
"""

import uuid
from datetime import datetime, timezone
from typing import Any

from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from src.au_common.errors import AppError


class ApiResponse(BaseModel):
    code: int = 0
    message: str = "success"
    data: Any = None
    retryable: bool = False
    timestamp: str = Field(default_factory=lambda: datetime.now(timezone.utc).isoformat())
    request_id: str = Field(default_factory=lambda: f"req_{uuid.uuid4().hex[:12]}")
    http_status: int = Field(default=200, exclude=True)

    @property
    def ok(self) -> bool:
        return self.code == 0


def success_response(data: Any = None, http_status: int = 200) -> ApiResponse:
    return ApiResponse(code=0, message="success", data=data, http_status=http_status)


def error_response(
    code: int, message: str, http_status: int = 500, retryable: bool = False
) -> ApiResponse:
    return ApiResponse(
        code=code, message=message, data=None, retryable=retryable, http_status=http_status
    )


def error_from(exc: AppError) -> ApiResponse:
    return error_response(exc.code, exc.message, exc.http_status, exc.retryable)


def to_json_response(resp: ApiResponse, request_id: str | None = None) -> JSONResponse:
    """Render an envelope with the HTTP status it carries."""
    if request_id:
        resp.request_id = request_id
    return JSONResponse(status_code=resp.http_status, content=resp.model_dump())
