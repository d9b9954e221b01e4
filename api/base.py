"""Unified API response envelope.

Every JSON body has the same shape:
    {"success": bool, "data": ..., "error": {"code", "message"} | null,
     "meta": {"timestamp", "request_id"}}

meta.request_id echoes the X-Request-ID assigned by RequestIDMiddleware when a
request is supplied, so client reports can be matched to server logs.
"""

from typing import Any
from datetime import datetime
from uuid import uuid4

from pydantic import BaseModel, Field
from starlette.requests import Request
from starlette.responses import JSONResponse

from utils.timezone import now_utc


class APIError(BaseModel):
    """Error details in API response."""

    code: str = Field(..., description="Machine-readable error code")
    message: str = Field(..., description="Human-readable error message")


class APIMeta(BaseModel):
    """Metadata included in every API response."""

    timestamp: datetime = Field(..., description="Response timestamp (UTC)")
    request_id: str = Field(..., description="Unique request identifier for tracing")


class APIResponse(BaseModel):
    success: bool
    data: Any | None = None
    error: APIError | None = None
    meta: APIMeta


def _meta(request: Request | None) -> APIMeta:
    request_id = getattr(request.state, "request_id", None) if request is not None else None
    return APIMeta(timestamp=now_utc(), request_id=request_id or str(uuid4()))


def success_response(data: Any, request: Request | None = None) -> APIResponse:
    """Create a success response."""
    return APIResponse(success=True, data=data, meta=_meta(request))


def error_response(code: str, message: str, request: Request | None = None) -> APIResponse:
    """Create an error response."""
    return APIResponse(
        success=False,
        error=APIError(code=code, message=message),
        meta=_meta(request),
    )


def json_error(
    status_code: int,
    code: str,
    message: str,
    request: Request | None = None,
) -> JSONResponse:
    """Error envelope wrapped in a JSONResponse with the given status."""
    return JSONResponse(
        status_code=status_code,
        content=error_response(code, message, request).model_dump(mode="json"),
    )


class ErrorCodes:
    """Standard error codes for consistent error handling."""

    # Authentication & Authorization
    NOT_AUTHENTICATED = "NOT_AUTHENTICATED"
    CSRF_INVALID = "CSRF_INVALID"
    LOGIN_FAILED = "LOGIN_FAILED"
    LOGOUT_FAILED = "LOGOUT_FAILED"

    # Resource Errors
    NOT_FOUND = "NOT_FOUND"

    # Validation Errors
    VALIDATION_ERROR = "VALIDATION_ERROR"
    INVALID_REQUEST = "INVALID_REQUEST"

    # Infrastructure
    INTERNAL_ERROR = "INTERNAL_ERROR"


class LoginErrorCodes:
    """Public ?error= values on the landing-page redirect after a failed login."""

    OAUTH_DENIED = "oauth_denied"
    INVALID_REQUEST = "invalid_request"
    AUTH_FAILED = "auth_failed"
