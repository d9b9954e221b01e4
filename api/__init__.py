"""API modules for HTTP interface."""

from api.base import (
    APIError,
    APIMeta,
    APIResponse,
    success_response,
    error_response,
    ErrorCodes,
    json_error,
    LoginErrorCodes,
)
from api.errors import register_error_handlers
from api.middleware import RequestIDMiddleware
from api.frontend import mount_frontend
