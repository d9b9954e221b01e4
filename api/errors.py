"""Global exception handlers for FastAPI."""

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from pydantic import ValidationError

from api.base import json_error, ErrorCodes
from auth.exceptions import CsrfValidationError, NotAuthenticatedError
from core.exceptions import TaskNotFoundError

logger = logging.getLogger(__name__)


def register_error_handlers(app: FastAPI) -> None:
    """Register global exception handlers on the app."""

    @app.exception_handler(NotAuthenticatedError)
    async def not_authenticated_handler(request: Request, exc: NotAuthenticatedError):
        return json_error(401, ErrorCodes.NOT_AUTHENTICATED, "Unauthorized", request)

    @app.exception_handler(CsrfValidationError)
    async def csrf_error_handler(request: Request, exc: CsrfValidationError):
        logger.info(f"CSRF rejection: {request.method} {request.url.path}")
        return json_error(403, ErrorCodes.CSRF_INVALID, "Invalid CSRF token", request)

    @app.exception_handler(TaskNotFoundError)
    async def not_found_handler(request: Request, exc: TaskNotFoundError):
        return json_error(404, ErrorCodes.NOT_FOUND, str(exc), request)

    @app.exception_handler(ValueError)
    async def value_error_handler(request: Request, exc: ValueError):
        return json_error(400, ErrorCodes.INVALID_REQUEST, str(exc), request)

    @app.exception_handler(ValidationError)
    async def model_error_handler(request: Request, exc: ValidationError):
        # Raised inside a handler, not on request input: a stored document or
        # internal model is malformed.
        logger.error(f"Model validation failed: {exc.title} ({exc.error_count()} errors)")
        return json_error(500, ErrorCodes.INTERNAL_ERROR, "An internal error occurred", request)

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        return json_error(422, ErrorCodes.VALIDATION_ERROR, str(exc.errors()), request)

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception):
        logger.exception("Unhandled exception")
        return json_error(500, ErrorCodes.INTERNAL_ERROR, "An internal error occurred", request)
