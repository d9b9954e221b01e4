"""Security middleware for FastAPI - session resolution, user context, guards."""

import hmac
import logging
from typing import Callable

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware

from auth.exceptions import CsrfValidationError, NotAuthenticatedError, SessionNotFoundError
from auth.session import SessionStore
from auth.types import AuthContext
from utils.user_context import user_context

logger = logging.getLogger(__name__)

CSRF_PROTECTED_METHODS = frozenset({"POST", "PUT", "PATCH", "DELETE"})


class AuthMiddleware(BaseHTTPMiddleware):
    """Resolves the session cookie into an AuthContext on every request.

    1. Reads the session id from the session cookie (absent = anonymous)
    2. Resolves it via SessionStore
    3. Stores AuthContext at request.state.auth and sets user context
    4. Restores the previous (empty) context after the request completes

    Never rejects a request. Resolution failures of any kind degrade to
    anonymous; enforcement is left to the require_auth / CSRF guards.
    """

    def __init__(self, app, session_store: SessionStore, cookie_name: str = "sid"):
        super().__init__(app)
        self._session_store = session_store
        self._cookie_name = cookie_name

    async def _resolve(self, session_id: str) -> AuthContext | None:
        try:
            resolved = await self._session_store.resolve_session(session_id)
        except SessionNotFoundError:
            return None
        except Exception:
            logger.exception("Session resolution failed; treating request as anonymous")
            return None

        return AuthContext(
            user=resolved.user,
            session=resolved.session,
            csrf_token=resolved.session.csrf_secret,
        )

    async def dispatch(self, request: Request, call_next):
        """Process request through middleware."""
        auth = None
        session_id = request.cookies.get(self._cookie_name)
        if session_id:
            auth = await self._resolve(session_id)

        request.state.auth = auth
        if auth is None:
            return await call_next(request)

        with user_context(auth.user.user_id):
            return await call_next(request)


def get_auth_context(request: Request) -> AuthContext | None:
    """The request's AuthContext, or None when anonymous."""
    return getattr(request.state, "auth", None)


def require_auth(request: Request) -> AuthContext:
    """FastAPI dependency: reject anonymous requests with 401."""
    auth = get_auth_context(request)
    if auth is None:
        raise NotAuthenticatedError("Authentication required")
    return auth


def make_csrf_guard(header_name: str = "X-CSRF-Token") -> Callable[[Request], None]:
    """Build a FastAPI dependency enforcing the session-bound CSRF token.

    Mutating methods must send header_name equal to the session's csrf_secret.
    Safe methods pass through unchecked.
    """

    def verify_csrf(request: Request) -> None:
        if request.method not in CSRF_PROTECTED_METHODS:
            return

        auth = get_auth_context(request)
        supplied = request.headers.get(header_name)
        if auth is None or not supplied:
            raise CsrfValidationError("Invalid CSRF token")

        if not hmac.compare_digest(supplied.encode("utf-8"), auth.csrf_token.encode("utf-8")):
            raise CsrfValidationError("Invalid CSRF token")

    return verify_csrf


verify_csrf = make_csrf_guard()
