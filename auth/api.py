"""HTTP routes for authentication."""

import logging
from urllib.parse import urlencode

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import JSONResponse, RedirectResponse
from starlette.responses import Response

from api.base import success_response, json_error, ErrorCodes, LoginErrorCodes
from auth.config import AuthConfig
from auth.exceptions import AuthError
from auth.oidc import GoogleOIDCClient
from auth.security_logger import AuditLogger
from auth.security_middleware import make_csrf_guard, require_auth
from auth.session import SessionStore
from auth.types import AuditEventType, AuthContext
from auth.users import UserDirectory

logger = logging.getLogger(__name__)


def client_ip(request: Request) -> str:
    """Peer address of the request, or 'unknown' behind odd transports."""
    if request.client and request.client.host:
        return request.client.host
    return "unknown"


def set_session_cookie(response: Response, session_id: str, config: AuthConfig) -> None:
    response.set_cookie(
        key=config.session_cookie_name,
        value=session_id,
        max_age=config.session_expiry_seconds,
        path="/",
        secure=config.cookie_secure,
        httponly=True,
        samesite="lax",
    )


def clear_session_cookie(response: Response, config: AuthConfig) -> None:
    response.delete_cookie(
        key=config.session_cookie_name,
        path="/",
        secure=config.cookie_secure,
        httponly=True,
        samesite="lax",
    )


def create_auth_router(
    config: AuthConfig,
    oidc: GoogleOIDCClient,
    users: UserDirectory,
    sessions: SessionStore,
    audit: AuditLogger,
) -> APIRouter:
    """Create auth router with injected services."""
    router = APIRouter(tags=["auth"])
    verify_csrf = make_csrf_guard(config.csrf_header_name)

    def failure_redirect(code: str) -> RedirectResponse:
        query = urlencode({"error": code})
        return RedirectResponse(f"{config.failure_redirect}?{query}", status_code=302)

    @router.get("/api/auth/google/login")
    async def login(request: Request):
        """Redirect the browser to Google's consent screen."""
        try:
            redirect = await oidc.generate_login_redirect()
        except Exception:
            logger.exception("Login initiation failed")
            audit.log_in_background(
                AuditEventType.ERROR,
                client_ip(request),
                user_agent=request.headers.get("User-Agent"),
                metadata={"error": "login_initiation_failed"},
            )
            return json_error(500, ErrorCodes.LOGIN_FAILED, "Failed to initiate login", request)

        return RedirectResponse(redirect.authorization_url, status_code=302)

    @router.get("/api/auth/google/callback")
    async def callback(
        request: Request,
        code: str | None = Query(None),
        state: str | None = Query(None),
        error: str | None = Query(None),
    ):
        """Complete login and start a session.

        Every failure redirects to the landing page with a coarse error code;
        the specific reason only reaches server logs and the audit trail.
        """
        ip_address = client_ip(request)
        user_agent = request.headers.get("User-Agent")

        if error:
            audit.log_in_background(
                AuditEventType.ERROR,
                ip_address,
                user_agent=user_agent,
                metadata={"error": "oauth_error", "details": error[:200]},
            )
            return failure_redirect(LoginErrorCodes.OAUTH_DENIED)

        if not code or not state:
            audit.log_in_background(
                AuditEventType.ERROR,
                ip_address,
                user_agent=user_agent,
                metadata={"error": "missing_oauth_params"},
            )
            return failure_redirect(LoginErrorCodes.INVALID_REQUEST)

        try:
            identity = await oidc.complete_login(code, state)
            user = await users.upsert_user(identity.to_profile())
            session_id = await sessions.create_session(user.user_id, ip_address, user_agent)
        except AuthError as e:
            logger.warning(f"Login callback rejected: {type(e).__name__}")
            reason = type(e).__name__
        except Exception:
            logger.exception("Login callback failed")
            reason = "internal_error"
        else:
            response = RedirectResponse(config.success_redirect, status_code=302)
            set_session_cookie(response, session_id, config)
            audit.log_in_background(
                AuditEventType.LOGIN,
                ip_address,
                user_id=user.user_id,
                session_id=session_id,
                user_agent=user_agent,
            )
            return response

        audit.log_in_background(
            AuditEventType.ERROR,
            ip_address,
            user_agent=user_agent,
            metadata={"error": "callback_failed", "reason": reason},
        )
        return failure_redirect(LoginErrorCodes.AUTH_FAILED)

    @router.post("/api/auth/logout", dependencies=[Depends(require_auth), Depends(verify_csrf)])
    async def logout(request: Request, auth: AuthContext = Depends(require_auth)):
        """Revoke the current session and clear the cookie."""
        session_id = auth.session.session_id
        ip_address = client_ip(request)
        user_agent = request.headers.get("User-Agent")

        try:
            await sessions.delete_session(session_id)
        except Exception:
            logger.exception("Logout failed")
            audit.log_in_background(
                AuditEventType.ERROR,
                ip_address,
                user_id=auth.user.user_id,
                session_id=session_id,
                user_agent=user_agent,
                metadata={"error": "logout_failed"},
            )
            return json_error(500, ErrorCodes.LOGOUT_FAILED, "Logout failed", request)

        response = JSONResponse(
            success_response({"message": "Logged out successfully"}, request).model_dump(mode="json")
        )
        clear_session_cookie(response, config)

        audit.log_in_background(
            AuditEventType.LOGOUT,
            ip_address,
            user_id=auth.user.user_id,
            session_id=session_id,
            user_agent=user_agent,
        )
        return response

    @router.get("/api/user")
    async def current_user(request: Request, auth: AuthContext = Depends(require_auth)):
        """Current user profile plus the CSRF token to echo on mutations."""
        return success_response(
            {
                "user": auth.user.model_dump(mode="json"),
                "csrf_token": auth.csrf_token,
            },
            request,
        ).model_dump(mode="json")

    return router
