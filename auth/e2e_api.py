"""Test-support auth routes.

Mounted only when the app runs with environment == "test". They let browser
end-to-end suites sign in without a real Google round trip and reset a test
user's data between runs.
"""

import logging

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from api.base import success_response
from auth.api import client_ip, set_session_cookie, clear_session_cookie
from auth.config import AuthConfig
from auth.security_middleware import get_auth_context
from auth.session import SessionStore
from auth.types import UserProfile
from auth.users import UserDirectory
from core.services import TaskService

logger = logging.getLogger(__name__)


class E2ELoginRequest(BaseModel):
    user_id: str = "test-user"
    name: str = "Test User"
    email: str = "test@example.com"
    picture: str = "https://example.com/avatar.png"
    email_verified: bool = True


def create_e2e_auth_router(
    config: AuthConfig,
    users: UserDirectory,
    sessions: SessionStore,
    task_service: TaskService,
) -> APIRouter:
    """Create test-support router. Never mount outside the test environment."""
    router = APIRouter(prefix="/api/test-auth", tags=["test-auth"])

    @router.post("/login")
    async def login(request: Request, body: E2ELoginRequest | None = None):
        """Create (or refresh) a user and start a session for it."""
        body = body or E2ELoginRequest()
        user = await users.upsert_user(UserProfile(**body.model_dump()))
        session_id = await sessions.create_session(
            user.user_id, client_ip(request), request.headers.get("User-Agent")
        )
        resolved = await sessions.resolve_session(session_id)
        logger.info("Test login issued")

        response = JSONResponse(
            success_response(
                {
                    "user": user.model_dump(mode="json"),
                    "session_id": session_id,
                    "csrf_token": resolved.session.csrf_secret,
                },
                request,
            ).model_dump(mode="json")
        )
        set_session_cookie(response, session_id, config)
        return response

    @router.post("/logout")
    async def logout(request: Request):
        """Drop the current session, if any. No CSRF check."""
        auth = get_auth_context(request)
        if auth is not None:
            await sessions.delete_session(auth.session.session_id)

        response = JSONResponse(
            success_response({"message": "Logged out"}, request).model_dump(mode="json")
        )
        clear_session_cookie(response, config)
        return response

    @router.delete("/clear-data/{user_id}")
    async def clear_data(request: Request, user_id: str):
        """Delete a user's tasks and sessions. The user record is kept."""
        tasks_deleted = await task_service.delete_all_for_user(user_id)
        sessions_deleted = await sessions.delete_user_sessions(user_id)
        return success_response(
            {"tasks_deleted": tasks_deleted, "sessions_deleted": sessions_deleted},
            request,
        ).model_dump(mode="json")

    return router
