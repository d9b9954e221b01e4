"""Pydantic models for auth domain."""

from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field


class UserProfile(BaseModel):
    """Identity fields written to the directory on every login."""

    user_id: str = Field(..., min_length=1, description="Provider subject (immutable)")
    name: str = ""
    email: str = ""
    email_verified: bool = False
    picture: str = ""


class User(UserProfile):
    """A user record as stored in the directory."""

    created_at: datetime
    updated_at: datetime
    last_login_at: datetime


class Session(BaseModel):
    """A server-side session. expires_at is fixed at creation."""

    session_id: str = Field(..., description="Opaque session identifier")
    user_id: str
    created_at: datetime
    expires_at: datetime
    last_seen_at: datetime
    csrf_secret: str
    ip_hash: str
    ua_hash: str | None = None


class ResolvedSession(BaseModel):
    """A live session paired with its owning user."""

    session: Session
    user: User


class AuthContext(BaseModel):
    """Per-request identity attached by AuthMiddleware."""

    user: User
    session: Session
    csrf_token: str


class AuthAttempt(BaseModel):
    """An in-flight login, keyed by state, awaiting its callback."""

    state: str
    nonce: str
    code_verifier: str
    code_challenge: str
    created_at: datetime


class LoginRedirect(BaseModel):
    """Where to send the browser to start a login."""

    authorization_url: str
    state: str


class VerifiedIdentity(BaseModel):
    """Claims from a validated ID token. Missing optional claims are ''/False."""

    subject: str
    email: str = ""
    name: str = ""
    picture: str = ""
    email_verified: bool = False

    def to_profile(self) -> UserProfile:
        return UserProfile(
            user_id=self.subject,
            name=self.name,
            email=self.email,
            email_verified=self.email_verified,
            picture=self.picture,
        )


class AuditEventType(str, Enum):
    """Audit event kinds."""

    LOGIN = "login"
    LOGOUT = "logout"
    ERROR = "error"


class AuditEvent(BaseModel):
    """Append-only audit record. Raw IPs are never stored."""

    event: AuditEventType
    user_id: str | None = None
    session_id: str | None = None
    ip_hash: str
    user_agent: str | None = None
    timestamp: datetime
    metadata: dict[str, Any] | None = None
