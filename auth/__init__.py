"""Authentication and authorization modules."""

from auth.exceptions import (
    AuthError,
    InvalidStateError,
    AuthenticationFailedError,
    NoIdTokenError,
    InvalidTokenError,
    InvalidNonceError,
    UserNotFoundError,
    SessionNotFoundError,
    NotAuthenticatedError,
    CsrfValidationError,
)
from auth.types import (
    UserProfile,
    User,
    Session,
    ResolvedSession,
    AuthContext,
    AuthAttempt,
    LoginRedirect,
    VerifiedIdentity,
    AuditEventType,
    AuditEvent,
)
from auth.config import AuthConfig, GoogleOAuthConfig
from auth.attempts import AttemptStore, MemoryAttemptStore, ValkeyAttemptStore
from auth.oidc import GoogleOIDCClient
from auth.users import UserDirectory
from auth.session import SessionCache, SessionStore
from auth.security_logger import AuditLogger
from auth.security_middleware import AuthMiddleware, require_auth, verify_csrf, make_csrf_guard
from auth.api import create_auth_router
