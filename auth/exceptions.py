"""Typed exceptions for auth failures."""


class AuthError(Exception):
    """Base class for authentication/authorization errors."""


# -----------------------------------------------------------------------------
# Login flow
# -----------------------------------------------------------------------------


class InvalidStateError(AuthError):
    """
    Callback state is unknown, expired, or already consumed.

    Raised before any provider I/O; a replayed callback always lands here.
    """


class AuthenticationFailedError(AuthError):
    """
    Login could not be completed.

    Provider and network failures are re-raised as this type. Messages never
    carry token contents or claims.
    """


class NoIdTokenError(AuthenticationFailedError):
    """Token endpoint response did not include an ID token."""


class InvalidTokenError(AuthenticationFailedError):
    """ID token failed signature, issuer, audience, or expiry validation."""


class InvalidNonceError(AuthenticationFailedError):
    """ID token nonce does not match the nonce of the login attempt."""


# -----------------------------------------------------------------------------
# Sessions
# -----------------------------------------------------------------------------


class UserNotFoundError(AuthError):
    """Session creation requested for a user with no directory record."""


class SessionNotFoundError(AuthError):
    """
    Session is missing, expired, or orphaned.

    Callers cannot distinguish the three; all mean "not signed in".
    """


# -----------------------------------------------------------------------------
# Guards
# -----------------------------------------------------------------------------


class NotAuthenticatedError(AuthError):
    """Route requires an authenticated user. Maps to 401."""


class CsrfValidationError(AuthError):
    """Mutating request lacks a matching CSRF token. Maps to 403."""
