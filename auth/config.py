"""Authentication configuration."""

from pydantic import BaseModel, Field


class AuthConfig(BaseModel):
    """
    Authentication and session configuration.

    All durations are in their natural units (seconds for the cache, minutes
    for short-lived state, days for sessions) to make configuration intuitive.
    """

    # Session settings
    session_expiry_days: int = Field(
        default=30,
        description="Absolute session lifetime; never extended by activity",
        ge=1,
        le=90,
    )
    last_seen_update_minutes: int = Field(
        default=5,
        description="Minimum interval between last_seen_at writes for a session",
        ge=1,
        le=60,
    )

    # Session cache
    session_cache_size: int = Field(
        default=1000,
        description="Maximum cached sessions (least recently used evicted first)",
        ge=1,
    )
    session_cache_ttl_seconds: int = Field(
        default=60,
        description="How long a cached session/user pair may be served",
        ge=1,
        le=3600,
    )

    # Login attempts
    login_attempt_expiry_minutes: int = Field(
        default=10,
        description="How long an unconsumed login attempt (state/nonce/PKCE) stays valid",
        ge=1,
        le=60,
    )

    # Cookies and headers
    session_cookie_name: str = Field(default="sid")
    csrf_header_name: str = Field(default="X-CSRF-Token")
    cookie_secure: bool = Field(
        default=True,
        description="Set the Secure flag on the session cookie (production)",
    )

    # Redirects
    success_redirect: str = Field(
        default="/dashboard",
        description="Where the browser lands after a successful login",
    )
    failure_redirect: str = Field(
        default="/",
        description="Public landing page; an ?error= code is appended on failure",
    )

    # Application
    environment: str = Field(
        default="production",
        description="Deployment environment; 'test' enables test-support routes",
    )

    @property
    def session_expiry_seconds(self) -> int:
        return self.session_expiry_days * 24 * 3600


class GoogleOAuthConfig(BaseModel):
    """Google OIDC client registration and endpoints."""

    client_id: str
    client_secret: str
    redirect_uri: str
    authorization_endpoint: str = "https://accounts.google.com/o/oauth2/v2/auth"
    token_endpoint: str = "https://oauth2.googleapis.com/token"
    issuers: list[str] = Field(
        default_factory=lambda: ["accounts.google.com", "https://accounts.google.com"]
    )
    scopes: list[str] = Field(default_factory=lambda: ["openid", "email", "profile"])
    request_timeout_seconds: float = Field(default=10.0, gt=0)
