"""Google OpenID Connect login: authorization redirect and callback completion.

Flow:
1. generate_login_redirect() mints state, nonce and a PKCE pair, records them
   as an AuthAttempt, and builds the authorization URL.
2. The provider redirects back with code + state.
3. complete_login() consumes the attempt, exchanges the code (with the PKCE
   verifier), validates the ID token, and checks the nonce.

Blocking HTTP (requests, google-auth) runs in Starlette's threadpool.
"""

import base64
import hashlib
import hmac
import logging
import secrets
from typing import Any, Callable
from urllib.parse import urlencode

import requests
from google.auth import exceptions as google_exceptions
from google.auth.transport import requests as google_requests
from google.oauth2 import id_token as google_id_token
from starlette.concurrency import run_in_threadpool

from auth.attempts import AttemptStore
from auth.config import GoogleOAuthConfig
from auth.exceptions import (
    AuthenticationFailedError,
    InvalidNonceError,
    InvalidStateError,
    InvalidTokenError,
    NoIdTokenError,
)
from auth.types import AuthAttempt, LoginRedirect, VerifiedIdentity
from utils.timezone import now_utc

logger = logging.getLogger(__name__)

TOKEN_BYTES = 32  # 256 bits


def generate_token() -> str:
    """URL-safe random token with 256 bits of entropy."""
    return secrets.token_urlsafe(TOKEN_BYTES)


def pkce_challenge(code_verifier: str) -> str:
    """S256 code challenge: unpadded base64url(sha256(verifier))."""
    digest = hashlib.sha256(code_verifier.encode("ascii")).digest()
    return base64.urlsafe_b64encode(digest).rstrip(b"=").decode("ascii")


def _claim_str(claims: dict[str, Any], name: str) -> str:
    value = claims.get(name)
    return value if isinstance(value, str) else ""


def _claim_bool(claims: dict[str, Any], name: str) -> bool:
    # Google has historically sent email_verified as either a bool or "true"
    value = claims.get(name)
    if isinstance(value, str):
        return value.lower() == "true"
    return value is True


class GoogleOIDCClient:
    """Google OIDC relying party with PKCE and nonce binding."""

    def __init__(
        self,
        config: GoogleOAuthConfig,
        attempts: AttemptStore,
        http: requests.Session | None = None,
        id_token_verifier: Callable[[str], dict[str, Any]] | None = None,
        clock: Callable = now_utc,
    ):
        self._config = config
        self._attempts = attempts
        self._http = http or requests.Session()
        self._verify_id_token = id_token_verifier or self._verify_with_google
        self._clock = clock

    async def generate_login_redirect(self) -> LoginRedirect:
        """Start a login: record a fresh attempt and build the provider URL."""
        code_verifier = generate_token()
        attempt = AuthAttempt(
            state=generate_token(),
            nonce=generate_token(),
            code_verifier=code_verifier,
            code_challenge=pkce_challenge(code_verifier),
            created_at=self._clock(),
        )
        await self._attempts.put(attempt)

        params = {
            "client_id": self._config.client_id,
            "redirect_uri": self._config.redirect_uri,
            "response_type": "code",
            "scope": " ".join(self._config.scopes),
            "access_type": "offline",
            "state": attempt.state,
            "nonce": attempt.nonce,
            "code_challenge": attempt.code_challenge,
            "code_challenge_method": "S256",
        }
        url = f"{self._config.authorization_endpoint}?{urlencode(params)}"
        return LoginRedirect(authorization_url=url, state=attempt.state)

    async def complete_login(self, code: str, state: str) -> VerifiedIdentity:
        """Finish a login from the provider callback.

        Raises:
            InvalidStateError: state unknown, expired, or already used.
            NoIdTokenError: token response carried no ID token.
            InvalidTokenError: ID token failed validation.
            InvalidNonceError: ID token nonce does not match the attempt.
            AuthenticationFailedError: provider or network failure.
        """
        # Consumed before any I/O: a replayed state fails even mid-exchange.
        attempt = await self._attempts.consume(state)
        if attempt is None:
            raise InvalidStateError("Unknown, expired, or already used login state")

        try:
            tokens = await run_in_threadpool(self._exchange_code, code, attempt.code_verifier)
        except (requests.RequestException, ValueError) as e:
            logger.warning(f"Token exchange failed: {type(e).__name__}")
            raise AuthenticationFailedError("Token exchange failed") from e

        raw_id_token = tokens.get("id_token") if isinstance(tokens, dict) else None
        if not raw_id_token:
            raise NoIdTokenError("Token response did not include an ID token")

        try:
            claims = await run_in_threadpool(self._verify_id_token, raw_id_token)
        except google_exceptions.TransportError as e:
            logger.warning("Could not fetch provider signing keys")
            raise AuthenticationFailedError("Provider unavailable") from e
        except (ValueError, google_exceptions.GoogleAuthError) as e:
            logger.info(f"ID token rejected: {type(e).__name__}")
            raise InvalidTokenError("ID token validation failed") from e

        if not _claim_str(claims, "sub"):
            raise InvalidTokenError("ID token has no subject")

        nonce = _claim_str(claims, "nonce")
        if not hmac.compare_digest(nonce.encode("utf-8"), attempt.nonce.encode("utf-8")):
            raise InvalidNonceError("ID token nonce does not match login attempt")

        return VerifiedIdentity(
            subject=claims["sub"],
            email=_claim_str(claims, "email"),
            name=_claim_str(claims, "name"),
            picture=_claim_str(claims, "picture"),
            email_verified=_claim_bool(claims, "email_verified"),
        )

    def _exchange_code(self, code: str, code_verifier: str) -> dict[str, Any]:
        response = self._http.post(
            self._config.token_endpoint,
            data={
                "grant_type": "authorization_code",
                "code": code,
                "code_verifier": code_verifier,
                "client_id": self._config.client_id,
                "client_secret": self._config.client_secret,
                "redirect_uri": self._config.redirect_uri,
            },
            headers={"Accept": "application/json"},
            timeout=self._config.request_timeout_seconds,
        )
        response.raise_for_status()
        return response.json()

    def _verify_with_google(self, raw_id_token: str) -> dict[str, Any]:
        """Signature, audience and expiry via google-auth; issuer checked here too."""
        claims = google_id_token.verify_oauth2_token(
            raw_id_token,
            google_requests.Request(session=self._http),
            audience=self._config.client_id,
        )
        if claims.get("iss") not in self._config.issuers:
            raise ValueError("Wrong issuer")
        return claims
