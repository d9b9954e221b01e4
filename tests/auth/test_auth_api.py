"""End-to-end tests for the login / logout / current-user routes."""

import asyncio
from unittest.mock import Mock, patch
from urllib.parse import urlparse, parse_qs

import pytest
import requests
from fastapi.testclient import TestClient

from auth.attempts import MemoryAttemptStore
from auth.config import AuthConfig
from auth.oidc import GoogleOIDCClient
from main import create_app


class FakeGoogle:
    """Token endpoint + ID token verifier for a single fake Google account."""

    def __init__(self):
        self.claims = {
            "sub": "google-sub-777",
            "email": "grace@example.com",
            "name": "Grace",
            "picture": "https://example.com/grace.png",
            "email_verified": True,
        }
        self.http = Mock(spec=requests.Session)
        response = Mock()
        response.json.return_value = {"id_token": "raw-id-token"}
        response.raise_for_status.return_value = None
        self.http.post.return_value = response

    def verify(self, raw_id_token: str) -> dict:
        return dict(self.claims)


@pytest.fixture
def google():
    return FakeGoogle()


def make_app(config, google_config, store, clock, google):
    return create_app(
        config,
        google_config,
        store,
        MemoryAttemptStore(config, clock),
        http=google.http,
        id_token_verifier=google.verify,
        clock=clock,
    )


@pytest.fixture
def app(config, google_config, store, clock, google):
    return make_app(config, google_config, store, clock, google)


@pytest.fixture
def client(app):
    with TestClient(app, raise_server_exceptions=False) as c:
        yield c


def begin_login(client, google) -> str:
    """Start a login, bind the fake ID token to its nonce, return the state."""
    response = client.get("/api/auth/google/login", follow_redirects=False)
    params = parse_qs(urlparse(response.headers["location"]).query)
    google.claims["nonce"] = params["nonce"][0]
    return params["state"][0]


def sign_in(client, google) -> dict:
    state = begin_login(client, google)
    client.get(f"/api/auth/google/callback?code=auth-code&state={state}", follow_redirects=False)
    return client.get("/api/user").json()["data"]


def audit_events(store) -> list[dict]:
    return [data for _, data in asyncio.run(store.query("audit_logs", {}))]


class TestLoginRedirect:

    def test_redirects_to_google(self, client):
        response = client.get("/api/auth/google/login", follow_redirects=False)

        assert response.status_code == 302
        location = urlparse(response.headers["location"])
        assert location.netloc == "accounts.google.com"
        params = parse_qs(location.query)
        assert params["code_challenge_method"] == ["S256"]
        assert params["access_type"] == ["offline"]

    def test_initiation_failure_returns_500_envelope(self, client, store):
        with patch.object(
            GoogleOIDCClient, "generate_login_redirect", side_effect=RuntimeError("boom")
        ):
            response = client.get("/api/auth/google/login", follow_redirects=False)

        assert response.status_code == 500
        assert response.json()["error"]["code"] == "LOGIN_FAILED"


class TestCallback:

    def test_success_sets_cookie_and_redirects(self, client, google):
        state = begin_login(client, google)

        response = client.get(
            f"/api/auth/google/callback?code=auth-code&state={state}", follow_redirects=False
        )

        assert response.status_code == 302
        assert response.headers["location"] == "/dashboard"
        cookie = response.headers["set-cookie"]
        assert cookie.startswith("sid=")
        assert "HttpOnly" in cookie
        assert "Max-Age=2592000" in cookie
        assert "Path=/" in cookie
        assert "samesite=lax" in cookie.lower()

    def test_success_creates_user(self, client, google, store):
        sign_in(client, google)

        user = asyncio.run(store.get("users", "google-sub-777"))
        assert user["email"] == "grace@example.com"

    def test_provider_error_redirects_oauth_denied(self, client):
        response = client.get(
            "/api/auth/google/callback?error=access_denied", follow_redirects=False
        )

        assert response.status_code == 302
        assert response.headers["location"] == "/?error=oauth_denied"
        assert "set-cookie" not in response.headers

    def test_missing_params_redirects_invalid_request(self, client):
        response = client.get("/api/auth/google/callback?code=abc", follow_redirects=False)

        assert response.headers["location"] == "/?error=invalid_request"

    def test_forged_state_redirects_auth_failed(self, client, google):
        response = client.get(
            "/api/auth/google/callback?code=auth-code&state=forged", follow_redirects=False
        )

        assert response.headers["location"] == "/?error=auth_failed"
        google.http.post.assert_not_called()

    def test_replayed_callback_fails(self, client, google):
        state = begin_login(client, google)
        url = f"/api/auth/google/callback?code=auth-code&state={state}"
        client.get(url, follow_redirects=False)

        replay = client.get(url, follow_redirects=False)

        assert replay.headers["location"] == "/?error=auth_failed"

    def test_nonce_mismatch_fails(self, client, google):
        state = begin_login(client, google)
        google.claims["nonce"] = "not-the-nonce"

        response = client.get(
            f"/api/auth/google/callback?code=auth-code&state={state}", follow_redirects=False
        )

        assert response.headers["location"] == "/?error=auth_failed"
        assert "set-cookie" not in response.headers

    def test_secure_cookie_in_production(self, google_config, store, clock, google):
        config = AuthConfig(environment="production", cookie_secure=True)
        app = make_app(config, google_config, store, clock, google)
        with TestClient(app) as client:
            state = begin_login(client, google)
            response = client.get(
                f"/api/auth/google/callback?code=auth-code&state={state}",
                follow_redirects=False,
            )

        assert "Secure" in response.headers["set-cookie"]


class TestCurrentUser:

    def test_returns_user_and_csrf_token(self, client, google):
        data = sign_in(client, google)

        assert data["user"]["user_id"] == "google-sub-777"
        assert data["user"]["name"] == "Grace"
        assert len(data["csrf_token"]) == 64

    def test_body_is_enveloped_snake_case(self, client, google):
        sign_in(client, google)

        body = client.get("/api/user").json()

        assert set(body) == {"success", "data", "error", "meta"}
        assert body["success"] is True
        assert "csrf_token" in body["data"]
        assert "csrfToken" not in body["data"]

    def test_anonymous_gets_401(self, client):
        response = client.get("/api/user")

        assert response.status_code == 401
        assert response.json()["success"] is False

    def test_meta_echoes_request_id(self, client, google):
        sign_in(client, google)

        response = client.get("/api/user", headers={"X-Request-ID": "trace-12345678"})

        assert response.headers["X-Request-ID"] == "trace-12345678"
        assert response.json()["meta"]["request_id"] == "trace-12345678"


class TestLogout:

    def test_requires_csrf(self, client, google):
        sign_in(client, google)

        response = client.post("/api/auth/logout")

        assert response.status_code == 403
        assert client.get("/api/user").status_code == 200

    def test_anonymous_gets_401(self, client):
        assert client.post("/api/auth/logout").status_code == 401

    def test_logout_revokes_session(self, client, google):
        data = sign_in(client, google)
        session_cookie = client.cookies.get("sid")

        response = client.post("/api/auth/logout", headers={"X-CSRF-Token": data["csrf_token"]})

        assert response.status_code == 200
        assert response.json()["success"] is True
        assert client.get("/api/user").status_code == 401

        # Replaying the old cookie does not work either
        client.cookies.set("sid", session_cookie)
        assert client.get("/api/user").status_code == 401


class TestAuditTrail:

    def test_login_and_logout_audited(self, app, store, google):
        with TestClient(app) as client:
            data = sign_in(client, google)
            client.post("/api/auth/logout", headers={"X-CSRF-Token": data["csrf_token"]})

        events = sorted(e["event"] for e in audit_events(store))
        assert events == ["login", "logout"]

    def test_failed_callback_audited_without_details_leaking(self, app, store):
        with TestClient(app) as client:
            response = client.get(
                "/api/auth/google/callback?code=x&state=forged", follow_redirects=False
            )

        [event] = audit_events(store)
        assert event["event"] == "error"
        assert event["metadata"]["reason"] == "InvalidStateError"
        assert "InvalidStateError" not in response.headers["location"]
